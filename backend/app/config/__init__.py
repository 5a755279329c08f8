"""Config package exporting loader helpers."""

from .loader import CacheConfig, LogbookConfig, Settings, load_settings

__all__ = ["CacheConfig", "LogbookConfig", "Settings", "load_settings"]
