"""Router exports for FastAPI composition."""

from . import health, logbook

__all__ = ["health", "logbook"]
