"""Structured logging helpers shared by the backend."""

from __future__ import annotations

import logging
from typing import Any

ROOT_LOGGER_NAME = "logbook"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes present on every LogRecord; anything else arrived via ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Formatter appending ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _extract_extras(record)
        if not extras:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the ``logbook`` namespace."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Install a single structured stream handler on the namespace logger."""

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(root.handlers):
        if getattr(handler, "_logbook_handler", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(DEFAULT_FORMAT))
    handler._logbook_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root


__all__ = ["StructuredFormatter", "configure_logging", "get_logger"]
