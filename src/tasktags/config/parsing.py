"""Parsing and normalization helpers for configuration values."""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _try_parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off"}:
        return False
    return None


def _try_parse_float(value: Any, *, name: str, minimum: float = 0.0) -> Optional[float]:
    """Parse a non-negative float, logging and returning None on bad input."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s: expected a number, got %r", name, value)
        return None
    if parsed < minimum:
        logger.warning("Ignoring %s: must be >= %s, got %s", name, minimum, parsed)
        return None
    return parsed


def _try_parse_int(value: Any, *, name: str, minimum: int = 0) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s: expected an integer, got %r", name, value)
        return None
    if parsed < minimum:
        logger.warning("Ignoring %s: must be >= %s, got %s", name, minimum, parsed)
        return None
    return parsed


def _normalize_log_level(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Falling back to 'INFO'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return "INFO"
    return normalized
