"""Startup-time helpers for safe config logging."""

from orderpay.common.config import Settings
from orderpay.common.logging import logger


_SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_value(name: str, value) -> str:
    """Return a printable value with simple redaction for secret-like names."""

    if value is None:
        return "<unset>"
    if any(marker in name.upper() for marker in _SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(settings: Settings, keys: list[str]) -> None:
    """Log selected settings for quick troubleshooting."""

    config = {"service": settings.service_name}
    for key in keys:
        config[key] = _safe_value(key, getattr(settings, key, None))
    logger.info("startup_config=%s", config)
