"""Startup-time helpers for safe config logging."""

import os

from platepay.common.config import CommonSettings
from platepay.common.logging import logger


def _safe_env(name: str) -> str:
    """Return env value with simple redaction for secret-like variable names."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(secret in name for secret in ["KEY", "SECRET", "PASSWORD", "TOKEN"]):
        return "<redacted>"
    return value


def log_startup_config(service_name: str, keys: list[str]) -> None:
    """Log selected startup config keys for quick troubleshooting."""

    config = {"service": service_name}
    for key in keys:
        config[key] = _safe_env(key)
    logger.info("startup_config=%s", config)


def warn_if_gateway_unconfigured(settings: CommonSettings) -> bool:
    """Log loudly when PayPal credentials are missing; return True if usable."""

    if settings.paypal_client_id and settings.paypal_client_secret:
        return True
    logger.critical(
        "PayPal credentials not configured has_client_id=%s has_client_secret=%s",
        bool(settings.paypal_client_id),
        bool(settings.paypal_client_secret),
    )
    return False
