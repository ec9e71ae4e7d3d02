"""Startup-time config logging with secrets and URL credentials redacted."""

import os
from urllib.parse import urlsplit, urlunsplit

from vaultswitch.common.logging import logger


SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _strip_credentials(value: str) -> str:
    """Drop `user:password@` from URL-shaped values such as DSNs and redis URLs."""

    parts = urlsplit(value)
    if not parts.scheme or "@" not in parts.netloc:
        return value
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"<redacted>@{host}", parts.path, parts.query, parts.fragment))


def _safe_env(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return _strip_credentials(value)


def log_startup_config(service_name: str, keys: list[str], **derived) -> dict[str, str]:
    """Log selected env keys plus derived runtime facts (delivery mode and the like).

    Returns the logged mapping so callers and tests can inspect it.
    """

    config = {"service": service_name}
    for key in keys:
        config[key] = _safe_env(key)
    config.update({name: str(value) for name, value in derived.items()})
    logger.info("startup_config=%s", config)
    return config
