"""
Environment configuration for the upload_card Lambda.

Read once by app.init(); a missing required variable is a startup fault.
"""

import logging
import os
import re
from dataclasses import dataclass

DEFAULT_REGION = "eu-west-1"
DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB

REQUIRED_VARS = ("SHOPIFY_API_KEY", "SHOPIFY_API_SECRET", "HOST_NAME", "BUCKET_NAME")


class ConfigError(RuntimeError):
    """Raised when the environment is missing or has invalid settings."""


@dataclass(frozen=True)
class Settings:
    api_key: str
    api_secret: str
    host_name: str
    bucket_name: str
    region: str = DEFAULT_REGION
    access_key_id: str | None = None
    secret_access_key: str | None = None
    public_base_url: str | None = None
    file_url_expires_in: int = 0
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    hmac_max_age: int = 0
    log_level: str = "INFO"


def load_settings(environ=None) -> Settings:
    """Build Settings from environment variables."""
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARS if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    access_key_id = env.get("STORAGE_ACCESS_KEY_ID") or None
    secret_access_key = env.get("STORAGE_SECRET_ACCESS_KEY") or None
    if bool(access_key_id) != bool(secret_access_key):
        raise ConfigError(
            "STORAGE_ACCESS_KEY_ID and STORAGE_SECRET_ACCESS_KEY must be set together"
        )

    public_base_url = env.get("PUBLIC_BASE_URL") or None
    if public_base_url:
        public_base_url = public_base_url.rstrip("/")

    return Settings(
        api_key=env["SHOPIFY_API_KEY"],
        api_secret=env["SHOPIFY_API_SECRET"],
        host_name=strip_scheme(env["HOST_NAME"]),
        bucket_name=env["BUCKET_NAME"],
        region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        public_base_url=public_base_url,
        file_url_expires_in=_int_var(env, "FILE_URL_EXPIRES_IN", 0),
        max_upload_size=_int_var(env, "MAX_UPLOAD_SIZE", DEFAULT_MAX_UPLOAD_SIZE),
        hmac_max_age=_int_var(env, "HMAC_MAX_AGE_SECONDS", 0),
        log_level=_log_level(env.get("LOG_LEVEL") or "INFO"),
    )


def strip_scheme(host: str) -> str:
    return re.sub(r"^https?://", "", host)


def _log_level(raw: str) -> str:
    level = raw.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"LOG_LEVEL {raw!r} is not a logging level")
    return level


def _int_var(env, name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative")
    return value
