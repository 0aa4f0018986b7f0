"""
Environment-based configuration for the OSS client.

Settings are read from environment variables. A ``.env`` file is only
loaded when ``load_env_file()`` is called explicitly; importing this module
has no side effects on the process environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from dotenv import find_dotenv, load_dotenv

logger = structlog.get_logger(__name__)

DEBUG_NAMESPACE = "oss-sdk"


def load_env_file(env_file: Optional[Union[str, Path]] = None, override: bool = False) -> bool:
    """
    Load variables from a ``.env`` file into the process environment.

    Args:
        env_file: Path of the file; searched upwards from the working
            directory when omitted
        override: Let file values replace variables that are already set

    Returns:
        True if a file was found and loaded
    """
    path = Path(env_file) if env_file else None
    if path is None:
        found = find_dotenv(usecwd=True)
        path = Path(found) if found else None

    if path is None or not path.exists():
        logger.debug("No .env file found", env_file=str(env_file) if env_file else None)
        return False

    load_dotenv(path, override=override)
    logger.info("Loaded environment variables", env_file=str(path))
    return True


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, "").lower()
    return value in ("true", "1", "yes", "on") if value else default


def get_env_int(key: str, default: Optional[int] = 0) -> Optional[int]:
    """Get integer value from environment variable."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_env_list(key: str, default: Optional[list] = None, separator: str = ",") -> list:
    """Get list value from environment variable."""
    if default is None:
        default = []
    value = os.getenv(key, "")
    return [item.strip() for item in value.split(separator) if item.strip()] if value else default


def is_debug_enabled() -> bool:
    """True when the DEBUG variable names the ``oss-sdk`` namespace."""
    return DEBUG_NAMESPACE in get_env_list("DEBUG")


@dataclass
class OssSettings:
    """OSS client settings from environment variables."""

    # Connection
    region: Optional[str] = field(default_factory=lambda: os.getenv("OSS_REGION"))
    endpoint: Optional[str] = field(default_factory=lambda: os.getenv("OSS_ENDPOINT"))
    secure: bool = field(default_factory=lambda: get_env_bool("OSS_SECURE", True))
    cname: bool = field(default_factory=lambda: get_env_bool("OSS_CNAME", False))
    timeout_ms: Optional[int] = field(default_factory=lambda: get_env_int("OSS_TIMEOUT_MS", None))

    # Credentials
    access_key_id: Optional[str] = field(default_factory=lambda: os.getenv("OSS_ACCESS_KEY_ID"))
    access_key_secret: Optional[str] = field(default_factory=lambda: os.getenv("OSS_ACCESS_KEY_SECRET"))

    # Logging
    debug: bool = field(default_factory=is_debug_enabled)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_json_format: bool = field(default_factory=lambda: get_env_bool("LOG_JSON_FORMAT", False))

    def __post_init__(self):
        self.log_level = self.log_level.upper()
        if self.debug:
            self.log_level = "DEBUG"

        if self.timeout_ms is not None and self.timeout_ms <= 0:
            logger.warning("Ignoring non-positive request timeout", timeout_ms=self.timeout_ms)
            self.timeout_ms = None

    def has_credentials(self) -> bool:
        return bool(
            self.region
            and self.endpoint
            and self.access_key_id
            and self.access_key_id.strip()
            and self.access_key_secret
            and self.access_key_secret.strip()
        )

    def get_client_config(self) -> dict[str, Any]:
        """Get client configuration as a dictionary of ClientConfig fields."""
        return {
            "region": self.region,
            "endpoint": self.endpoint,
            "access_key_id": self.access_key_id,
            "access_key_secret": self.access_key_secret,
            "secure": self.secure,
            "cname": self.cname,
            "timeout_ms": self.timeout_ms,
            "debug": self.debug,
        }


# Global settings instance
_settings: Optional[OssSettings] = None


def get_settings() -> OssSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = OssSettings()
        logger.debug("Loaded settings", region=_settings.region, endpoint=_settings.endpoint)
    return _settings


def reload_settings(env_file: Optional[Union[str, Path]] = None) -> OssSettings:
    """Reload the global settings, re-reading ``env_file`` when given."""
    global _settings
    if env_file is not None:
        load_env_file(env_file, override=True)
    _settings = OssSettings()
    logger.debug("Reloaded settings", region=_settings.region, endpoint=_settings.endpoint)
    return _settings


def get_client_config() -> dict[str, Any]:
    """Get the ClientConfig fields of the global settings."""
    return get_settings().get_client_config()
