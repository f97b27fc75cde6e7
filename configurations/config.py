"""Configuration settings for the bus-route assignment service."""
import os
import re
from typing import Optional
from urllib.parse import quote
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when no data store configuration can be resolved."""


def _env(name: str, default: str = "") -> str:
    """Read an env value, trimmed and with surrounding quotes removed."""
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return re.sub(r"^([\"'])(.*)\1$", r"\2", value) or default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, "true" if default else "false").lower() in ("1", "true", "yes", "on")


class Config:
    # Database settings
    DATABASE_URL: str = _env("DATABASE_URL")
    DB_USER: str = _env("DB_USER")
    DB_PASSWORD: str = _env("DB_PASSWORD")
    DB_HOST: str = _env("DB_HOST", "localhost")
    DB_PORT: str = _env("DB_PORT", "5432")
    DB_NAME: str = _env("DB_NAME")
    DB_SCHEMA: str = _env("DB_SCHEMA")
    DB_SSL: bool = _env_bool("DB_SSL", False)
    DB_CONNECT_TIMEOUT: int = _env_int("DB_CONNECT_TIMEOUT", 5)

    # Collaborating services
    BUS_SERVICE_URL: str = _env("BUS_SERVICE_URL", "http://localhost:3006")
    SCHEDULE_SERVICE_URL: str = _env("SCHEDULE_SERVICE_URL", "http://localhost:3005")
    # This app serves on API_PORT; an external route store must be set explicitly
    ROUTE_SERVICE_URL: str = _env("ROUTE_SERVICE_URL")
    USE_ROUTE_SERVICE: bool = _env_bool("USE_ROUTE_SERVICE", False)

    # Timeouts in seconds
    BUS_SERVICE_TIMEOUT: int = _env_int("BUS_SERVICE_TIMEOUT", 5)
    SCHEDULE_SERVICE_TIMEOUT: int = _env_int("SCHEDULE_SERVICE_TIMEOUT", 5)
    ROUTE_SERVICE_TIMEOUT: int = _env_int("ROUTE_SERVICE_TIMEOUT", 5)
    HEALTH_CHECK_TIMEOUT: int = _env_int("HEALTH_CHECK_TIMEOUT", 3)
    RECONCILE_DEADLINE_SECONDS: int = _env_int("RECONCILE_DEADLINE_SECONDS", 30)

    # Max records requested from each listing endpoint
    FETCH_LIMIT: int = _env_int("FETCH_LIMIT", 1000)

    # API settings
    API_HOST: str = _env("API_HOST", "127.0.0.1")
    API_PORT: int = _env_int("API_PORT", 3000)

    # Logging
    LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")

    @classmethod
    def database_url(cls) -> str:
        """Resolve the database URL from DATABASE_URL or the DB_* parts."""
        if cls.DATABASE_URL:
            return cls.DATABASE_URL
        if cls.DB_USER and cls.DB_HOST and cls.DB_NAME:
            auth = quote(cls.DB_USER, safe="")
            if cls.DB_PASSWORD:
                auth = f"{auth}:{quote(cls.DB_PASSWORD, safe='')}"
            return f"postgresql://{auth}@{cls.DB_HOST}:{cls.DB_PORT}/{cls.DB_NAME}"
        raise ConfigurationError(
            "DATABASE_URL is not set and DB_USER/DB_HOST/DB_NAME are incomplete"
        )

    @classmethod
    def safe_schema(cls, schema: Optional[str] = None) -> str:
        """Schema name restricted to [A-Za-z0-9_]; empty means unqualified."""
        raw = cls.DB_SCHEMA if schema is None else schema
        return re.sub(r"[^a-zA-Z0-9_]", "", raw or "")
