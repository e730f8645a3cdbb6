"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


def resolve_database_url() -> str:
    """Resolve DB connection string.

    Priority:
      1) DATABASE_URL (explicit)
      2) Build from PG* env vars (common Postgres convention)
      3) Fallback to local sqlite
    """

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")
    port_raw = os.getenv("PGPORT")

    if host and user and database:
        password = os.getenv("PGPASSWORD")
        sslmode = os.getenv("PGSSLMODE", "require")

        try:
            port = int(port_raw) if port_raw else 5432
        except ValueError:
            port = 5432

        query = {"sslmode": sslmode} if sslmode else {}
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=password,
            host=host,
            port=port,
            database=database,
            query=query,
        )
        return url.render_as_string(hide_password=False)

    return "sqlite:///./lotogen.db"


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    DB_BACKEND: str = (
        os.getenv("DB_BACKEND")
        or ("mongo" if os.getenv("MONGODB_URI") else "sql")
    ).lower().strip()  # "sql" | "mongo" | "memory"

    # SQL backend
    DATABASE_URL: str = resolve_database_url()

    # Mongo backend
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "lotogen")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage I/O bounds
    STORAGE_TIMEOUT_SECONDS: float = _env_float("STORAGE_TIMEOUT_SECONDS", 5.0)
    STORAGE_RETRY_ATTEMPTS: int = _env_int("STORAGE_RETRY_ATTEMPTS", 3)
    STORAGE_RETRY_BACKOFF_SECONDS: float = _env_float("STORAGE_RETRY_BACKOFF_SECONDS", 0.2)

    # Combinations per request (signed-in / demo)
    MAX_QUANTITY: int = 10
    DEMO_MAX_QUANTITY: int = 5

    # Identity headers set by the upstream auth gateway
    AUTH_USER_HEADER: str = os.getenv("AUTH_USER_HEADER", "X-User-Id")
    AUTH_ADMIN_HEADER: str = os.getenv("AUTH_ADMIN_HEADER", "X-User-Is-Admin")


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


@dataclass(frozen=True)
class TestingConfig(BaseConfig):
    """Test configuration: in-memory storage, no backoff delay."""

    TESTING: bool = True
    DEBUG: bool = False
    DB_BACKEND: str = "memory"
    STORAGE_RETRY_BACKOFF_SECONDS: float = 0.0


def get_config() -> type[BaseConfig]:
    """Resolve configuration class based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
