"""Storage wiring: SQLAlchemy engine, Mongo client or in-memory store.

The selected backend's repositories live in ``app.extensions``.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from lotogen.models.base import Base
from lotogen.repositories.base import DrawRepository, StatisticsRepository

logger = logging.getLogger(__name__)


def create_app_engine(database_url: str, timeout_seconds: float = 5.0) -> Engine:
    """Engine with bounded waits on the pool and on the driver."""

    url = make_url(database_url)
    backend = url.get_backend_name()

    connect_args: dict[str, object] = {}
    if backend == "sqlite":
        # Seconds to wait on a locked database before raising OperationalError.
        connect_args["timeout"] = float(timeout_seconds)
        connect_args["check_same_thread"] = False
    elif backend == "postgresql":
        connect_args["connect_timeout"] = max(1, int(timeout_seconds))
        connect_args["options"] = f"-c statement_timeout={int(timeout_seconds * 1000)}"

    kwargs: dict[str, object] = {"pool_pre_ping": True, "future": True, "connect_args": connect_args}
    if backend != "sqlite":
        kwargs["pool_timeout"] = float(timeout_seconds)

    return create_engine(database_url, **kwargs)


def _init_sql(app: Flask) -> tuple[DrawRepository, StatisticsRepository]:
    from lotogen.repositories.sql_repository import SqlDrawRepository, SqlStatisticsRepository

    engine = create_app_engine(
        str(app.config["DATABASE_URL"]),
        timeout_seconds=float(app.config.get("STORAGE_TIMEOUT_SECONDS", 5.0)),
    )
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    # Create tables for the example (production would use migrations).
    Base.metadata.create_all(bind=engine)

    app.extensions["engine"] = engine
    app.extensions["session_factory"] = session_factory
    return SqlDrawRepository(session_factory), SqlStatisticsRepository(session_factory)


def _init_mongo(app: Flask) -> tuple[DrawRepository, StatisticsRepository]:
    from pymongo import MongoClient

    from lotogen.repositories.mongo_repository import (
        MongoDrawRepository,
        MongoStatisticsRepository,
        ensure_indexes,
    )

    timeout_ms = int(float(app.config.get("STORAGE_TIMEOUT_SECONDS", 5.0)) * 1000)
    client: MongoClient = MongoClient(
        str(app.config["MONGODB_URI"]),
        serverSelectionTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        tz_aware=True,
    )
    db = client[str(app.config["MONGODB_DB"])]
    ensure_indexes(db)

    app.extensions["mongo_client"] = client
    return MongoDrawRepository(db), MongoStatisticsRepository(db)


def _init_memory(app: Flask) -> tuple[DrawRepository, StatisticsRepository]:
    from lotogen.repositories.memory_repository import (
        InMemoryDrawRepository,
        InMemoryStatisticsRepository,
    )

    return InMemoryDrawRepository(), InMemoryStatisticsRepository()


_BACKENDS = {"sql": _init_sql, "mongo": _init_mongo, "memory": _init_memory}


def init_storage(
    app: Flask,
    draws: DrawRepository | None = None,
    statistics: StatisticsRepository | None = None,
) -> None:
    """Initialize repositories for the configured DB_BACKEND unless given explicitly."""

    if draws is None or statistics is None:
        backend = str(app.config.get("DB_BACKEND", "sql")).lower().strip()
        try:
            factory = _BACKENDS[backend]
        except KeyError as exc:
            raise RuntimeError(f"Unsupported DB_BACKEND: {backend}") from exc
        draws, statistics = factory(app)
        logger.info("Storage backend initialized: %s", backend)

    app.extensions["draw_repository"] = draws
    app.extensions["statistics_repository"] = statistics


def get_draw_repository() -> DrawRepository:
    repo: DrawRepository | None = current_app.extensions.get("draw_repository")
    if repo is None:
        raise RuntimeError("Storage not initialized")
    return repo


def get_statistics_repository() -> StatisticsRepository:
    repo: StatisticsRepository | None = current_app.extensions.get("statistics_repository")
    if repo is None:
        raise RuntimeError("Storage not initialized")
    return repo
