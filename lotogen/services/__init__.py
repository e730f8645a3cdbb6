"""Service layer. Services are built once per app on top of the configured storage."""

from __future__ import annotations

import threading

from flask import Flask, current_app

from lotogen.db import get_draw_repository, get_statistics_repository
from lotogen.services.draw_service import DrawGenerator
from lotogen.services.record_service import RecordService
from lotogen.services.retry import RetryPolicy
from lotogen.services.statistics_service import StatisticsService


def init_services(app: Flask) -> None:
    with app.app_context():
        draws = get_draw_repository()
        statistics = get_statistics_repository()

    retry = RetryPolicy(
        attempts=int(app.config.get("STORAGE_RETRY_ATTEMPTS", 3)),
        backoff_seconds=float(app.config.get("STORAGE_RETRY_BACKOFF_SECONDS", 0.2)),
    )
    generator = DrawGenerator(max_quantity=int(app.config.get("MAX_QUANTITY", 10)))
    statistics_lock = threading.Lock()

    app.extensions["record_service"] = RecordService(
        draws,
        statistics,
        generator=generator,
        retry=retry,
        max_quantity=int(app.config.get("MAX_QUANTITY", 10)),
        demo_max_quantity=int(app.config.get("DEMO_MAX_QUANTITY", 5)),
        statistics_lock=statistics_lock,
    )
    app.extensions["statistics_service"] = StatisticsService(
        draws, statistics, retry=retry, statistics_lock=statistics_lock
    )


def get_record_service() -> RecordService:
    return current_app.extensions["record_service"]


def get_statistics_service() -> StatisticsService:
    return current_app.extensions["statistics_service"]
