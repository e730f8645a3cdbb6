from __future__ import annotations

import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from lotogen import create_app
from lotogen.auth import RequestContext
from lotogen.config import TestingConfig
from lotogen.repositories.memory_repository import InMemoryDrawRepository, InMemoryStatisticsRepository
from lotogen.services.draw_service import DrawGenerator
from lotogen.services.record_service import RecordService
from lotogen.services.retry import RetryPolicy
from lotogen.services.statistics_service import StatisticsService


class FakeClock:
    """Deterministic clock; every call moves time forward by ``step``."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def no_wait_retry() -> RetryPolicy:
    return RetryPolicy(attempts=3, backoff_seconds=0.0, sleep=lambda _: None)


@pytest.fixture()
def draw_repo() -> InMemoryDrawRepository:
    return InMemoryDrawRepository()


@pytest.fixture()
def stats_repo() -> InMemoryStatisticsRepository:
    return InMemoryStatisticsRepository()


@pytest.fixture()
def generator() -> DrawGenerator:
    return DrawGenerator(rng=random.Random(1234))


@pytest.fixture()
def statistics_lock():
    return threading.Lock()


@pytest.fixture()
def record_service(draw_repo, stats_repo, generator, no_wait_retry, clock, statistics_lock) -> RecordService:
    return RecordService(
        draw_repo,
        stats_repo,
        generator=generator,
        retry=no_wait_retry,
        clock=clock,
        statistics_lock=statistics_lock,
    )


@pytest.fixture()
def statistics_service(draw_repo, stats_repo, no_wait_retry, statistics_lock) -> StatisticsService:
    return StatisticsService(draw_repo, stats_repo, retry=no_wait_retry, statistics_lock=statistics_lock)


@pytest.fixture()
def alice() -> RequestContext:
    return RequestContext(owner_id="alice")


@pytest.fixture()
def bob() -> RequestContext:
    return RequestContext(owner_id="bob")


@pytest.fixture()
def admin() -> RequestContext:
    return RequestContext(owner_id="root", is_admin=True)


@pytest.fixture()
def app(draw_repo, stats_repo):
    app = create_app(TestingConfig, draws=draw_repo, statistics=stats_repo)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
