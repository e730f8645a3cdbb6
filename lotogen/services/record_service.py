"""Saved draws: creation with statistics, listings, soft delete and restore."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from collections.abc import Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from lotogen.auth import RequestContext
from lotogen.errors import (
    NotAdminError,
    NotAuthorizedError,
    NotFoundError,
    StatisticsUpdateFailedError,
    ValidationError,
)
from lotogen.repositories.base import DrawRepository, StatisticsRepository
from lotogen.repositories.records import DrawQuery, DrawRecord, OwnerSummary, Page, utcnow
from lotogen.services.draw_service import Draw, DrawGenerator, DrawOptions, validate_draw
from lotogen.services.game_catalog import GAME_TYPES, GameDefinition, get_game
from lotogen.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
FAVORITE_NUMBERS_LIMIT = 5


@dataclass(frozen=True)
class DrawFilter:
    owner_id: str | None = None
    game_type: str | None = None
    limit: int = 10
    offset: int = 0
    include_deleted: bool = False


@dataclass(frozen=True)
class CreateDrawResult:
    record: DrawRecord
    statistics_error: StatisticsUpdateFailedError | None = None


@dataclass(frozen=True)
class NumberCount:
    number: int
    count: int


@dataclass(frozen=True)
class UserStats:
    owner_id: str
    total_generations: int
    per_game_counts: dict[str, int]
    most_recent_activity_bucket: str
    last_generated_at: datetime | None = None
    favorite_numbers: list[NumberCount] = field(default_factory=list)
    most_used_game_type: str | None = None


@dataclass(frozen=True)
class AdminOverview:
    total_numbers: int
    deleted_numbers: int
    new_numbers_week: int
    new_numbers_month: int
    games: dict[str, int]
    owners: Page[OwnerSummary] = field(default_factory=Page)


def activity_bucket(last: datetime | None, now: datetime) -> str:
    """Human-relative age of the latest generation.

    Labels are upper bounds: 5h30m ago is ``"<6 hours"``.
    """

    if last is None:
        return "never"
    elapsed = max(now - last, timedelta(0))
    hours = int(elapsed.total_seconds() // 3600)
    if hours < 1:
        return "<1 hour"
    if hours < 24:
        return f"<{hours + 1} hours"
    return f"<{hours // 24 + 1} days"


def favorite_numbers(draws: Iterable[Iterable[int]], limit: int = FAVORITE_NUMBERS_LIMIT) -> list[NumberCount]:
    """Main numbers the owner got most often. Ties go to the lower number."""

    counts = Counter(int(n) for main in draws for n in main)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [NumberCount(number=n, count=c) for n, c in ranked[:limit]]


class RecordService:
    """Draw persistence use-cases. Every call receives the caller's RequestContext."""

    def __init__(
        self,
        draws: DrawRepository,
        statistics: StatisticsRepository,
        generator: DrawGenerator | None = None,
        retry: RetryPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        max_quantity: int = 10,
        demo_max_quantity: int = 5,
        statistics_lock: AbstractContextManager[Any] | None = None,
    ) -> None:
        self._draws = draws
        self._stats = statistics
        self._generator = generator or DrawGenerator(max_quantity=max_quantity)
        self._retry = retry or RetryPolicy()
        self._clock = clock
        self._new_id = id_factory
        self._max_quantity = max_quantity
        self._demo_max_quantity = demo_max_quantity
        # Shared with StatisticsService so a rebuild never races an increment.
        self._statistics_lock = statistics_lock if statistics_lock is not None else threading.Lock()

    # --- creation -----------------------------------------------------------

    def _new_record(self, owner_id: str, game: GameDefinition, draw: Draw) -> DrawRecord:
        validate_draw(game, draw)
        return DrawRecord(
            id=self._new_id(),
            owner_id=owner_id,
            game_type=game.name,
            main_numbers=tuple(int(n) for n in draw.main_numbers),
            secondary_number=draw.secondary_number,
            generated_at=self._clock(),
        )

    def _save(self, records: list[DrawRecord]) -> list[CreateDrawResult]:
        # A failed insert propagates here, before any statistics are touched.
        self._retry.call(lambda: self._draws.add_many(records), description="insert draws")
        for record in records:
            logger.info("Saved %s draw %s for owner %s", record.game_type, record.id, record.owner_id)
        return [CreateDrawResult(record=r, statistics_error=self._record_statistics(r)) for r in records]

    def create_draw(self, ctx: RequestContext, game_type: str, draw: Draw) -> CreateDrawResult:
        owner_id = ctx.require_owner()
        record = self._new_record(owner_id, get_game(game_type), draw)
        return self._save([record])[0]

    def _record_statistics(self, record: DrawRecord) -> StatisticsUpdateFailedError | None:
        game = get_game(record.game_type)
        increments = [(game.scope(), int(n)) for n in record.main_numbers]
        if record.secondary_number is not None:
            increments.append((game.secondary_scope, int(record.secondary_number)))

        # Single attempt: an increment is not idempotent, and a timeout may arrive
        # after the write was applied.
        try:
            with self._statistics_lock:
                self._stats.increment(increments, record.generated_at)
        except Exception as exc:
            # The draw is already saved; statistics are secondary data.
            logger.warning("Statistics update failed for draw %s: %s", record.id, exc, exc_info=exc)
            return StatisticsUpdateFailedError(details={"record_id": record.id})
        return None

    def generate_and_save(
        self,
        ctx: RequestContext,
        game_type: str,
        options: DrawOptions | None = None,
        quantity: int = 1,
    ) -> list[CreateDrawResult]:
        """Generate ``quantity`` draws and save them as one batch: all of them or none."""

        owner_id = ctx.require_owner()
        game = get_game(game_type)
        draws = self._generator.generate_many(game.name, options, quantity, max_quantity=self._max_quantity)
        return self._save([self._new_record(owner_id, game, d) for d in draws])

    def generate_demo(self, game_type: str, options: DrawOptions | None = None, quantity: int = 1) -> list[Draw]:
        """Anonymous generation: nothing is persisted and statistics are untouched."""

        return self._generator.generate_many(game_type, options, quantity, max_quantity=self._demo_max_quantity)

    # --- listings -----------------------------------------------------------

    def list_draws(self, ctx: RequestContext, draw_filter: DrawFilter | None = None) -> Page[DrawRecord]:
        caller = ctx.require_owner()
        f = draw_filter or DrawFilter()

        if f.limit < 1 or f.limit > MAX_PAGE_SIZE:
            raise ValidationError(message="Invalid limit", details={"limit": [f"Must be within 1..{MAX_PAGE_SIZE}"]})
        if f.offset < 0:
            raise ValidationError(message="Invalid offset", details={"offset": ["Must be >= 0"]})

        game_type = get_game(f.game_type).name if f.game_type else None

        if ctx.is_admin:
            owner_id = f.owner_id
        else:
            if f.owner_id is not None and f.owner_id != caller:
                raise NotAuthorizedError(message="You can only list your own numbers")
            if f.include_deleted:
                raise NotAdminError(message="Only administrators can list deleted numbers")
            owner_id = caller

        query = DrawQuery(
            owner_id=owner_id,
            game_type=game_type,
            include_deleted=f.include_deleted,
            limit=int(f.limit),
            offset=int(f.offset),
        )
        return self._retry.call(lambda: self._draws.find(query), description="list draws")

    # --- soft delete / restore ---------------------------------------------

    def _get_existing(self, record_id: str) -> DrawRecord:
        record = self._retry.call(lambda: self._draws.get(record_id), description="get draw")
        if record is None:
            raise NotFoundError(message=f"Number {record_id} not found")
        return record

    def soft_delete(self, ctx: RequestContext, record_id: str) -> None:
        ctx.require_owner()
        record = self._get_existing(record_id)
        ctx.require_access(record.owner_id)

        if record.is_deleted:
            return

        deleted_at = self._clock()
        changed = self._retry.call(lambda: self._draws.mark_deleted(record_id, deleted_at), description="delete draw")
        if changed:
            logger.info("Soft deleted draw %s (by %s)", record_id, ctx.owner_id)

    def soft_delete_all(self, ctx: RequestContext) -> int:
        owner_id = ctx.require_owner()
        deleted_at = self._clock()
        changed = self._retry.call(
            lambda: self._draws.mark_all_deleted(owner_id, deleted_at),
            description="delete all draws",
        )
        logger.info("Soft deleted %d draws for owner %s", changed, owner_id)
        return changed

    def restore(self, ctx: RequestContext, record_id: str) -> None:
        ctx.require_admin()
        record = self._get_existing(record_id)
        if not record.is_deleted:
            return
        if self._retry.call(lambda: self._draws.mark_restored(record_id), description="restore draw"):
            logger.info("Restored draw %s (by %s)", record_id, ctx.owner_id)

    # --- statistics ---------------------------------------------------------

    def compute_user_stats(self, ctx: RequestContext, owner_id: str | None = None) -> UserStats:
        caller = ctx.require_owner()
        target = owner_id or caller
        ctx.require_access(target)

        by_game = self._retry.call(
            lambda: self._draws.count_by_game(DrawQuery(owner_id=target)),
            description="count draws by game",
        )
        per_game = {name: int(by_game.get(name, 0)) for name in GAME_TYPES}
        last = self._retry.call(lambda: self._draws.latest_generated_at(target), description="latest draw")
        rows = self._retry.call(lambda: list(self._draws.iter_active(owner_id=target)), description="read owner draws")
        total = sum(per_game.values())

        return UserStats(
            owner_id=target,
            total_generations=total,
            per_game_counts=per_game,
            most_recent_activity_bucket=activity_bucket(last, self._clock()),
            last_generated_at=last,
            favorite_numbers=favorite_numbers(main for main, _, _ in rows),
            # max() keeps the first of equal counts, i.e. catalog order.
            most_used_game_type=max(GAME_TYPES, key=lambda name: per_game[name]) if total else None,
        )

    def admin_overview(self, ctx: RequestContext, owners_limit: int = 10, owners_offset: int = 0) -> AdminOverview:
        ctx.require_admin()
        now = self._clock()

        def _count(query: DrawQuery) -> int:
            return self._retry.call(lambda: self._draws.count(query), description="count draws")

        games = self._retry.call(
            lambda: self._draws.count_by_game(DrawQuery(include_deleted=True)),
            description="count draws by game",
        )
        owners = self._retry.call(
            lambda: self._draws.owner_summaries(int(owners_limit), int(owners_offset)),
            description="owner summaries",
        )
        return AdminOverview(
            total_numbers=_count(DrawQuery(include_deleted=True)),
            deleted_numbers=_count(DrawQuery(deleted_only=True)),
            new_numbers_week=_count(DrawQuery(include_deleted=True, generated_since=now - timedelta(days=7))),
            new_numbers_month=_count(DrawQuery(include_deleted=True, generated_since=now - timedelta(days=30))),
            games=games,
            owners=owners,
        )

