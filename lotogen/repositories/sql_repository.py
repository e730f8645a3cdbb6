"""SQLAlchemy storage backend."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import and_, case, delete, func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from lotogen.errors import StorageUnavailableError
from lotogen.models.lottery_number import LotteryNumber
from lotogen.models.number_statistic import NumberStatistic
from lotogen.repositories.base import ActiveDraw, DrawRepository, StatisticsRepository
from lotogen.repositories.records import (
    DrawQuery,
    DrawRecord,
    NumberStatisticRecord,
    OwnerSummary,
    Page,
    as_utc,
)

logger = logging.getLogger(__name__)


@contextmanager
def _unit_of_work(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Transaction scope that turns timeouts and lost connections into StorageUnavailableError."""

    try:
        with session_factory.begin() as session:
            yield session
    except (OperationalError, PoolTimeoutError) as exc:
        logger.warning("SQL storage unavailable: %s", exc)
        raise StorageUnavailableError(details={"backend": "sql"}) from exc


def _to_record(row: LotteryNumber) -> DrawRecord:
    return DrawRecord(
        id=str(row.id),
        owner_id=str(row.owner_id),
        game_type=str(row.game_type),
        main_numbers=tuple(int(n) for n in (row.numbers or [])),
        secondary_number=int(row.mas_number) if row.mas_number is not None else None,
        generated_at=as_utc(row.generated_at),  # type: ignore[arg-type]
        is_deleted=bool(row.is_deleted),
        deleted_at=as_utc(row.deleted_at),
    )


def _conditions(query: DrawQuery) -> list:
    conds = []
    if query.owner_id is not None:
        conds.append(LotteryNumber.owner_id == query.owner_id)
    if query.game_type is not None:
        conds.append(LotteryNumber.game_type == query.game_type)
    if query.deleted_only:
        conds.append(LotteryNumber.is_deleted.is_(True))
    elif not query.include_deleted:
        conds.append(LotteryNumber.is_deleted.is_(False))
    if query.generated_since is not None:
        conds.append(LotteryNumber.generated_at >= query.generated_since)
    return conds


class SqlDrawRepository(DrawRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add_many(self, records: Sequence[DrawRecord]) -> None:
        if not records:
            return
        ids = [r.id for r in records]
        with _unit_of_work(self._session_factory) as session:
            stored = set(session.scalars(select(LotteryNumber.id).where(LotteryNumber.id.in_(ids))).all())
            session.add_all(
                LotteryNumber(
                    id=record.id,
                    owner_id=record.owner_id,
                    game_type=record.game_type,
                    numbers=[int(n) for n in record.main_numbers],
                    mas_number=record.secondary_number,
                    generated_at=record.generated_at,
                    is_deleted=record.is_deleted,
                    deleted_at=record.deleted_at,
                )
                for record in records
                if record.id not in stored
            )

    def get(self, record_id: str) -> DrawRecord | None:
        with _unit_of_work(self._session_factory) as session:
            row = session.get(LotteryNumber, record_id)
            return _to_record(row) if row is not None else None

    def find(self, query: DrawQuery) -> Page[DrawRecord]:
        conds = _conditions(query)
        stmt = (
            select(LotteryNumber)
            .where(and_(True, *conds))
            .order_by(LotteryNumber.generated_at.desc(), LotteryNumber.id.desc())
            .offset(int(query.offset))
            .limit(int(query.limit))
        )
        count_stmt = select(func.count()).select_from(LotteryNumber).where(and_(True, *conds))

        with _unit_of_work(self._session_factory) as session:
            total = int(session.scalar(count_stmt) or 0)
            items = [_to_record(row) for row in session.scalars(stmt).all()]

        return Page(items=items, total=total, limit=query.limit, offset=query.offset)

    def count(self, query: DrawQuery) -> int:
        stmt = select(func.count()).select_from(LotteryNumber).where(and_(True, *_conditions(query)))
        with _unit_of_work(self._session_factory) as session:
            return int(session.scalar(stmt) or 0)

    def count_by_game(self, query: DrawQuery) -> dict[str, int]:
        stmt = (
            select(LotteryNumber.game_type, func.count())
            .where(and_(True, *_conditions(query)))
            .group_by(LotteryNumber.game_type)
        )
        with _unit_of_work(self._session_factory) as session:
            return {str(game): int(n) for game, n in session.execute(stmt).all()}

    def latest_generated_at(self, owner_id: str) -> datetime | None:
        stmt = select(func.max(LotteryNumber.generated_at)).where(
            LotteryNumber.owner_id == owner_id,
            LotteryNumber.is_deleted.is_(False),
        )
        with _unit_of_work(self._session_factory) as session:
            return as_utc(session.scalar(stmt))

    def mark_deleted(self, record_id: str, deleted_at: datetime) -> bool:
        stmt = (
            update(LotteryNumber)
            .where(LotteryNumber.id == record_id, LotteryNumber.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=deleted_at)
        )
        with _unit_of_work(self._session_factory) as session:
            return session.execute(stmt).rowcount > 0

    def mark_restored(self, record_id: str) -> bool:
        stmt = (
            update(LotteryNumber)
            .where(LotteryNumber.id == record_id, LotteryNumber.is_deleted.is_(True))
            .values(is_deleted=False, deleted_at=None)
        )
        with _unit_of_work(self._session_factory) as session:
            return session.execute(stmt).rowcount > 0

    def mark_all_deleted(self, owner_id: str, deleted_at: datetime) -> int:
        stmt = (
            update(LotteryNumber)
            .where(LotteryNumber.owner_id == owner_id, LotteryNumber.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=deleted_at)
        )
        with _unit_of_work(self._session_factory) as session:
            return int(session.execute(stmt).rowcount or 0)

    def owner_summaries(self, limit: int, offset: int) -> Page[OwnerSummary]:
        deleted = func.sum(case((LotteryNumber.is_deleted.is_(True), 1), else_=0))
        stmt = (
            select(LotteryNumber.owner_id, func.count(), deleted)
            .group_by(LotteryNumber.owner_id)
            .order_by(LotteryNumber.owner_id.asc())
            .offset(int(offset))
            .limit(int(limit))
        )
        count_stmt = select(func.count(func.distinct(LotteryNumber.owner_id)))

        with _unit_of_work(self._session_factory) as session:
            total = int(session.scalar(count_stmt) or 0)
            items = [
                OwnerSummary(owner_id=str(owner), total_numbers=int(t), deleted_numbers=int(d or 0))
                for owner, t, d in session.execute(stmt).all()
            ]
        return Page(items=items, total=total, limit=limit, offset=offset)

    def iter_active(self, game_type: str | None = None, owner_id: str | None = None) -> Iterator[ActiveDraw]:
        conds = _conditions(DrawQuery(owner_id=owner_id, game_type=game_type))
        stmt = (
            select(LotteryNumber.numbers, LotteryNumber.mas_number, LotteryNumber.generated_at)
            .where(and_(True, *conds))
            .order_by(LotteryNumber.generated_at.asc())
        )
        with _unit_of_work(self._session_factory) as session:
            rows = session.execute(stmt).all()
        for numbers, mas, generated_at in rows:
            yield (
                tuple(int(n) for n in (numbers or [])),
                int(mas) if mas is not None else None,
                as_utc(generated_at),  # type: ignore[misc]
            )


class SqlStatisticsRepository(StatisticsRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _dialect_insert(session: Session):  # type: ignore[no-untyped-def]
        name = session.get_bind().dialect.name
        if name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert

            return insert
        if name == "sqlite":
            from sqlalchemy.dialects.sqlite import insert

            return insert
        return None

    def _increment_fallback(self, session: Session, scope: str, number: int, seen_at: datetime) -> None:
        # Dialects without ON CONFLICT: in-database increment, insert when missing,
        # and retry the increment if a concurrent insert won the race.
        bump = (
            update(NumberStatistic)
            .where(NumberStatistic.number == number, NumberStatistic.scope == scope)
            .values(
                frequency=NumberStatistic.frequency + 1,
                last_appearance=seen_at,
                updated_at=seen_at,
            )
        )
        if session.execute(bump).rowcount:
            return
        try:
            with session.begin_nested():
                session.add(
                    NumberStatistic(
                        number=number, scope=scope, frequency=1, last_appearance=seen_at, updated_at=seen_at
                    )
                )
        except IntegrityError:
            session.execute(bump)

    def increment(self, increments: Iterable[tuple[str, int]], seen_at: datetime) -> None:
        pairs = [(str(scope), int(number)) for scope, number in increments]
        if not pairs:
            return

        with _unit_of_work(self._session_factory) as session:
            insert = self._dialect_insert(session)
            for scope, number in pairs:
                if insert is None:
                    self._increment_fallback(session, scope, number, seen_at)
                    continue
                stmt = insert(NumberStatistic).values(
                    number=number,
                    scope=scope,
                    frequency=1,
                    last_appearance=seen_at,
                    updated_at=seen_at,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[NumberStatistic.number, NumberStatistic.scope],
                    set_={
                        "frequency": NumberStatistic.frequency + 1,
                        "last_appearance": stmt.excluded.last_appearance,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                session.execute(stmt)

    def list_scope(self, scope: str) -> list[NumberStatisticRecord]:
        stmt = select(NumberStatistic).where(NumberStatistic.scope == scope).order_by(NumberStatistic.number.asc())
        with _unit_of_work(self._session_factory) as session:
            return [
                NumberStatisticRecord(
                    number=int(row.number),
                    scope=str(row.scope),
                    frequency=int(row.frequency),
                    last_appearance=as_utc(row.last_appearance),
                )
                for row in session.scalars(stmt).all()
            ]

    def replace_scope(self, scope: str, stats: Iterable[NumberStatisticRecord]) -> None:
        fresh = list(stats)
        with _unit_of_work(self._session_factory) as session:
            session.execute(delete(NumberStatistic).where(NumberStatistic.scope == scope))
            session.add_all(
                NumberStatistic(
                    number=int(s.number),
                    scope=scope,
                    frequency=int(s.frequency),
                    last_appearance=s.last_appearance,
                    updated_at=s.last_appearance,
                )
                for s in fresh
            )
