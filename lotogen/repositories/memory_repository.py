"""In-process storage backend (tests, local demos)."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import replace
from datetime import datetime
from threading import Lock

from lotogen.repositories.base import ActiveDraw, DrawRepository, StatisticsRepository
from lotogen.repositories.records import (
    DrawQuery,
    DrawRecord,
    NumberStatisticRecord,
    OwnerSummary,
    Page,
)


def _matches(record: DrawRecord, query: DrawQuery) -> bool:
    if query.owner_id is not None and record.owner_id != query.owner_id:
        return False
    if query.game_type is not None and record.game_type != query.game_type:
        return False
    if query.deleted_only and not record.is_deleted:
        return False
    if not query.include_deleted and not query.deleted_only and record.is_deleted:
        return False
    if query.generated_since is not None and record.generated_at < query.generated_since:
        return False
    return True


class InMemoryDrawRepository(DrawRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._records: dict[str, DrawRecord] = {}

    def add_many(self, records: Sequence[DrawRecord]) -> None:
        with self._lock:
            for record in records:
                self._records.setdefault(record.id, record)

    def get(self, record_id: str) -> DrawRecord | None:
        with self._lock:
            return self._records.get(record_id)

    def _select(self, query: DrawQuery) -> list[DrawRecord]:
        with self._lock:
            rows = [r for r in self._records.values() if _matches(r, query)]
        rows.sort(key=lambda r: (r.generated_at, r.id), reverse=True)
        return rows

    def find(self, query: DrawQuery) -> Page[DrawRecord]:
        rows = self._select(query)
        items = rows[query.offset : query.offset + query.limit]
        return Page(items=items, total=len(rows), limit=query.limit, offset=query.offset)

    def count(self, query: DrawQuery) -> int:
        return len(self._select(query))

    def count_by_game(self, query: DrawQuery) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self._select(query):
            counts[r.game_type] = counts.get(r.game_type, 0) + 1
        return counts

    def latest_generated_at(self, owner_id: str) -> datetime | None:
        rows = self._select(DrawQuery(owner_id=owner_id))
        return rows[0].generated_at if rows else None

    def mark_deleted(self, record_id: str, deleted_at: datetime) -> bool:
        with self._lock:
            record = self._records.get(record_id)
            if record is None or record.is_deleted:
                return False
            self._records[record_id] = replace(record, is_deleted=True, deleted_at=deleted_at)
            return True

    def mark_restored(self, record_id: str) -> bool:
        with self._lock:
            record = self._records.get(record_id)
            if record is None or not record.is_deleted:
                return False
            self._records[record_id] = replace(record, is_deleted=False, deleted_at=None)
            return True

    def mark_all_deleted(self, owner_id: str, deleted_at: datetime) -> int:
        changed = 0
        with self._lock:
            for record_id, record in self._records.items():
                if record.owner_id == owner_id and not record.is_deleted:
                    self._records[record_id] = replace(record, is_deleted=True, deleted_at=deleted_at)
                    changed += 1
        return changed

    def owner_summaries(self, limit: int, offset: int) -> Page[OwnerSummary]:
        totals: dict[str, list[int]] = {}
        with self._lock:
            for r in self._records.values():
                entry = totals.setdefault(r.owner_id, [0, 0])
                entry[0] += 1
                if r.is_deleted:
                    entry[1] += 1
        summaries = [
            OwnerSummary(owner_id=owner, total_numbers=t, deleted_numbers=d)
            for owner, (t, d) in sorted(totals.items())
        ]
        return Page(items=summaries[offset : offset + limit], total=len(summaries), limit=limit, offset=offset)

    def iter_active(self, game_type: str | None = None, owner_id: str | None = None) -> Iterator[ActiveDraw]:
        for r in reversed(self._select(DrawQuery(game_type=game_type, owner_id=owner_id))):
            yield r.main_numbers, r.secondary_number, r.generated_at


class InMemoryStatisticsRepository(StatisticsRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._stats: dict[tuple[str, int], NumberStatisticRecord] = {}

    def increment(self, increments: Iterable[tuple[str, int]], seen_at: datetime) -> None:
        with self._lock:
            for scope, number in increments:
                key = (scope, int(number))
                current = self._stats.get(key)
                if current is None:
                    self._stats[key] = NumberStatisticRecord(
                        number=int(number), scope=scope, frequency=1, last_appearance=seen_at
                    )
                    continue
                last = current.last_appearance
                self._stats[key] = replace(
                    current,
                    frequency=current.frequency + 1,
                    last_appearance=seen_at if last is None or seen_at > last else last,
                )

    def list_scope(self, scope: str) -> list[NumberStatisticRecord]:
        with self._lock:
            rows = [s for (sc, _), s in self._stats.items() if sc == scope]
        return sorted(rows, key=lambda s: s.number)

    def replace_scope(self, scope: str, stats: Iterable[NumberStatisticRecord]) -> None:
        fresh = list(stats)
        with self._lock:
            for key in [k for k in self._stats if k[0] == scope]:
                del self._stats[key]
            for s in fresh:
                self._stats[(scope, int(s.number))] = replace(s, scope=scope)
