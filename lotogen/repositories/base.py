"""Storage port: the operations services need from a backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime

from lotogen.repositories.records import (
    DrawQuery,
    DrawRecord,
    NumberStatisticRecord,
    OwnerSummary,
    Page,
)

ActiveDraw = tuple[tuple[int, ...], int | None, datetime]


class DrawRepository(ABC):
    """Persistence for generated draws."""

    @abstractmethod
    def add_many(self, records: Sequence[DrawRecord]) -> None:
        """Insert all records or none.

        Ids that are already stored are skipped, so repeating a call whose commit
        was lost in transit does not duplicate anything.
        """

    def add(self, record: DrawRecord) -> DrawRecord:
        self.add_many([record])
        return record

    @abstractmethod
    def get(self, record_id: str) -> DrawRecord | None: ...

    @abstractmethod
    def find(self, query: DrawQuery) -> Page[DrawRecord]:
        """Page of records ordered by generated_at desc, id desc."""

    @abstractmethod
    def count(self, query: DrawQuery) -> int:
        """Count matching records, ignoring limit/offset."""

    @abstractmethod
    def count_by_game(self, query: DrawQuery) -> dict[str, int]: ...

    @abstractmethod
    def latest_generated_at(self, owner_id: str) -> datetime | None:
        """Newest generated_at among the owner's active records."""

    @abstractmethod
    def mark_deleted(self, record_id: str, deleted_at: datetime) -> bool:
        """Soft delete an active record. Returns False when nothing changed."""

    @abstractmethod
    def mark_restored(self, record_id: str) -> bool:
        """Restore a deleted record. Returns False when nothing changed."""

    @abstractmethod
    def mark_all_deleted(self, owner_id: str, deleted_at: datetime) -> int: ...

    @abstractmethod
    def owner_summaries(self, limit: int, offset: int) -> Page[OwnerSummary]: ...

    @abstractmethod
    def iter_active(self, game_type: str | None = None, owner_id: str | None = None) -> Iterator[ActiveDraw]:
        """Yield (main_numbers, secondary_number, generated_at) of active records, oldest first."""


class StatisticsRepository(ABC):
    """Per-(number, scope) frequency counters."""

    @abstractmethod
    def increment(self, increments: Iterable[tuple[str, int]], seen_at: datetime) -> None:
        """Atomically add one to each (scope, number) counter, creating missing ones."""

    @abstractmethod
    def list_scope(self, scope: str) -> list[NumberStatisticRecord]: ...

    @abstractmethod
    def replace_scope(self, scope: str, stats: Iterable[NumberStatisticRecord]) -> None:
        """Reset a scope to exactly the given counters."""
