"""Plain records passed between services and storage backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from math import ceil
from typing import Generic, TypeVar

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from storage."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class DrawRecord:
    id: str
    owner_id: str
    game_type: str
    main_numbers: tuple[int, ...]
    secondary_number: int | None
    generated_at: datetime
    is_deleted: bool = False
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class NumberStatisticRecord:
    number: int
    scope: str
    frequency: int
    last_appearance: datetime | None = None


@dataclass(frozen=True)
class DrawQuery:
    """Filters for draw listings and counts. ``owner_id=None`` means all owners."""

    owner_id: str | None = None
    game_type: str | None = None
    include_deleted: bool = False
    deleted_only: bool = False
    generated_since: datetime | None = None
    limit: int = 10
    offset: int = 0


@dataclass(frozen=True)
class OwnerSummary:
    owner_id: str
    total_numbers: int
    deleted_numbers: int


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total: int = 0
    limit: int = 10
    offset: int = 0

    @property
    def total_pages(self) -> int:
        return int(ceil(self.total / self.limit)) if self.limit else 0

    @property
    def current_page(self) -> int:
        return (self.offset // self.limit) + 1 if self.limit else 1
