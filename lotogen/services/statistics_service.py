"""Number frequency statistics: hot/cold numbers, frequency tables, drift repair."""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from lotogen.auth import RequestContext
from lotogen.errors import InvalidOptionsError, ValidationError
from lotogen.repositories.base import DrawRepository, StatisticsRepository
from lotogen.repositories.records import NumberStatisticRecord
from lotogen.services.game_catalog import GameDefinition, get_game
from lotogen.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

MAX_HOT_COLD_LIMIT = 50


@dataclass(frozen=True)
class HotColdNumbers:
    scope: str
    hot: list[NumberStatisticRecord]
    cold: list[NumberStatisticRecord]


@dataclass(frozen=True)
class NumberFrequency:
    number: int
    frequency: int
    percentage: float
    last_appearance: datetime | None = None


@dataclass(frozen=True)
class FrequencyAnalysis:
    scope: str
    total_appearances: int
    numbers: list[NumberFrequency]
    min_count: int
    max_count: int


@dataclass(frozen=True)
class DriftEntry:
    scope: str
    number: int
    stored: int
    actual: int


def _recency(stat: NumberStatisticRecord) -> float:
    # Never-seen numbers rank as least recent.
    return stat.last_appearance.timestamp() if stat.last_appearance is not None else float("-inf")


def _hot_key(stat: NumberStatisticRecord) -> tuple[int, float, int]:
    return (-stat.frequency, -_recency(stat), stat.number)


def _cold_key(stat: NumberStatisticRecord) -> tuple[int, float, int]:
    return (stat.frequency, -_recency(stat), stat.number)


class StatisticsService:
    """Reads and maintains per-scope number statistics."""

    def __init__(
        self,
        draws: DrawRepository,
        statistics: StatisticsRepository,
        retry: RetryPolicy | None = None,
        statistics_lock: AbstractContextManager[Any] | None = None,
    ) -> None:
        self._draws = draws
        self._stats = statistics
        self._retry = retry or RetryPolicy()
        self._statistics_lock = statistics_lock if statistics_lock is not None else threading.Lock()

    @staticmethod
    def _resolve(game_type: str, secondary: bool) -> GameDefinition:
        game = get_game(game_type)
        if secondary and not game.has_secondary:
            raise InvalidOptionsError(
                message=f"{game.label} has no Más number",
                details={"secondary": [f"{game.name} does not support a secondary number"]},
            )
        return game

    def _full_scope(self, game: GameDefinition, secondary: bool) -> list[NumberStatisticRecord]:
        """Stored counters for a scope, zero-filled over the scope's domain."""

        scope = game.scope(secondary)
        domain = game.scope_domain(secondary)
        stored = self._retry.call(lambda: self._stats.list_scope(scope), description="read statistics")
        by_number = {s.number: s for s in stored if s.number in domain}
        return [by_number.get(n) or NumberStatisticRecord(number=n, scope=scope, frequency=0) for n in domain]

    def get_hot_cold_numbers(self, game_type: str, limit: int = 5, secondary: bool = False) -> HotColdNumbers:
        """Most and least frequent numbers of a scope.

        Ties break on the most recent appearance, then on the lower number.
        Numbers that never appeared take part in the cold list with frequency 0.
        """

        if limit < 1 or limit > MAX_HOT_COLD_LIMIT:
            raise ValidationError(
                message="Invalid limit",
                details={"limit": [f"Must be within 1..{MAX_HOT_COLD_LIMIT}"]},
            )
        game = self._resolve(game_type, secondary)
        stats = self._full_scope(game, secondary)

        hot = sorted((s for s in stats if s.frequency > 0), key=_hot_key)[:limit]
        cold = sorted(stats, key=_cold_key)[:limit]
        return HotColdNumbers(scope=game.scope(secondary), hot=hot, cold=cold)

    def analyze_frequency(self, game_type: str, secondary: bool = False) -> FrequencyAnalysis:
        game = self._resolve(game_type, secondary)
        stats = self._full_scope(game, secondary)

        total = sum(s.frequency for s in stats)
        counts = [s.frequency for s in stats]
        numbers = [
            NumberFrequency(
                number=s.number,
                frequency=s.frequency,
                percentage=round(s.frequency / total * 100.0, 2) if total else 0.0,
                last_appearance=s.last_appearance,
            )
            for s in stats
        ]
        return FrequencyAnalysis(
            scope=game.scope(secondary),
            total_appearances=total,
            numbers=numbers,
            min_count=min(counts) if counts else 0,
            max_count=max(counts) if counts else 0,
        )

    def recompute_frequencies(self, game_type: str, secondary: bool = False) -> dict[int, NumberStatisticRecord]:
        """Ground-truth counters built from non-deleted draws only."""

        game = self._resolve(game_type, secondary)
        scope = game.scope(secondary)
        rows = self._retry.call(lambda: list(self._draws.iter_active(game.name)), description="read active draws")

        out: dict[int, NumberStatisticRecord] = {}
        for main, mas, generated_at in rows:
            numbers = ([mas] if mas is not None else []) if secondary else list(main)
            for n in numbers:
                prev = out.get(int(n))
                if prev is None:
                    out[int(n)] = NumberStatisticRecord(
                        number=int(n), scope=scope, frequency=1, last_appearance=generated_at
                    )
                    continue
                last = prev.last_appearance
                out[int(n)] = NumberStatisticRecord(
                    number=int(n),
                    scope=scope,
                    frequency=prev.frequency + 1,
                    last_appearance=generated_at if last is None or generated_at > last else last,
                )
        return out

    def _scopes(self, game: GameDefinition) -> list[bool]:
        return [False, True] if game.has_secondary else [False]

    def find_drift(self, game_type: str) -> list[DriftEntry]:
        """Counters that disagree with the active draws (e.g. after soft deletes)."""

        game = get_game(game_type)
        drift: list[DriftEntry] = []
        for secondary in self._scopes(game):
            scope = game.scope(secondary)
            actual = self.recompute_frequencies(game.name, secondary)
            stored = {
                s.number: s.frequency
                for s in self._retry.call(lambda: self._stats.list_scope(scope), description="read statistics")
            }
            for n in sorted(set(stored) | set(actual)):
                want = actual[n].frequency if n in actual else 0
                have = stored.get(n, 0)
                if want != have:
                    drift.append(DriftEntry(scope=scope, number=n, stored=have, actual=want))
        return drift

    def rebuild_statistics(self, ctx: RequestContext, game_type: str) -> int:
        """Reset every scope of a game to the ground truth. Returns counters written.

        Holds the statistics lock shared with RecordService, so increments made by
        this process wait until the scope is replaced. Writers in other processes
        are not covered: run it in a maintenance window when several workers serve
        requests.
        """

        ctx.require_admin()
        game = get_game(game_type)
        written = 0
        for secondary in self._scopes(game):
            scope = game.scope(secondary)
            with self._statistics_lock:
                fresh = list(self.recompute_frequencies(game.name, secondary).values())
                self._retry.call(lambda: self._stats.replace_scope(scope, fresh), description="rebuild statistics")
            written += len(fresh)
            logger.info("Rebuilt statistics for %s: %d numbers", scope, len(fresh))
        return written
