"""Bounded retry with exponential backoff for transient storage failures."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from lotogen.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff_seconds: float = 0.2
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def delay(self, attempt: int) -> float:
        return float(self.backoff_seconds) * (2 ** (attempt - 1))

    def call(self, operation: Callable[[], T], description: str = "storage call") -> T:
        """Run ``operation``; retry StorageUnavailableError up to ``attempts`` times in total."""

        attempts = max(1, int(self.attempts))
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except StorageUnavailableError:
                if attempt >= attempts:
                    logger.error("%s failed after %d attempts", description, attempts)
                    raise
                delay = self.delay(attempt)
                logger.warning("%s failed (attempt %d/%d), retrying in %.2fs", description, attempt, attempts, delay)
                if delay > 0:
                    self.sleep(delay)
        raise AssertionError("unreachable")
