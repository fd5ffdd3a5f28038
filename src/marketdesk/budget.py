"""Outbound request budget: two fixed-window counters (per minute, per day).

Known limitation: these are fixed windows, not sliding ones. A caller can
spend a full window's capacity just before a boundary and another full
capacity just after it, so up to ~2x capacity may pass in a short span.
A sliding-window log or a token bucket would close that gap.

Concurrency: check() is a read-modify-write with no lock. It is safe under
asyncio because it never awaits. Threaded or multi-process deployments must
move the counters to an atomically updated shared store.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from marketdesk.config import BudgetSettings
from marketdesk.exceptions import RateLimited
from marketdesk.logging import get_logger

logger = get_logger(__name__)

MINUTE_SECONDS = 60.0
DAY_SECONDS = 86_400.0


class BudgetDecision(str, Enum):
    """Outcome of a budget check."""

    ACCEPTED = "accepted"
    RATE_LIMITED = "rate_limited"


@dataclass
class BudgetWindow:
    """A single fixed window counter."""

    name: str
    length_seconds: float
    capacity: int
    window_start: float
    count: int = field(default=0)

    def roll(self, now: float) -> None:
        """Start a fresh window once the current one has run its length."""
        if now - self.window_start >= self.length_seconds:
            self.count = 0
            self.window_start = now

    @property
    def exhausted(self) -> bool:
        return self.count >= self.capacity

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - self.count)


class RequestBudget:
    """Process-wide budget for calls to the upstream data provider.

    Args:
        settings: Per-minute and per-day capacities.
        clock: Monotonic seconds source. Injected in tests.
    """

    def __init__(
        self,
        settings: BudgetSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or BudgetSettings()
        self._clock = clock
        now = clock()
        self._minute = BudgetWindow("minute", MINUTE_SECONDS, settings.per_minute, now)
        self._day = BudgetWindow("day", DAY_SECONDS, settings.per_day, now)

    @property
    def windows(self) -> tuple[BudgetWindow, BudgetWindow]:
        return self._minute, self._day

    def check(self) -> BudgetDecision:
        """Consume one request from both windows if neither is exhausted.

        A rejected check leaves every counter untouched.
        """
        now = self._clock()
        for window in self.windows:
            window.roll(now)

        for window in self.windows:
            if window.exhausted:
                logger.warning(
                    "budget_rejected",
                    window=window.name,
                    capacity=window.capacity,
                )
                return BudgetDecision.RATE_LIMITED

        for window in self.windows:
            window.count += 1
        return BudgetDecision.ACCEPTED

    def acquire(self) -> None:
        """Like check(), but raise RateLimited instead of returning a decision."""
        if self.check() is BudgetDecision.RATE_LIMITED:
            window = next(w for w in self.windows if w.exhausted)
            raise RateLimited(window.name, window.capacity)

    def ensure_available(self, count: int) -> None:
        """Raise RateLimited unless every window can still take ``count`` requests.

        Consumes nothing; callers still acquire() per request.
        """
        now = self._clock()
        for window in self.windows:
            window.roll(now)
            if window.remaining < count:
                logger.warning(
                    "budget_batch_rejected",
                    window=window.name,
                    requested=count,
                    remaining=window.remaining,
                )
                raise RateLimited(window.name, window.capacity)

    def remaining(self) -> dict[str, int]:
        """Remaining quota per window, without consuming any."""
        now = self._clock()
        for window in self.windows:
            window.roll(now)
        return {window.name: window.remaining for window in self.windows}
