"""Single wall-clock budget shared by every I/O step of one resolution."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from linkmeta.core.exceptions import DeadlineExceeded

T = TypeVar("T")


class Deadline:
    """An absolute point on the monotonic clock.

    Passed explicitly through the fetch strategy and stream reader; every
    awaited network operation runs through :meth:`run` so no single step can
    outlive the overall budget.
    """

    def __init__(self, timeout_s: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = clock() + timeout_s

    @classmethod
    def from_ms(cls, timeout_ms: int) -> "Deadline":
        return cls(timeout_ms / 1000)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    async def run(self, aw: Awaitable[T]) -> T:
        """Await ``aw``, raising DeadlineExceeded if the budget runs out first."""
        if self.expired:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise DeadlineExceeded()
        try:
            return await asyncio.wait_for(aw, timeout=self.remaining())
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded() from e
