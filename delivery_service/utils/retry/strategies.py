from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
import random


@dataclass(frozen=True, slots=True)
class RetryStrategy:
    """Capped exponential backoff.

    ``calculate_delay(n)`` is ``initial_delay * exponential_base**n`` bounded
    by ``max_delay``, optionally scaled by a random factor from
    ``jitter_range``. The outbox disables jitter so that its retry schedule
    is monotonic.

    Example:
        backoff = RetryStrategy(initial_delay=60, max_delay=3600, jitter=False)
        backoff.delay_after(1)  # timedelta(seconds=60)
        backoff.delay_after(3)  # timedelta(seconds=240)
    """

    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: tuple[float, float] = (0.5, 1.5)
    exceptions: tuple[type[Exception], ...] = (Exception,)
    retry_if: Callable[[Exception], bool] | None = None

    def should_retry(self, exception: Exception) -> bool:
        if self.retry_if is not None:
            return self.retry_if(exception)
        return isinstance(exception, self.exceptions)

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt + 1`` (0-based)."""
        delay = min(self.initial_delay * self.exponential_base**attempt, self.max_delay)
        if self.jitter:
            low, high = self.jitter_range
            delay *= random.uniform(low, high)  # noqa: S311
        return delay

    def delay_after(self, failures: int) -> timedelta:
        """Wait after ``failures`` consecutive failed attempts (1-based)."""
        return timedelta(seconds=self.calculate_delay(max(failures - 1, 0)))
