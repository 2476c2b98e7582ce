"""Errors raised by the retry decorator."""

from __future__ import annotations


class RetryError(Exception):
    """A retried call gave up.

    Attributes:
        last_exception: Exception raised by the final attempt
        attempts: Calls made, the first one included
        elapsed: Seconds between the first call and giving up
    """

    def __init__(self, last_exception: Exception, attempts: int, elapsed: float = 0.0) -> None:
        self.last_exception = last_exception
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Gave up after {attempts} attempts in {elapsed:.1f}s: {last_exception}"
        )
