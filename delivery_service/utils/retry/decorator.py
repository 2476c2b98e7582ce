from __future__ import annotations

import asyncio
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from delivery_service.infra.metrics.prometheus import retry_attempts_total, retry_exhausted_total

from .exceptions import RetryError
from .strategies import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    retry_if: Callable[[Exception], bool] | None = None,
    stop_after_delay: float | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry an async callable with capped exponential backoff.

    Meant for startup checks, where a dependency may come up a few seconds
    after this process. Exceptions rejected by ``exceptions``/``retry_if``
    propagate immediately.

    Example:
        @retry(max_attempts=5, initial_delay=2.0, stop_after_delay=60.0)
        async def init_database() -> None:
            ...

    Raises:
        RetryError: After ``max_attempts`` calls, or once ``stop_after_delay``
            seconds have passed since the first call.
    """
    strategy = RetryStrategy(
        initial_delay=initial_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        exceptions=exceptions,
        retry_if=retry_if,
    )

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        name = func.__qualname__

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.monotonic()
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not strategy.should_retry(e):
                        raise

                    elapsed = time.monotonic() - started
                    out_of_time = stop_after_delay is not None and elapsed >= stop_after_delay
                    if attempt >= max_attempts or out_of_time:
                        retry_exhausted_total.labels(function=name).inc()
                        logger.error(
                            "Giving up after %d attempts",
                            attempt,
                            extra={"function": name, "elapsed": round(elapsed, 3), "error": str(e)},
                        )
                        raise RetryError(e, attempt, elapsed) from e

                    delay = strategy.calculate_delay(attempt - 1)
                    retry_attempts_total.labels(function=name).inc()
                    logger.warning(
                        "Attempt %d/%d failed, retrying in %.2fs",
                        attempt,
                        max_attempts,
                        delay,
                        extra={"function": name, "error": str(e)},
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
