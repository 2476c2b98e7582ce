"""Debug logging whose message is only built when the level is enabled."""

from __future__ import annotations

import logging
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Accepts a zero-argument callable wherever a message or arg is expected.

    Example:
        logger = get_lazy_logger(__name__)
        logger.debug(lambda: f"claimed {len(rows)} rows for {adapter}")
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        msg = msg() if callable(msg) else msg
        args = tuple(arg() if callable(arg) else arg for arg in args)
        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)


def get_lazy_logger(name: str) -> LazyLoggerAdapter:
    return LazyLoggerAdapter(logging.getLogger(name), {})
