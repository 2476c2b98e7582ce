"""Per-task logging fields.

Fields live in a ContextVar so concurrent asyncio tasks never see each
other's values. ``ContextInjectingFilter`` sits on the root logger and
copies them onto every record.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

_fields: ContextVar[dict[str, Any]] = ContextVar("log_fields", default={})


def get_log_context() -> dict[str, Any]:
    return dict(_fields.get())


def clear_log_context() -> None:
    _fields.set({})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every record logged inside the block.

    Nested blocks layer on top of outer ones; leaving a block restores the
    previous fields.

    Example:
        with log_context(adapter="push"):
            logger.info("Batch started")  # carries adapter="push"
    """
    token = _fields.set({**_fields.get(), **fields})
    try:
        yield
    finally:
        _fields.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Copy context fields onto records; explicit ``extra`` values win."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _fields.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
