"""Backoff policy and an async retry decorator."""

from __future__ import annotations

from delivery_service.utils.retry.decorator import retry
from delivery_service.utils.retry.exceptions import RetryError
from delivery_service.utils.retry.strategies import RetryStrategy

__all__ = ["RetryError", "RetryStrategy", "retry"]
