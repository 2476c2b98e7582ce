"""Errors raised by repositories and mapped to HTTP responses."""

from __future__ import annotations

from typing import Any


class NotFoundError(Exception):
    """A lookup matched no rows.

    Translated to a 404 by the application's exception handlers.

    Attributes:
        entity: Name of the model that was looked up
        lookup: Column values used for the lookup
    """

    def __init__(self, entity: str, lookup: dict[str, Any]) -> None:
        self.entity = entity
        self.lookup = dict(lookup)
        keys = " ".join(f"{key}={value!r}" for key, value in self.lookup.items())
        self.message = f"No {entity} matching {keys}"
        super().__init__(self.message)


__all__ = ["NotFoundError"]
