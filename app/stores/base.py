"""Keyed record storage capability shared by the file and redis backends."""
from __future__ import annotations

from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

from app.models.base import RecordModel

R = TypeVar("R", bound=RecordModel)


class RecordStore(Protocol, Generic[R]):
    """
    Minimal keyed persistence for one record type.

    Implementations must give read-after-write visibility within a store
    instance and must make :meth:`replace_if` a compare-and-swap.
    All I/O failures surface as :class:`app.errors.StorageError`.
    """

    def get(self, key: str) -> R | None:
        """Return the record stored under ``key`` or None."""

    def get_all(self) -> list[R]:
        """Return every record (order unspecified)."""

    def upsert(self, record: R) -> None:
        """Insert, or replace the record with the same key."""

    def delete(self, key: str) -> bool:
        """Remove ``key``. :returns: True if it existed."""

    def replace_if(self, key: str, predicate: Callable[[R], bool], record: R) -> bool:
        """
        Atomically replace ``key`` with ``record`` only if the current value
        exists and satisfies ``predicate``.

        :returns: True if the write happened.
        """
