"""Fixed-capacity key/value store backed by a flat table of slots."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

ARRAY_SIZE = 1024


class StoreFullError(Exception):
    """Raised when a store has no room left for another key."""


@dataclass(slots=True)
class _Entry:
    key: str
    value: str


class ArrayStore:
    """Key/value store that scans a flat table of slots.

    Deleted slots become holes that later insertions fill first, so the
    table never holds more than ``capacity`` keys.
    """

    def __init__(self, capacity: int = ARRAY_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._slots: list[_Entry | None] = []
        self._count = 0

    def _entries(self) -> Iterator[_Entry]:
        return (slot for slot in self._slots if slot is not None)

    def _entry(self, key: str) -> _Entry | None:
        return next((e for e in self._entries() if e.key == key), None)

    def set(self, key: str, value: str) -> bool:
        """Store ``value`` under a new ``key``.

        Returns False, leaving the stored value alone, if the key exists.
        Raises StoreFullError when every slot is taken.
        """
        if self._count == self.capacity:
            raise StoreFullError(f"array store is full ({self.capacity} keys)")
        if self._entry(key) is not None:
            return False
        entry = _Entry(key, value)
        try:
            hole = self._slots.index(None)
        except ValueError:
            self._slots.append(entry)
        else:
            self._slots[hole] = entry
        self._count += 1
        return True

    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        entry = self._entry(key)
        return None if entry is None else entry.value

    def delete(self, key: str) -> bool:
        """Remove ``key``; return False if it was not stored."""
        index = next(
            (i for i, slot in enumerate(self._slots) if slot is not None and slot.key == key),
            None,
        )
        if index is None:
            return False
        self._slots[index] = None
        while self._slots and self._slots[-1] is None:
            self._slots.pop()
        self._count -= 1
        return True

    def modify(self, key: str, value: str) -> bool:
        """Replace the value of an existing ``key``; return False if absent."""
        entry = self._entry(key)
        if entry is None:
            return False
        entry.value = value
        return True

    def exists(self, key: str) -> bool:
        """Return whether ``key`` is stored."""
        return self._entry(key) is not None

    def __len__(self) -> int:
        return self._count

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __iter__(self) -> Iterator[str]:
        return (entry.key for entry in self._entries())