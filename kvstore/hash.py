"""Chained hash table key/value store."""

from __future__ import annotations

from collections.abc import Iterator

from kvstore.array import _Entry

MAX_TABLE_SIZE = 1024


def _slot_of(key: str, slots: int) -> int:
    return sum(key.encode("utf-8")) % slots


class HashStore:
    """Key/value store hashing keys by the sum of their bytes.

    Each slot holds a chain; new entries go to the front of their chain.
    """

    def __init__(self, slots: int = MAX_TABLE_SIZE) -> None:
        if slots <= 0:
            raise ValueError(f"slots must be positive, got {slots}")
        self.slots = slots
        self._buckets: list[list[_Entry]] = [[] for _ in range(slots)]
        self._count = 0

    def _bucket(self, key: str) -> list[_Entry]:
        return self._buckets[_slot_of(key, self.slots)]

    def _entry(self, key: str) -> _Entry | None:
        return next((e for e in self._bucket(key) if e.key == key), None)

    def set(self, key: str, value: str) -> bool:
        """Store ``value`` under a new ``key``; return False if it exists."""
        if self._entry(key) is not None:
            return False
        self._bucket(key).insert(0, _Entry(key, value))
        self._count += 1
        return True

    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        entry = self._entry(key)
        return None if entry is None else entry.value

    def delete(self, key: str) -> bool:
        """Remove ``key``; return False if it was not stored."""
        bucket = self._bucket(key)
        for index, entry in enumerate(bucket):
            if entry.key == key:
                del bucket[index]
                self._count -= 1
                return True
        return False

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
        return (entry.key for bucket in self._buckets for entry in bucket)