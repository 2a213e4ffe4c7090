"""Text command protocol dispatching to the array, red-black tree and hash stores."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from enum import Enum
from typing import Union

from kvstore.array import ArrayStore, StoreFullError
from kvstore.hash import HashStore
from kvstore.rbtree import RBTreeStore

OK = "OK\r\n"
ERROR = "ERROR\r\n"
EXIST = "EXIST\r\n"
NO_EXIST = "NO EXIST\r\n"

_OPERATIONS = ("SET", "GET", "DEL", "MOD", "EXIST")

_Store = Union[ArrayStore, RBTreeStore, HashStore]


class ProtocolError(Exception):
    """Raised for a request that has no answer: empty or of unknown command."""


class Command(Enum):
    """Commands understood by the engine; the prefix selects the store."""

    SET = "SET"
    GET = "GET"
    DEL = "DEL"
    MOD = "MOD"
    EXIST = "EXIST"
    RSET = "RSET"
    RGET = "RGET"
    RDEL = "RDEL"
    RMOD = "RMOD"
    REXIST = "REXIST"
    HSET = "HSET"
    HGET = "HGET"
    HDEL = "HDEL"
    HMOD = "HMOD"
    HEXIST = "HEXIST"

    @property
    def operation(self) -> str:
        """The store operation, without the store prefix."""
        return self.value if self.value in _OPERATIONS else self.value[1:]

    @property
    def prefix(self) -> str:
        """The store prefix: empty for the array, R for the tree, H for the hash."""
        return self.value[: len(self.value) - len(self.operation)]


def split_tokens(message: str) -> list[str]:
    """Split a request on spaces, ignoring runs of spaces."""
    return [token for token in message.split(" ") if token]


class KVEngine:
    """Holds the three stores and answers protocol requests against them."""

    def __init__(self) -> None:
        self.array = ArrayStore()
        self.rbtree = RBTreeStore()
        self.hash = HashStore()
        self._stores: dict[str, _Store] = {
            "": self.array,
            "R": self.rbtree,
            "H": self.hash,
        }
        self._lock = threading.Lock()

    def execute(self, tokens: Sequence[str]) -> str:
        """Run one tokenised request and return the response line.

        Raises ProtocolError when there is no command or it is unknown.
        """
        if not tokens:
            raise ProtocolError("empty request")
        try:
            command = Command(tokens[0])
        except ValueError:
            raise ProtocolError(f"unknown command {tokens[0]!r}") from None
        key = tokens[1] if len(tokens) > 1 else None
        value = tokens[2] if len(tokens) > 2 else None
        store = self._stores[command.prefix]

        with self._lock:
            match command.operation:
                case "SET":
                    if key is None or value is None:
                        return ERROR
                    try:
                        stored = store.set(key, value)
                    except StoreFullError:
                        return ERROR
                    return OK if stored else EXIST
                case "GET":
                    found = None if key is None else store.get(key)
                    return NO_EXIST if found is None else f"{found}\r\n"
                case "DEL":
                    if key is None:
                        return ERROR
                    return OK if store.delete(key) else NO_EXIST
                case "MOD":
                    if key is None or value is None:
                        return ERROR
                    return OK if store.modify(key, value) else NO_EXIST
                case _:
                    if key is not None and store.exists(key):
                        return EXIST
                    return NO_EXIST

    def handle(self, message: bytes) -> bytes:
        """Answer a raw request as received from a client.

        The request ends at its first NUL byte, if any.
        Raises ProtocolError for an empty or unknown request.
        """
        if not message:
            raise ProtocolError("empty request")
        text = message.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        return self.execute(split_tokens(text)).encode("utf-8")