"""Blocking TCP client for the key/value store server."""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Sequence
from types import TracebackType

BUFFER_SIZE = 512
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9999
EXAMPLE_COMMAND = "SET age 20"


class NotConnectedError(Exception):
    """Raised when a command is sent before connecting."""


class KVStoreClient:
    """Sends one text command at a time and reads the server's reply."""

    def __init__(self, host: str = DEFAULT_HOST, port: int | str = DEFAULT_PORT) -> None:
        self.host = host
        self.port = int(port)
        self._sock: socket.socket | None = None

    @property
    def connected(self) -> bool:
        """Whether the client holds an open connection."""
        return self._sock is not None

    def connect(self) -> None:
        """Open the connection, replacing any previous one.

        Raises OSError if the server cannot be reached.
        """
        self.close()
        self._sock = socket.create_connection((self.host, self.port))

    def close(self) -> None:
        """Close the connection; does nothing if it is not open."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def send_command(self, command: str) -> str:
        """Send ``command`` and return the reply as received.

        The reply is read with a single receive of at most BUFFER_SIZE - 1
        bytes; an empty string means the server closed the connection.
        Raises NotConnectedError if connect() has not been called.
        """
        if self._sock is None:
            raise NotConnectedError("not connected to server")
        self._sock.sendall(command.encode("utf-8"))
        data = self._sock.recv(BUFFER_SIZE - 1)
        return data.decode("utf-8", errors="replace")

    def __enter__(self) -> KVStoreClient:
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="kvstore-client", description="Send one command to a key/value store server."
    )
    parser.add_argument("host", nargs="?", default=DEFAULT_HOST)
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT)
    parser.add_argument("command", nargs="*", help=f"command words (default: {EXAMPLE_COMMAND})")
    args = parser.parse_args(argv)

    command = " ".join(args.command) if args.command else EXAMPLE_COMMAND
    client = KVStoreClient(args.host, args.port)
    try:
        client.connect()
    except OSError as exc:
        print(f"Connection failed: {exc}", file=sys.stderr)
        return 1
    with client:
        try:
            reply = client.send_command(command)
        except OSError as exc:
            print(f"Command failed: {exc}", file=sys.stderr)
            return 1
    print(reply)
    return 0