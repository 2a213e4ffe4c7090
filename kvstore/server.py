"""Event-driven TCP servers answering each received chunk with the handler's reply."""

from __future__ import annotations

import argparse
import functools
import itertools
import logging
import selectors
import socket
import sys
import threading
from collections import deque
from collections.abc import Callable, Sequence
from enum import Enum

from kvstore.protocol import KVEngine, ProtocolError

BUFFER_LENGTH = 512
DEFAULT_PORT = 9999
LISTEN_BACKLOG = 10
MAX_REACTORS = 4

Handler = Callable[[bytes], bytes]

log = logging.getLogger(__name__)


class NetworkModel(Enum):
    """How client connections are spread over event loops."""

    REACTOR = "reactor"
    MULTI_REACTOR = "multi-reactor"


class _Connection:
    __slots__ = ("sock", "outgoing")

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.outgoing = b""


def _listen(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(LISTEN_BACKLOG)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


class _Reactor:
    """One selector loop serving a set of client connections."""

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self._selector = selectors.DefaultSelector()
        self._waker, self._wake_signal = socket.socketpair()
        self._waker.setblocking(False)
        self._wake_signal.setblocking(False)
        self._selector.register(self._waker, selectors.EVENT_READ, self._on_wake)
        self._incoming: deque[socket.socket] = deque()
        self._connections: set[_Connection] = set()
        self._stopping = threading.Event()

    def watch_listener(
        self, listener: socket.socket, on_accept: Callable[[socket.socket], None]
    ) -> None:
        def accept(mask: int) -> None:
            try:
                sock, _ = listener.accept()
            except BlockingIOError:
                return
            except OSError as exc:
                log.warning("accept failed: %s", exc)
                return
            on_accept(sock)

        self._selector.register(listener, selectors.EVENT_READ, accept)

    def attach(self, sock: socket.socket) -> None:
        """Start serving ``sock``; call from the loop's own thread."""
        sock.setblocking(False)
        conn = _Connection(sock)
        self._connections.add(conn)
        self._selector.register(
            sock, selectors.EVENT_READ, functools.partial(self._on_client, conn)
        )

    def hand_over(self, sock: socket.socket) -> None:
        """Queue ``sock`` for this loop from any thread."""
        self._incoming.append(sock)
        self._wake()

    def run(self) -> None:
        while not self._stopping.is_set():
            for key, mask in self._selector.select():
                key.data(mask)

    def stop(self) -> None:
        self._stopping.set()
        self._wake()

    def close(self) -> None:
        for conn in self._connections:
            conn.sock.close()
        self._connections.clear()
        while self._incoming:
            self._incoming.popleft().close()
        self._selector.close()
        self._waker.close()
        self._wake_signal.close()

    def _wake(self) -> None:
        try:
            self._wake_signal.send(b"\0")
        except OSError:
            pass

    def _on_wake(self, mask: int) -> None:
        try:
            while self._waker.recv(BUFFER_LENGTH):
                pass
        except BlockingIOError:
            pass
        while self._incoming:
            self.attach(self._incoming.popleft())

    def _on_client(self, conn: _Connection, mask: int) -> None:
        if mask & selectors.EVENT_READ:
            self._receive(conn)
        elif mask & selectors.EVENT_WRITE:
            self._flush(conn)

    def _interest(self, conn: _Connection, events: int) -> None:
        data = self._selector.get_key(conn.sock).data
        self._selector.modify(conn.sock, events, data)

    def _receive(self, conn: _Connection) -> None:
        try:
            data = conn.sock.recv(BUFFER_LENGTH)
        except BlockingIOError:
            return
        except OSError as exc:
            log.warning("recv failed: %s", exc)
            self._drop(conn)
            return
        if not data:
            self._drop(conn)
            return
        conn.outgoing = self._respond(data)
        self._interest(conn, selectors.EVENT_WRITE)

    def _flush(self, conn: _Connection) -> None:
        if conn.outgoing:
            try:
                sent = conn.sock.send(conn.outgoing)
            except BlockingIOError:
                return
            except OSError as exc:
                log.warning("send failed: %s", exc)
                self._drop(conn)
                return
            conn.outgoing = conn.outgoing[sent:]
            if conn.outgoing:
                return
        self._interest(conn, selectors.EVENT_READ)

    def _respond(self, data: bytes) -> bytes:
        try:
            return self._handler(data)
        except ProtocolError as exc:
            log.info("request left unanswered: %s", exc)
            return b""

    def _drop(self, conn: _Connection) -> None:
        self._selector.unregister(conn.sock)
        self._connections.discard(conn)
        conn.sock.close()


class ReactorServer:
    """Serves every connection from a single event loop."""

    def __init__(self, handler: Handler, port: int = DEFAULT_PORT, host: str = "") -> None:
        self._listener = _listen(host, port)
        self._address: tuple[str, int] = self._listener.getsockname()[:2]
        self._reactor = _Reactor(handler)
        self._reactor.watch_listener(self._listener, self._reactor.attach)

    def address(self) -> tuple[str, int]:
        """The (host, port) the server listens on."""
        return self._address

    def serve_forever(self) -> None:
        """Serve until shutdown() is called, then release the sockets."""
        try:
            self._reactor.run()
        finally:
            self._reactor.close()
            self._listener.close()

    def shutdown(self) -> None:
        """Ask serve_forever() to return; safe from any thread."""
        self._reactor.stop()


class MultiReactorServer:
    """Accepts in one loop and hands connections round-robin to worker loops."""

    def __init__(
        self,
        handler: Handler,
        port: int = DEFAULT_PORT,
        host: str = "",
        reactors: int = MAX_REACTORS,
    ) -> None:
        if reactors < 1:
            raise ValueError(f"need at least one reactor, got {reactors}")
        self._listener = _listen(host, port)
        self._address: tuple[str, int] = self._listener.getsockname()[:2]
        self._acceptor = _Reactor(handler)
        self._workers = [_Reactor(handler) for _ in range(reactors)]
        turn = itertools.cycle(self._workers)
        self._acceptor.watch_listener(
            self._listener, lambda sock: next(turn).hand_over(sock)
        )

    def address(self) -> tuple[str, int]:
        """The (host, port) the server listens on."""
        return self._address

    def serve_forever(self) -> None:
        """Serve until shutdown() is called, then stop the workers and release sockets."""
        threads = [
            threading.Thread(target=worker.run, name=f"reactor-{index}", daemon=True)
            for index, worker in enumerate(self._workers)
        ]
        for thread in threads:
            thread.start()
        try:
            self._acceptor.run()
        finally:
            for worker in self._workers:
                worker.stop()
            for thread in threads:
                thread.join()
            for reactor in (self._acceptor, *self._workers):
                reactor.close()
            self._listener.close()

    def shutdown(self) -> None:
        """Ask serve_forever() to return; safe from any thread."""
        self._acceptor.stop()


def create_server(
    model: NetworkModel | str,
    port: int = DEFAULT_PORT,
    handler: Handler | None = None,
    host: str = "",
) -> ReactorServer | MultiReactorServer:
    """Build a server of the given network model around ``handler``."""
    if handler is None:
        handler = KVEngine().handle
    match NetworkModel(model):
        case NetworkModel.REACTOR:
            return ReactorServer(handler, port, host)
        case NetworkModel.MULTI_REACTOR:
            return MultiReactorServer(handler, port, host)
    raise ValueError(f"unknown network model {model!r}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="kvstore", description="Run the key/value store server.")
    parser.add_argument("--host", default="", help="address to bind (default: all)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--model",
        choices=[model.value for model in NetworkModel],
        default=NetworkModel.REACTOR.value,
    )
    args = parser.parse_args(argv)

    model = NetworkModel(args.model)
    engine = KVEngine()
    try:
        server = create_server(model, args.port, engine.handle, args.host)
    except OSError as exc:
        print(f"bind failed: {exc}", file=sys.stderr)
        return 1

    print(f"network_model: NETWORK_{model.name}")
    print(f"port: {args.port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    return 0