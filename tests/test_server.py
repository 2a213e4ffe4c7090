import socket
import threading
from contextlib import contextmanager

import pytest

from kvstore.protocol import KVEngine, ProtocolError
from kvstore.server import (
    BUFFER_LENGTH,
    MultiReactorServer,
    NetworkModel,
    ReactorServer,
    create_server,
    main,
)

LOCALHOST = "127.0.0.1"
MODELS = [NetworkModel.REACTOR, NetworkModel.MULTI_REACTOR]


@contextmanager
def serving(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.address()
    finally:
        server.shutdown()
        thread.join(timeout=5)


def connect(address):
    return socket.create_connection(address, timeout=5)


def exchange(sock, message):
    sock.sendall(message)
    return sock.recv(BUFFER_LENGTH)


@pytest.mark.parametrize("model", MODELS)
def test_source_sequence_over_tcp(model):
    server = create_server(model, 0, KVEngine().handle, LOCALHOST)
    cases = [
        (b"SET name zmh", b"OK\r\n"),
        (b"GET name", b"zmh\r\n"),
        (b"MOD name zhangsan", b"OK\r\n"),
        (b"GET name", b"zhangsan\r\n"),
        (b"EXIST name", b"EXIST\r\n"),
        (b"DEL name", b"OK\r\n"),
        (b"GET name", b"NO EXIST\r\n"),
        (b"MOD name zhangwei", b"NO EXIST\r\n"),
        (b"EXIST name", b"NO EXIST\r\n"),
        (b"HSET age 99", b"OK\r\n"),
        (b"RSET age 99", b"OK\r\n"),
        (b"RGET age", b"99\r\n"),
    ]
    with serving(server) as address, connect(address) as sock:
        for message, expected in cases:
            assert exchange(sock, message) == expected


@pytest.mark.parametrize("model", MODELS)
def test_shutdown_returns_from_serve_forever(model):
    server = create_server(model, 0, KVEngine().handle, LOCALHOST)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    with connect(server.address()) as sock:
        assert exchange(sock, b"SET name zmh") == b"OK\r\n"
    server.shutdown()
    thread.join(timeout=5)
    assert not thread.is_alive()


@pytest.mark.parametrize("model", MODELS)
def test_protocol_error_leaves_request_unanswered(model):
    def handler(data):
        if data == b"bad":
            raise ProtocolError("bad request")
        return data.upper()

    server = create_server(model, 0, handler, LOCALHOST)
    with serving(server) as address, connect(address) as sock:
        sock.sendall(b"bad")
        sock.settimeout(0.3)
        with pytest.raises(TimeoutError):
            sock.recv(BUFFER_LENGTH)
        sock.settimeout(5)
        assert exchange(sock, b"ok") == b"OK"


def test_multi_reactor_shares_one_engine_between_clients():
    engine = KVEngine()
    server = MultiReactorServer(engine.handle, 0, LOCALHOST, reactors=2)
    with serving(server) as address:
        clients = [connect(address) for _ in range(5)]
        try:
            for index, sock in enumerate(clients):
                assert exchange(sock, f"HSET key{index} v{index}".encode()) == b"OK\r\n"
            for index, sock in enumerate(reversed(clients)):
                expected = f"v{len(clients) - 1 - index}\r\n".encode()
                assert exchange(sock, f"HGET key{len(clients) - 1 - index}".encode()) == expected
        finally:
            for sock in clients:
                sock.close()
    assert len(engine.hash) == len(clients)


@pytest.mark.parametrize("model", MODELS)
def test_server_keeps_serving_after_client_leaves(model):
    server = create_server(model, 0, KVEngine().handle, LOCALHOST)
    with serving(server) as address:
        with connect(address) as first:
            assert exchange(first, b"RSET name zmh") == b"OK\r\n"
        with connect(address) as second:
            assert exchange(second, b"RGET name") == b"zmh\r\n"


def test_large_response_arrives_whole():
    chunk = b"x" * 100
    server = ReactorServer(lambda data: data * 20000, 0, LOCALHOST)
    with serving(server) as address, connect(address) as sock:
        sock.sendall(chunk)
        expected = len(chunk) * 20000
        received = bytearray()
        while len(received) < expected:
            part = sock.recv(65536)
            assert part
            received.extend(part)
    assert bytes(received) == chunk * 20000


@pytest.mark.parametrize(
    ("model", "cls"),
    [("reactor", ReactorServer), ("multi-reactor", MultiReactorServer)],
)
def test_create_server_picks_model(model, cls):
    server = create_server(model, 0, KVEngine().handle, LOCALHOST)
    host, port = server.address()
    server.shutdown()
    server.serve_forever()
    assert isinstance(server, cls)
    assert host == LOCALHOST
    assert port > 0


def test_create_server_rejects_unknown_model():
    with pytest.raises(ValueError):
        create_server("threaded", 0, KVEngine().handle, LOCALHOST)


def test_multi_reactor_needs_a_worker():
    with pytest.raises(ValueError):
        MultiReactorServer(KVEngine().handle, 0, LOCALHOST, reactors=0)


def test_main_rejects_unknown_model():
    with pytest.raises(SystemExit) as excinfo:
        main(["--model", "threaded"])
    assert excinfo.value.code == 2


def test_main_reports_bind_failure():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
        holder.bind((LOCALHOST, 0))
        holder.listen(1)
        port = holder.getsockname()[1]
        assert main(["--host", LOCALHOST, "--port", str(port)]) == 1