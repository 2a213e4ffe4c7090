# kvstore

An in-memory key-value server that speaks a plain text protocol over TCP.
The same keys can live in three separate stores:

| Store                          | Commands                                 |
|--------------------------------|------------------------------------------|
| Array (`ArrayStore`)           | `SET`, `GET`, `DEL`, `MOD`, `EXIST`      |
| Red-black tree (`RBTreeStore`) | `RSET`, `RGET`, `RDEL`, `RMOD`, `REXIST` |
| Hash table (`HashStore`)       | `HSET`, `HGET`, `HDEL`, `HMOD`, `HEXIST` |

The array store holds at most 1024 keys. The hash table chains its entries in
1024 slots, hashing a key by the sum of its bytes. The red-black tree keeps
keys in sorted order.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## The protocol

Each chunk of at most 512 bytes that the server receives is one request: the
command, a key, and a value for the commands that take one, separated by
spaces. No line ending is needed; the request ends at the end of the chunk, or
at its first NUL byte. Words past the value are ignored. Every reply ends with
`\r\n`:

| Request         | Replies                       |
|-----------------|-------------------------------|
| `SET key value` | `OK`, `EXIST` or `ERROR`      |
| `GET key`       | the value, or `NO EXIST`      |
| `MOD key value` | `OK`, `NO EXIST` or `ERROR`   |
| `DEL key`       | `OK`, `NO EXIST` or `ERROR`   |
| `EXIST key`     | `EXIST` or `NO EXIST`         |

`SET` answers `EXIST` and leaves the value alone when the key is already
stored; use `MOD` to change it. `ERROR` means the key or value is missing, or,
for `SET`, that the array store is full. The `R…` and `H…` commands behave the
same against their own store.

An empty request or an unknown command gets no reply at all.

A short session:

```
SET name zmh         -> OK
GET name             -> zmh
MOD name zhangsan    -> OK
EXIST name           -> EXIST
DEL name             -> OK
GET name             -> NO EXIST
```

## Running the server

```
kvstore-server [--host HOST] [--port PORT] [--model {reactor,multi-reactor}]
```

The server binds all addresses on port 9999 by default. With
`--model reactor` (the default) it handles every connection on one event loop
(`ReactorServer`); with `--model multi-reactor` one loop accepts connections
and hands them round-robin to four worker loops, each in its own thread
(`MultiReactorServer`). Ctrl-C stops it.

From Python, `kvstore.server.create_server(model, port, handler, host)` builds
either server around any function that takes the request bytes and returns
the reply bytes; it uses a fresh `KVEngine` when no handler is given.
`serve_forever()` runs it, `shutdown()` stops it from another thread, and
`address()` gives the bound `(host, port)`.

## Talking to it

From the command line, send one command and print the reply:

```
kvstore-client [HOST] [PORT] [COMMAND ...]
kvstore-client 127.0.0.1 9999 GET age
```

The host defaults to `127.0.0.1`, the port to 9999 and the command to
`SET age 20`.

From Python, `KVStoreClient` sends one command at a time and returns the reply
as received, `\r\n` included:

```python
from kvstore.client import KVStoreClient

with KVStoreClient("127.0.0.1", 9999) as client:
    print(client.send_command("SET age 20"))
    print(client.send_command("GET age"))
```

The reply is read with a single receive of at most 511 bytes. Sending before
`connect()` raises `NotConnectedError`.

## Using the engine without a network

`KVEngine` holds one of each store and answers requests directly, which is
handy in tests or when embedding the store:

```python
from kvstore.protocol import KVEngine, split_tokens

engine = KVEngine()
engine.handle(b"HSET name zmh")            # b"OK\r\n"
engine.execute(split_tokens("HGET name"))  # "zmh\r\n"
```

`handle()` takes and returns bytes as the server does; `execute()` takes the
request already split into words. Both raise `ProtocolError` for an empty
request or an unknown command.

The stores can also be used on their own. `ArrayStore`, `HashStore` and
`RBTreeStore` all offer `set`, `get`, `modify`, `delete` and `exists`
(`set`, `modify` and `delete` return whether they changed anything), support
`len()`, `in` and iteration over their keys. `ArrayStore.set` raises
`StoreFullError` when it is full. `RBTreeStore` iterates in key order, offers
`items()`, and `check_invariants()` verifies the red-black properties and
returns the black height.

## Benchmarking

`kvstore-bench` connects to a running server, repeats a fixed ten-step script
of set, get, modify, exist and delete requests against one store, reports any
reply that differs from the expected one, and prints the total time and the
requests per second:

```
kvstore-bench [HOST] [PORT] [MODE] [--count N] [--variant {1,2}]
```

`MODE` is 1 for the array store (the default), 2 for the red-black tree and 3
for the hash table. `--count` sets how many times the script runs (1000 by
default); `--variant` picks the key and values it uses (`name` or `age`).
From Python, `build_cases()` makes such a script and `run_cases()` replays it,
returning a `BenchResult` with any `Mismatch` found.

## What it does not do

The data lives only in memory: nothing is written to disk, and everything is
lost when the server stops. There is no authentication and no way to list the
keys over the protocol.