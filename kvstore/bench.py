"""Functional benchmark that replays a fixed command script against a server."""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from kvstore.client import DEFAULT_HOST, DEFAULT_PORT, KVStoreClient

DEFAULT_COUNT = 1000

MODES = {1: ("", "array"), 2: ("R", "rbtree"), 3: ("H", "hash")}

VARIANTS = {
    1: ("name", "zmh", "zhangsan", "zhangwei"),
    2: ("age", "99", "222", "777"),
}

Case = tuple[str, str]


class _Sender(Protocol):
    def send_command(self, command: str) -> str: ...


@dataclass(frozen=True)
class Mismatch:
    """A reply that differed from the one expected."""

    command: str
    expected: str
    received: str

    def __str__(self) -> str:
        return f"FAILED: '{self.received}' != '{self.expected}' "


@dataclass
class BenchResult:
    """Timing and failures of one benchmark run."""

    requests: int
    elapsed: float
    mismatches: list[Mismatch] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> int:
        """Elapsed time in whole milliseconds."""
        return int(self.elapsed * 1000)

    @property
    def qps(self) -> int:
        """Requests per second, counting at least one millisecond."""
        return self.requests * 1000 // max(self.elapsed_ms, 1)


def build_cases(prefix: str, key: str, first: str, second: str, third: str) -> list[Case]:
    """The ten-step script of commands and replies for one store."""
    ok, exist, no_exist = "OK\r\n", "EXIST\r\n", "NO EXIST\r\n"
    return [
        (f"{prefix}SET {key} {first}", ok),
        (f"{prefix}GET {key}", f"{first}\r\n"),
        (f"{prefix}MOD {key} {second}", ok),
        (f"{prefix}GET {key}", f"{second}\r\n"),
        (f"{prefix}EXIST {key}", exist),
        (f"{prefix}DEL {key}", ok),
        (f"{prefix}GET {key}", no_exist),
        (f"{prefix}MOD {key} {third}", no_exist),
        (f"{prefix}EXIST {key}", no_exist),
        (f"{prefix}EXIST {key}", no_exist),
    ]


def run_cases(client: _Sender, cases: Sequence[Case], count: int) -> BenchResult:
    """Replay ``cases`` ``count`` times, recording every unexpected reply."""
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    mismatches: list[Mismatch] = []
    start = time.perf_counter()
    for _ in range(count):
        for command, expected in cases:
            received = client.send_command(command)
            if received != expected:
                mismatches.append(Mismatch(command, expected, received))
    elapsed = time.perf_counter() - start
    return BenchResult(len(cases) * count, elapsed, mismatches)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="kvstore-bench", description="Replay a command script against a server."
    )
    parser.add_argument("host", nargs="?", default=DEFAULT_HOST)
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "mode", nargs="?", type=int, choices=sorted(MODES), default=1,
        help="1: array, 2: rbtree, 3: hash",
    )
    parser.add_argument("--count", type=int, default=DEFAULT_COUNT)
    parser.add_argument("--variant", type=int, choices=sorted(VARIANTS), default=1)
    args = parser.parse_args(argv)
    if args.count < 1:
        parser.error("--count must be positive")

    prefix, name = MODES[args.mode]
    cases = build_cases(prefix, *VARIANTS[args.variant])
    client = KVStoreClient(args.host, args.port)
    try:
        client.connect()
    except OSError as exc:
        print(f"connect: {exc}", file=sys.stderr)
        return 1
    with client:
        result = run_cases(client, cases, args.count)
    for mismatch in result.mismatches:
        print(mismatch)
    print(f"{name} testcase --> total time: {result.elapsed_ms} ms, qps: {result.qps}")
    return 0