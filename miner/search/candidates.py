"""miner.search.candidates

Candidate streams.

Two strategies:

- counter: salt = big-endian counter in the low ``counter_bytes`` bytes, zeros above.
  Worker ``w`` of ``W`` visits ``start + w, start + w + W, start + w + 2W, ...``.
  Disjoint, gap-free, restartable from any checkpoint.
- random: fresh bytes from the OS CSPRNG on every draw. No state, not restartable.
  Used when the domain is ~2**256 and collisions are not worth worrying about.

Streams never decide when to stop searching. They end only when a counter partition
runs out of keyspace; everything else is the coordinator's call.
"""

from __future__ import annotations

import os
import secrets
from collections.abc import Iterator, Sequence
from typing import Protocol

SALT_BYTES = 32
DEFAULT_COUNTER_BYTES = 8  # u64 nonce


def encode_counter(counter: int, *, width: int = SALT_BYTES, counter_bytes: int = DEFAULT_COUNTER_BYTES) -> bytes:
    """Fixed-width candidate with ``counter`` big-endian in the low-order bytes."""
    return bytes(width - counter_bytes) + counter.to_bytes(counter_bytes, "big")


def decode_counter(candidate: bytes, *, counter_bytes: int = DEFAULT_COUNTER_BYTES) -> int:
    return int.from_bytes(candidate[-counter_bytes:], "big")


class CandidateStream(Protocol):
    """One worker's share of the search space."""

    counter: int | None  # counter of the most recently yielded candidate, if any

    def __iter__(self) -> Iterator[bytes]: ...


class CandidateSource(Protocol):
    deterministic: bool
    width: int

    def partition(self, worker_id: int, workers: int) -> CandidateStream: ...


class CounterStream:
    def __init__(self, counters: range, *, width: int, counter_bytes: int) -> None:
        self.counters = counters
        self.width = width
        self.counter_bytes = counter_bytes
        self.counter: int | None = None

    def __iter__(self) -> Iterator[bytes]:
        pad = bytes(self.width - self.counter_bytes)
        n = self.counter_bytes
        for c in self.counters:
            self.counter = c
            yield pad + c.to_bytes(n, "big")

    def __len__(self) -> int:
        return len(self.counters)


class CounterCandidates:
    """Deterministic counter keyspace ``[start, stop)`` split by stride."""

    deterministic = True

    def __init__(
        self,
        *,
        start: int = 0,
        stop: int | None = None,
        counter_bytes: int = DEFAULT_COUNTER_BYTES,
        width: int = SALT_BYTES,
    ) -> None:
        if not 1 <= counter_bytes <= width:
            raise ValueError(f"counter_bytes must be in [1, {width}]")
        limit = 1 << (8 * counter_bytes)
        stop = limit if stop is None else int(stop)
        if not 0 <= start <= stop <= limit:
            raise ValueError(f"counter range [{start}, {stop}) does not fit in {counter_bytes} bytes")

        self.start = int(start)
        self.stop = stop
        self.counter_bytes = int(counter_bytes)
        self.width = int(width)

    @property
    def size(self) -> int:
        return self.stop - self.start

    def counters(self, worker_id: int, workers: int) -> range:
        if workers < 1 or not 0 <= worker_id < workers:
            raise ValueError(f"worker_id {worker_id} out of range for {workers} workers")
        return range(self.start + worker_id, self.stop, workers)

    def partition(self, worker_id: int, workers: int) -> CounterStream:
        return CounterStream(self.counters(worker_id, workers), width=self.width, counter_bytes=self.counter_bytes)

    def checkpoint(self, evaluated: Sequence[int]) -> int:
        """Smallest counter below which the whole range has been evaluated.

        ``evaluated[w]`` is how many candidates worker ``w`` has finished, in order.
        Restarting with ``start=checkpoint(...)`` and the same worker count loses nothing.
        """
        if not evaluated:
            return self.start
        return min(self.stop, self.start + len(evaluated) * min(evaluated))


class RandomStream:
    def __init__(self, *, width: int, upper_bound: int | None) -> None:
        self.width = width
        self.upper_bound = upper_bound
        self.counter: int | None = None

    def __iter__(self) -> Iterator[bytes]:
        width = self.width
        if self.upper_bound is None:
            urandom = os.urandom
            while True:
                yield urandom(width)
        else:
            # Scalars in [1, upper_bound): every draw is a usable private key.
            bound = self.upper_bound - 1
            while True:
                yield (secrets.randbelow(bound) + 1).to_bytes(width, "big")


class RandomCandidates:
    """Uniform random candidates, drawn independently by each worker."""

    deterministic = False

    def __init__(self, *, width: int = SALT_BYTES, upper_bound: int | None = None) -> None:
        if width < 1:
            raise ValueError("width must be >= 1")
        if upper_bound is not None and not 2 <= upper_bound <= 1 << (8 * width):
            raise ValueError("upper_bound must be in [2, 2**(8*width)]")
        self.width = int(width)
        self.upper_bound = upper_bound

    def partition(self, worker_id: int, workers: int) -> RandomStream:
        return RandomStream(width=self.width, upper_bound=self.upper_bound)
