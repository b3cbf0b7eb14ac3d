"""miner.integrations.forge

Generator-style front end to the search.

Yields progress dicts while workers grind, then exactly one terminal dict:
``found`` or ``exhausted``. Closing the generator early cancels the workers.
"""

from __future__ import annotations

import queue
from collections.abc import Generator
from typing import Any

from miner.search.coordinator import DEFAULT_BATCH_SIZE, SearchCoordinator
from miner.search.derivation import Derivation, EthereumKeypairDerivation
from miner.search.pattern import Pattern
from miner.search.progress import ProgressReporter


def grind(
    pattern: str | Pattern = "b1",
    *,
    derivation: Derivation | None = None,
    workers: int = 1,
    batch_size: int = DEFAULT_BATCH_SIZE,
    report_interval: float = 1.0,
) -> Generator[dict[str, Any], None, None]:
    """Grind for a vanity address.

    ``pattern`` is ``Pattern`` or shorthand text (``"b1e"``, ``"0x47...ea91e"``). The
    default derivation is an Ethereum keypair, so the found dict carries a
    ``private_key``; CREATE2 derivations report a ``salt`` instead.
    """

    target = pattern if isinstance(pattern, Pattern) else Pattern.parse(pattern)
    deriv = derivation or EthereumKeypairDerivation()

    coordinator = SearchCoordinator(deriv, target, workers=workers, batch_size=batch_size)
    snapshots: queue.Queue = queue.Queue()
    reporter = ProgressReporter(coordinator, interval_s=report_interval, sink=snapshots.put)

    coordinator.start()
    reporter.start()
    try:
        while coordinator.is_running():
            try:
                snap = snapshots.get(timeout=report_interval)
            except queue.Empty:
                continue
            yield {
                "type": "progress",
                "candidates": snap.attempts,
                "elapsed_ms": int(snap.elapsed_s * 1000),
                "rate": int(snap.average_rate),
            }
        result = coordinator.await_result()
    finally:
        reporter.stop()
        coordinator.cancel()

    if result is None:
        yield {
            "type": "exhausted",
            "candidates": coordinator.current_attempts(),
            "elapsed_ms": int(coordinator.elapsed_s * 1000),
        }
        return

    found: dict[str, Any] = {
        "type": "found",
        "address": deriv.format_digest(result.digest),
        "candidates": result.total_attempts,
        "elapsed_ms": int(result.elapsed_s * 1000),
    }
    if deriv.name == "create2":
        found["salt"] = "0x" + result.candidate.hex()
    else:
        found["private_key"] = result.candidate.hex()
    yield found
