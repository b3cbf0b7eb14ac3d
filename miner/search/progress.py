"""miner.search.progress

Best-effort throughput reporting.

A daemon thread samples the coordinator's attempt counter every ``interval_s`` and
hands a ProgressSnapshot to a sink (default: an INFO log line). It never takes a lock
the workers hold, and nothing it does can stop the search: a failing sink is logged
and the next tick carries on.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

from miner.core.metrics import MetricsRegistry
from miner.core.types import ProgressSnapshot

_log = logging.getLogger("miner.search.progress")


class SearchStatus(Protocol):
    def current_attempts(self) -> int: ...

    def is_found(self) -> bool: ...


def format_rate(rate: float) -> str:
    if rate >= 1_000_000:
        return f"{rate / 1_000_000:.2f} MH/s"
    if rate >= 1_000:
        return f"{rate / 1_000:.1f} kH/s"
    return f"{rate:.0f} H/s"


class ProgressReporter:
    def __init__(
        self,
        source: SearchStatus,
        *,
        interval_s: float = 5.0,
        sink: Callable[[ProgressSnapshot], None] | None = None,
        metrics: MetricsRegistry | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.source = source
        self.interval_s = float(interval_s)
        self.logger = logger or _log
        self.sink = sink or self._log_snapshot
        self.clock = clock

        self._rate = metrics.gauge("search.rate") if metrics is not None else None
        self._elapsed = metrics.gauge("search.elapsed_s") if metrics is not None else None

        self._halt = threading.Event()
        self._thread: threading.Thread | None = None
        self._started_at = clock()
        self._last_t = self._started_at
        self._last_attempts = 0
        self.failures = 0

    def sample(self) -> ProgressSnapshot:
        """Read the counter once and advance the rate window."""
        now = self.clock()
        attempts = int(self.source.current_attempts())
        found = bool(self.source.is_found())

        dt = now - self._last_t
        rate = (attempts - self._last_attempts) / dt if dt > 0 else 0.0
        total = now - self._started_at
        average = attempts / total if total > 0 else 0.0

        self._last_t = now
        self._last_attempts = attempts

        if self._rate is not None:
            self._rate.set(rate)
        if self._elapsed is not None:
            self._elapsed.set(total)

        return ProgressSnapshot(attempts=attempts, elapsed_s=total, rate=rate, average_rate=average, found=found)

    def tick(self) -> ProgressSnapshot | None:
        """One reporting step. Returns None if sampling or the sink failed."""
        try:
            snap = self.sample()
            self.sink(snap)
            return snap
        except Exception:
            self.failures += 1
            self.logger.warning("progress_report_failed", exc_info=True)
            return None

    def start(self) -> ProgressReporter:
        if self._thread is not None:
            return self
        self._started_at = self._last_t = self.clock()
        self._last_attempts = 0
        self._thread = threading.Thread(target=self._run, name="miner-progress", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: float | None = None) -> None:
        self._halt.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> ProgressReporter:
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._halt.wait(self.interval_s):
            try:
                if self.source.is_found():
                    break
            except Exception:
                self.logger.warning("progress_report_failed", exc_info=True)
                continue
            self.tick()

    def _log_snapshot(self, snap: ProgressSnapshot) -> None:
        self.logger.info(
            "search_progress",
            extra={
                "attempts": snap.attempts,
                "rate": format_rate(snap.rate),
                "avg_rate": format_rate(snap.average_rate),
                "elapsed_s": round(snap.elapsed_s, 1),
            },
        )
