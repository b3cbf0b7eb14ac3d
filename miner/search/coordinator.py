"""miner.search.coordinator

A fixed pool of worker threads racing to the first match.

Shared state is exactly two things:
- the found flag (a ``threading.Event``; set happens-before every later ``is_set``)
- the attempt counter (a metrics Counter, flushed every ``batch_size`` candidates)

Each worker owns its partition of the keyspace, so there is no shared iterator to
contend on. The loop per candidate is: check stop -> derive -> match. The check comes
before the hash, so after a match every other worker wastes at most the one derivation
already in flight.

Two workers may both hit a true match inside that window. The first to take the
publish lock wins; the other's result is dropped. Both are valid answers.

Status surface for outside collaborators: ``current_attempts()``, ``is_found()``,
``await_result()``.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from miner.core.exceptions import ConfigError, SearchStateError
from miner.core.metrics import MetricsRegistry
from miner.core.types import MatchResult, StopReason, WorkerState
from miner.search.candidates import CandidateSource, CounterCandidates, RandomCandidates
from miner.search.derivation import (
    Create2Derivation,
    Derivation,
    Ed25519KeypairDerivation,
    EthereumKeypairDerivation,
)
from miner.search.pattern import Pattern

if TYPE_CHECKING:
    from miner.core.config import Config

DEFAULT_BATCH_SIZE = 1024

_log = logging.getLogger("miner.search.coordinator")


class SearchCoordinator:
    """Owns the workers, the shared flag/counter, and the single MatchResult."""

    def __init__(
        self,
        derivation: Derivation,
        pattern: Pattern,
        *,
        candidates: CandidateSource | None = None,
        workers: int = 1,
        batch_size: int = DEFAULT_BATCH_SIZE,
        metrics: MetricsRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if int(workers) < 1:
            raise ConfigError("workers must be >= 1", field="workers")
        if int(batch_size) < 1:
            raise ConfigError("batch_size must be >= 1", field="batch_size")
        pattern.check_fits(derivation.digest_size)

        if candidates is None:
            candidates = derivation.default_candidates()
        if candidates.width != derivation.candidate_size:
            raise ConfigError(
                f"{derivation.name} expects {derivation.candidate_size}-byte candidates, source yields {candidates.width}",
                field="candidates",
            )

        self.derivation = derivation
        self.pattern = pattern
        self.candidates = candidates
        self.workers = int(workers)
        self.batch_size = int(batch_size)
        self.metrics = metrics or MetricsRegistry()
        self.logger = logger or _log

        self._attempts = self.metrics.counter("search.attempts")
        self._found = threading.Event()
        self._stop = threading.Event()
        self._publish_lock = threading.Lock()

        self._threads: list[threading.Thread] = []
        self._states = [WorkerState.PENDING] * self.workers
        self._stop_reasons: list[StopReason | None] = [None] * self.workers
        self._evaluated = [0] * self.workers

        self._hit: tuple[int, bytes, bytes, int | None, float, datetime] | None = None
        self._result: MatchResult | None = None
        self._error: BaseException | None = None
        self._cancelled = False
        self._started_at: float | None = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        metrics: MetricsRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> SearchCoordinator:
        """Build derivation, pattern, and candidate source from a validated Config."""

        search = config.search
        target = config.target
        pattern = Pattern.from_hex(target.prefix, target.suffix)

        derivation: Derivation
        candidates: CandidateSource
        if search.mode == "create2":
            derivation = Create2Derivation(target.factory, target.init_code_hash)
            if search.strategy == "counter":
                candidates = CounterCandidates(
                    start=search.start_counter,
                    stop=search.stop_counter,
                    counter_bytes=search.counter_bytes,
                )
            else:
                candidates = RandomCandidates(width=derivation.candidate_size)
        elif search.mode == "ed25519":
            derivation = Ed25519KeypairDerivation()
            candidates = derivation.default_candidates()
        else:
            derivation = EthereumKeypairDerivation()
            candidates = derivation.default_candidates()

        return cls(
            derivation,
            pattern,
            candidates=candidates,
            workers=search.workers,
            batch_size=search.batch_size,
            metrics=metrics,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> SearchCoordinator:
        if self._started_at is not None:
            raise SearchStateError("search already started")

        self._started_at = time.monotonic()
        self.logger.info(
            "search_started",
            extra={
                "derivation": self.derivation.name,
                "pattern": str(self.pattern),
                "bits": self.pattern.bits,
                "workers": self.workers,
                "batch_size": self.batch_size,
                "strategy": "counter" if self.candidates.deterministic else "random",
            },
        )

        for worker_id in range(self.workers):
            t = threading.Thread(
                target=self._work,
                args=(worker_id,),
                name=f"miner-worker-{worker_id}",
                daemon=True,
            )
            self._threads.append(t)
            self._states[worker_id] = WorkerState.RUNNING
        for t in self._threads:
            t.start()
        return self

    def cancel(self) -> None:
        """Ask every worker to stop at its next loop check. Does not wait."""
        if not self._stop.is_set():
            self._cancelled = True
            self._stop.set()

    def await_result(self, timeout: float | None = None) -> MatchResult | None:
        """Block until every worker has stopped.

        Returns the MatchResult, or None when the counter keyspace was exhausted (or the
        search was cancelled) without a match. Raises TimeoutError if workers are still
        running after ``timeout`` seconds, and SearchStateError if a worker crashed.
        """
        if self._started_at is None:
            raise SearchStateError("search was never started")

        deadline = None if timeout is None else time.monotonic() + timeout
        for t in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            t.join(remaining)
            if t.is_alive():
                raise TimeoutError(f"search still running after {timeout}s")

        if self._error is not None:
            raise SearchStateError(f"worker failed: {self._error!r}") from self._error

        return self._finalize()

    def run(self, timeout: float | None = None) -> MatchResult | None:
        return self.start().await_result(timeout)

    def __enter__(self) -> SearchCoordinator:
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.cancel()
        for t in self._threads:
            t.join()

    # ------------------------------------------------------------------
    # Read-only status surface
    # ------------------------------------------------------------------

    def current_attempts(self) -> int:
        """Lower bound while running; exact once every worker has stopped."""
        return self._attempts.value

    def is_found(self) -> bool:
        return self._found.is_set()

    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    @property
    def elapsed_s(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    @property
    def worker_states(self) -> list[WorkerState]:
        return list(self._states)

    @property
    def stop_reasons(self) -> list[StopReason | None]:
        return list(self._stop_reasons)

    @property
    def outcome(self) -> str:
        if self._started_at is None:
            return "pending"
        if self.is_running():
            return "running"
        if self._error is not None:
            return "failed"
        if self._found.is_set():
            return "found"
        if self._cancelled:
            return "cancelled"
        return "exhausted"

    def checkpoint(self) -> int | None:
        """Counter to restart from without losing coverage. None for random search."""
        if not isinstance(self.candidates, CounterCandidates):
            return None
        if self.outcome == "exhausted":
            return self.candidates.stop
        return self.candidates.checkpoint(list(self._evaluated))

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _work(self, worker_id: int) -> None:
        stream = self.candidates.partition(worker_id, self.workers)
        derive = self.derivation.derive
        matches = self.pattern.matches
        stop = self._stop
        attempts = self._attempts
        batch = self.batch_size

        evaluated = 0
        pending = 0
        reason = StopReason.EXHAUSTED
        try:
            for candidate in stream:
                if stop.is_set():
                    reason = StopReason.FOUND_ELSEWHERE if self._found.is_set() else StopReason.CANCELLED
                    break

                digest = derive(candidate)
                pending += 1

                if matches(digest):
                    attempts.inc(pending)
                    evaluated += pending
                    pending = 0
                    won = self._publish(worker_id, candidate, digest, stream.counter)
                    reason = StopReason.MATCHED if won else StopReason.FOUND_ELSEWHERE
                    break

                if pending >= batch:
                    attempts.inc(pending)
                    evaluated += pending
                    pending = 0
                    self._evaluated[worker_id] = evaluated
        except Exception as e:
            reason = StopReason.FAILED
            self._fail(worker_id, e)
        finally:
            if pending:
                attempts.inc(pending)
                evaluated += pending
            self._evaluated[worker_id] = evaluated
            self._stop_reasons[worker_id] = reason
            self._states[worker_id] = WorkerState.STOPPED
            self.logger.debug(
                "worker_stopped",
                extra={"worker": worker_id, "reason": str(reason), "evaluated": evaluated},
            )

    def _publish(self, worker_id: int, candidate: bytes, digest: bytes, counter: int | None) -> bool:
        """Compare-and-set on the found flag. True only for the single winner."""
        with self._publish_lock:
            if self._found.is_set():
                return False
            elapsed = time.monotonic() - (self._started_at or time.monotonic())
            self._hit = (worker_id, bytes(candidate), bytes(digest), counter, elapsed, datetime.now(tz=UTC))
            self._found.set()
            self._stop.set()

        self.logger.info(
            "match_found",
            extra={
                "worker": worker_id,
                "address": self.derivation.format_digest(digest),
                "counter": counter,
                "elapsed_s": round(elapsed, 3),
            },
        )
        return True

    def _fail(self, worker_id: int, exc: BaseException) -> None:
        self.logger.exception("worker_failed", extra={"worker": worker_id})
        with self._publish_lock:
            if self._error is None:
                self._error = exc
        self._stop.set()

    def _finalize(self) -> MatchResult | None:
        if self._result is not None:
            return self._result

        if self._hit is None:
            self.logger.info(
                "search_finished",
                extra={"outcome": self.outcome, "attempts": self.current_attempts(), "checkpoint": self.checkpoint()},
            )
            return None

        # Built once, after the final flush, so total_attempts is exact.
        worker_id, candidate, digest, counter, elapsed, found_at = self._hit
        self._result = MatchResult(
            candidate=candidate,
            digest=digest,
            total_attempts=self.current_attempts(),
            elapsed_s=elapsed,
            worker_id=worker_id,
            counter=counter,
            found_at=found_at,
        )
        self.logger.info(
            "search_finished",
            extra={"outcome": "found", "attempts": self._result.total_attempts, "rate": int(self._result.rate)},
        )
        return self._result
