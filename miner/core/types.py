"""miner.core.types

Lightweight dataclasses for hot-path objects.

Pydantic models own the config boundary; dataclasses keep the search loop lean.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class WorkerState(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(StrEnum):
    FOUND_ELSEWHERE = "found_elsewhere"
    MATCHED = "matched"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MatchResult:
    """The one successful outcome of a search. Immutable once published."""

    candidate: bytes
    digest: bytes
    total_attempts: int
    elapsed_s: float
    worker_id: int
    counter: int | None = None  # only set by the counter strategy
    found_at: datetime | None = None

    @property
    def rate(self) -> float:
        """Candidates per second over the whole run."""
        if self.elapsed_s <= 0:
            return 0.0
        return self.total_attempts / self.elapsed_s

    def to_dict(self, *, address: str | None = None, deployer: str | None = None, pattern: str | None = None) -> dict[str, Any]:
        out: dict[str, Any] = {
            "salt": "0x" + self.candidate.hex(),
            "address": address or "0x" + self.digest.hex(),
            "attempts": int(self.total_attempts),
            "time_seconds": round(float(self.elapsed_s), 3),
            "rate": int(self.rate),
            "worker": int(self.worker_id),
        }
        if self.counter is not None:
            out["nonce"] = int(self.counter)
        if deployer is not None:
            out["deployer"] = deployer
        if pattern is not None:
            out["pattern"] = pattern
        ts = self.found_at or datetime.now(tz=UTC)
        out["timestamp"] = ts.isoformat()
        return out


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    attempts: int
    elapsed_s: float
    rate: float  # attempts/s over the last interval
    average_rate: float  # attempts/s since start
    found: bool
