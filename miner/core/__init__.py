"""miner.core

Core primitives: config, errors, logging, metrics, hot-path types.

Nothing in here knows how a candidate is hashed or matched.
"""

from .config import Config
from .exceptions import ConfigError, MinerError, PatternError, SearchStateError
from .metrics import MetricsRegistry
from .types import MatchResult, ProgressSnapshot, StopReason, WorkerState

__all__ = [
    "Config",
    "ConfigError",
    "MatchResult",
    "MetricsRegistry",
    "MinerError",
    "PatternError",
    "ProgressSnapshot",
    "SearchStateError",
    "StopReason",
    "WorkerState",
]
