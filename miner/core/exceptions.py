"""miner.core.exceptions

Errors are part of the interface.

Configuration problems surface before a single hash is computed.
Running out of keyspace is an outcome, not an error.
"""

from __future__ import annotations


class MinerError(Exception):
    """Base exception for the miner."""


class ConfigError(MinerError):
    """Configuration is missing, malformed, or inconsistent.

    ``field`` names the offending input when one can be identified.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PatternError(ConfigError):
    """Target prefix/suffix could not be parsed."""


class SearchStateError(MinerError):
    """Coordinator used out of order, or a worker died mid-search."""
