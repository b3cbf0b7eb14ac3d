"""miner.search

Candidate -> digest -> match, across a pool of workers.
"""

from .candidates import CounterCandidates, RandomCandidates, encode_counter
from .coordinator import SearchCoordinator
from .derivation import (
    Create2Derivation,
    Derivation,
    Ed25519KeypairDerivation,
    EthereumKeypairDerivation,
    create2_address,
)
from .pattern import Alignment, Pattern
from .progress import ProgressReporter

__all__ = [
    "Alignment",
    "CounterCandidates",
    "Create2Derivation",
    "Derivation",
    "Ed25519KeypairDerivation",
    "EthereumKeypairDerivation",
    "Pattern",
    "ProgressReporter",
    "RandomCandidates",
    "SearchCoordinator",
    "create2_address",
    "encode_counter",
]
