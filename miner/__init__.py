"""miner: parallel vanity search for deterministic-deployment addresses.

Find a salt (or a keypair) whose derived address carries a chosen prefix/suffix.
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "CREATE2_FACTORY",
]

__version__ = "0.3.0"

# Arachnid's deterministic deployment proxy. Same address on every EVM chain.
CREATE2_FACTORY = "0x4e59b44847b379578588920cA78FbF26c0B4956C"
