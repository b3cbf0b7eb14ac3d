"""miner.search.derivation

Candidate -> digest. Pure, total, deterministic.

CREATE2 (EIP-1014):

    address = keccak256(0xff ++ factory[20] ++ salt[32] ++ init_code_hash[32])[12:]

The byte layout is the whole contract. A wrong offset or endianness does not fail; it
silently mines addresses nobody can deploy to. The regression tests pin known outputs.

Keypair variants take a 32-byte seed/private key and return its public encoding:
- ed25519: the raw 32-byte public key (Solana-style addresses are this key).
- ethereum: the 20-byte address of the secp256k1 public key.

Note: Python's hashlib.sha3_256 is NOT keccak256.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from eth_utils import keccak, to_canonical_address, to_checksum_address

from miner.core.encoding import parse_hex, to_hex
from miner.search.candidates import SALT_BYTES, CandidateSource, CounterCandidates, RandomCandidates

CREATE2_TAG = b"\xff"
ADDRESS_BYTES = 20
HASH_BYTES = 32

# secp256k1 group order. Valid private keys are in [1, n).
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@runtime_checkable
class Derivation(Protocol):
    """Single-method capability the coordinator drives. Everything else is metadata."""

    name: str
    candidate_size: int
    digest_size: int

    def derive(self, candidate: bytes) -> bytes: ...

    def format_digest(self, digest: bytes) -> str: ...

    def default_candidates(self) -> CandidateSource: ...


def keccak256(data: bytes) -> bytes:
    return keccak(data)


def create2_address(factory: bytes, salt: bytes, init_code_hash: bytes) -> bytes:
    """Deterministic-deployment address. All three inputs must already be the right length."""
    return keccak(CREATE2_TAG + factory + salt + init_code_hash)[12:]


class Create2Derivation:
    name = "create2"
    candidate_size = SALT_BYTES
    digest_size = ADDRESS_BYTES

    def __init__(self, factory: str | bytes, init_code_hash: str | bytes) -> None:
        self.factory = parse_hex(factory, size=ADDRESS_BYTES, field="factory")
        self.init_code_hash = parse_hex(init_code_hash, size=HASH_BYTES, field="init_code_hash")
        self._head = CREATE2_TAG + self.factory
        self._tail = self.init_code_hash

    def derive(self, candidate: bytes) -> bytes:
        return keccak(self._head + candidate + self._tail)[12:]

    def format_digest(self, digest: bytes) -> str:
        return to_checksum_address(digest)

    def default_candidates(self) -> CounterCandidates:
        return CounterCandidates()

    def __repr__(self) -> str:
        return f"Create2Derivation(factory={to_checksum_address(self.factory)}, init_code_hash={to_hex(self.init_code_hash)})"


class Ed25519KeypairDerivation:
    name = "ed25519"
    candidate_size = 32
    digest_size = 32

    def derive(self, candidate: bytes) -> bytes:
        return (
            Ed25519PrivateKey.from_private_bytes(candidate)
            .public_key()
            .public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)
        )

    def format_digest(self, digest: bytes) -> str:
        return digest.hex()

    def default_candidates(self) -> RandomCandidates:
        return RandomCandidates(width=self.candidate_size)


class EthereumKeypairDerivation:
    name = "ethereum"
    candidate_size = 32
    digest_size = ADDRESS_BYTES

    def __init__(self) -> None:
        # Lazy import: eth-account pulls in a lot.
        from eth_account import Account

        self._account = Account

    def derive(self, candidate: bytes) -> bytes:
        return to_canonical_address(self._account.from_key(candidate).address)

    def format_digest(self, digest: bytes) -> str:
        return to_checksum_address(digest)

    def default_candidates(self) -> RandomCandidates:
        return RandomCandidates(width=self.candidate_size, upper_bound=SECP256K1_N)
