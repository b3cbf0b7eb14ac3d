"""miner.integrations.initcode

Init-code hash for CREATE2: keccak256(creation bytecode ++ ABI-encoded constructor args).

Constructor args are part of the hash. Mine against bytecode alone and the salt
will be useless the moment the contract is deployed with real arguments.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError

from miner.core.encoding import parse_hex
from miner.core.exceptions import ConfigError
from miner.search.derivation import keccak256


def _normalize(abi_type: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    if abi_type.startswith(("uint", "int")):
        return int(value, 0)
    if abi_type == "bool":
        return value.strip().lower() in {"1", "true", "yes", "y"}
    if abi_type.startswith("bytes"):
        return parse_hex(value, field="constructor_args")
    return value


def encode_address_word(address: str | bytes) -> bytes:
    """One 32-byte ABI word: the address left-padded with zeros."""
    return encode_constructor_args(["address"], [parse_hex(address, size=20, field="address")])


def encode_uint_word(value: int) -> bytes:
    return encode_constructor_args(["uint256"], [value])


def encode_constructor_args(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode constructor arguments. String values are coerced per their type."""

    if len(types) != len(values):
        raise ConfigError(f"constructor: {len(types)} types but {len(values)} values", field="constructor_args")
    types = [t.strip() for t in types]
    try:
        return abi_encode(types, [_normalize(t, v) for t, v in zip(types, values)])
    except (EncodingError, TypeError, ValueError) as e:
        raise ConfigError(f"constructor args do not encode: {e}", field="constructor_args") from e


def build_init_code(bytecode: str | bytes, constructor_args: bytes = b"") -> bytes:
    code = parse_hex(bytecode, field="bytecode")
    if not code:
        raise ConfigError("bytecode is empty", field="bytecode")
    return code + bytes(constructor_args)


def init_code_hash(bytecode: str | bytes, constructor_args: bytes = b"") -> bytes:
    return keccak256(build_init_code(bytecode, constructor_args))
