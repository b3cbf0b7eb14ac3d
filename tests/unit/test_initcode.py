from __future__ import annotations

import pytest

from miner import CREATE2_FACTORY
from miner.core.exceptions import ConfigError
from miner.integrations.initcode import (
    build_init_code,
    encode_address_word,
    encode_constructor_args,
    encode_uint_word,
    init_code_hash,
)


def test_init_code_hash_of_bare_bytecode() -> None:
    assert init_code_hash("0x6080604052").hex() == "1c3374235d773b2189aed115aa13143020fcdbbe86e38f358cf3e4771b2f0244"


def test_constructor_args_are_part_of_the_hash() -> None:
    args = encode_constructor_args(["address", "uint256"], [CREATE2_FACTORY, "7"])
    assert len(args) == 64
    assert args[:12] == bytes(12)
    assert args[12:32].hex() == CREATE2_FACTORY[2:].lower()
    assert int.from_bytes(args[32:], "big") == 7

    digest = init_code_hash("6080604052", args)
    assert digest.hex() == "d0b24b72211f63d9f741599c666b0e2e1d212b4e6da1ec7f7fb999aaf9d3ed0b"
    assert digest != init_code_hash("6080604052")


def test_string_args_use_dynamic_encoding() -> None:
    args = encode_constructor_args(["string", "string"], ["Eagle", "EAGLE"])
    # two head offsets, then (length, data) per string
    assert int.from_bytes(args[0:32], "big") == 0x40
    assert int.from_bytes(args[32:64], "big") == 0x80
    assert int.from_bytes(args[64:96], "big") == 5
    assert args[96:101] == b"Eagle"


def test_bool_and_bytes_values_are_coerced() -> None:
    args = encode_constructor_args(["bool", "bytes32"], ["true", "0x" + "11" * 32])
    assert args[31] == 1
    assert args[32:] == b"\x11" * 32


def test_mismatched_arity_and_bad_values_raise_config_error() -> None:
    with pytest.raises(ConfigError):
        encode_constructor_args(["address"], [])
    with pytest.raises(ConfigError):
        encode_constructor_args(["uint8"], [300])
    with pytest.raises(ConfigError):
        build_init_code("")
    with pytest.raises(ConfigError):
        build_init_code("0x60806")


def test_single_words_match_tuple_encoding() -> None:
    words = encode_address_word(CREATE2_FACTORY) + encode_uint_word(7)
    assert words[:32] == bytes(12) + bytes.fromhex(CREATE2_FACTORY[2:])
    assert words[32:] == (7).to_bytes(32, "big")
    assert words == encode_constructor_args(["address", "uint256"], [CREATE2_FACTORY, 7])

    with pytest.raises(ConfigError):
        encode_uint_word(-1)
    with pytest.raises(ConfigError):
        encode_address_word("0x1234")
