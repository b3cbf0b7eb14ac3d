"""miner.core.encoding

Hex in, bytes out. Every externally supplied value passes through here once, before
any worker exists, so the hot path only ever sees fixed-length ``bytes``.
"""

from __future__ import annotations

import string

from miner.core.exceptions import ConfigError

_HEXDIGITS = frozenset(string.hexdigits)


def strip_hex(value: str) -> str:
    """Lowercase, trim, drop a leading ``0x``."""
    v = str(value).strip().lower()
    if v.startswith("0x"):
        v = v[2:]
    return v


def check_hex_digits(value: str, *, field: str) -> str:
    v = strip_hex(value)
    bad = next((c for c in v if c not in _HEXDIGITS), None)
    if bad is not None:
        raise ConfigError(f"{field}: invalid hex character {bad!r}", field=field)
    return v


def parse_hex(value: str | bytes, *, size: int | None = None, field: str) -> bytes:
    """Parse ``value`` into bytes, optionally enforcing an exact byte length."""

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
    else:
        digits = check_hex_digits(value, field=field)
        if len(digits) % 2:
            raise ConfigError(f"{field}: odd number of hex digits ({len(digits)})", field=field)
        raw = bytes.fromhex(digits)

    if size is not None and len(raw) != size:
        raise ConfigError(f"{field}: expected {size} bytes, got {len(raw)}", field=field)
    return raw


def to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()
