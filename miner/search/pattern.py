"""miner.search.pattern

Prefix/suffix predicate over a fixed-length digest.

Patterns are written the way addresses are read: hex nibbles. An even number of
nibbles compares whole bytes. An odd-length suffix starts mid-byte, so only the low
nibble of its first byte is compared; an odd-length prefix ends mid-byte, so only the
high nibble of its last byte is compared.

    0x47...ea91e  ->  digest[0] == 0x47
                      digest[-3] & 0x0f == 0x0e
                      digest[-2:] == a9 1e
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from miner.core.encoding import check_hex_digits
from miner.core.exceptions import ConfigError, PatternError

SEPARATOR = "..."


class Alignment(StrEnum):
    BYTE = "byte"
    NIBBLE = "nibble"


@dataclass(frozen=True, slots=True)
class Pattern:
    """Immutable target pattern.

    ``prefix``/``suffix`` are the byte forms. With nibble alignment the unused half of
    the boundary byte must be zero: a nibble suffix ``e a9 1e`` is stored as
    ``0e a9 1e``, a nibble prefix ``b1 e`` as ``b1 e0``.
    """

    prefix: bytes = b""
    suffix: bytes = b""
    suffix_alignment: Alignment = Alignment.BYTE
    prefix_alignment: Alignment = Alignment.BYTE

    # Precomputed views for the hot path.
    _prefix_whole: bytes = field(init=False, repr=False, compare=False)
    _prefix_nibble: int | None = field(init=False, repr=False, compare=False)
    _suffix_whole: bytes = field(init=False, repr=False, compare=False)
    _suffix_nibble: int | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        prefix = bytes(self.prefix)
        suffix = bytes(self.suffix)
        object.__setattr__(self, "prefix", prefix)
        object.__setattr__(self, "suffix", suffix)
        object.__setattr__(self, "suffix_alignment", Alignment(self.suffix_alignment))
        object.__setattr__(self, "prefix_alignment", Alignment(self.prefix_alignment))

        if self.prefix_alignment is Alignment.NIBBLE:
            if not prefix:
                raise PatternError("nibble-aligned prefix cannot be empty", field="prefix")
            if prefix[-1] & 0x0F:
                raise PatternError("nibble-aligned prefix must have a zero low nibble in its last byte", field="prefix")
            object.__setattr__(self, "_prefix_whole", prefix[:-1])
            object.__setattr__(self, "_prefix_nibble", prefix[-1] >> 4)
        else:
            object.__setattr__(self, "_prefix_whole", prefix)
            object.__setattr__(self, "_prefix_nibble", None)

        if self.suffix_alignment is Alignment.NIBBLE:
            if not suffix:
                raise PatternError("nibble-aligned suffix cannot be empty", field="suffix")
            if suffix[0] & 0xF0:
                raise PatternError("nibble-aligned suffix must have a zero high nibble in its first byte", field="suffix")
            object.__setattr__(self, "_suffix_whole", suffix[1:])
            object.__setattr__(self, "_suffix_nibble", suffix[0] & 0x0F)
        else:
            object.__setattr__(self, "_suffix_whole", suffix)
            object.__setattr__(self, "_suffix_nibble", None)

    @classmethod
    def from_hex(cls, prefix: str = "", suffix: str = "") -> Pattern:
        """Build a pattern from hex text. Case and a leading ``0x`` are ignored."""

        try:
            p = check_hex_digits(prefix, field="prefix")
            s = check_hex_digits(suffix, field="suffix")
        except ConfigError as e:
            raise PatternError(str(e), field=e.field) from e

        prefix_alignment = Alignment.BYTE
        if len(p) % 2:
            p += "0"
            prefix_alignment = Alignment.NIBBLE

        suffix_alignment = Alignment.BYTE
        if len(s) % 2:
            s = "0" + s
            suffix_alignment = Alignment.NIBBLE

        return cls(
            prefix=bytes.fromhex(p),
            suffix=bytes.fromhex(s),
            suffix_alignment=suffix_alignment,
            prefix_alignment=prefix_alignment,
        )

    @classmethod
    def parse(cls, text: str) -> Pattern:
        """Parse ``0x47...ea91e`` / ``47...`` / ``...ea91e`` shorthand."""

        raw = str(text).strip()
        if SEPARATOR in raw:
            prefix, _, suffix = raw.partition(SEPARATOR)
        else:
            prefix, suffix = raw, ""
        if SEPARATOR in suffix:
            raise PatternError(f"pattern has more than one {SEPARATOR!r}: {text!r}", field="pattern")
        return cls.from_hex(prefix, suffix)

    @property
    def prefix_hex(self) -> str:
        h = self.prefix.hex()
        return h[:-1] if self.prefix_alignment is Alignment.NIBBLE else h

    @property
    def suffix_hex(self) -> str:
        h = self.suffix.hex()
        return h[1:] if self.suffix_alignment is Alignment.NIBBLE else h

    @property
    def nibbles(self) -> int:
        return len(self.prefix_hex) + len(self.suffix_hex)

    @property
    def bits(self) -> int:
        """Constrained bits. A uniform digest matches with probability 2**-bits."""
        return 4 * self.nibbles

    def check_fits(self, digest_size: int) -> None:
        """Raise PatternError when prefix and suffix cannot both fit in ``digest_size`` bytes."""

        if self.nibbles > 2 * digest_size:
            raise PatternError(
                f"pattern constrains {self.nibbles} nibbles but the digest only has {2 * digest_size}",
                field="pattern",
            )

    def matches(self, digest: bytes) -> bool:
        head = self._prefix_whole
        if head and not digest.startswith(head):
            return False
        if self._prefix_nibble is not None and digest[len(head)] >> 4 != self._prefix_nibble:
            return False

        tail = self._suffix_whole
        if tail and not digest.endswith(tail):
            return False
        if self._suffix_nibble is not None and digest[-len(tail) - 1] & 0x0F != self._suffix_nibble:
            return False
        return True

    def __str__(self) -> str:
        if self.suffix:
            return f"0x{self.prefix_hex}{SEPARATOR}{self.suffix_hex}"
        return f"0x{self.prefix_hex}{SEPARATOR}"
