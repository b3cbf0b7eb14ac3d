"""miner.core.redaction

Secret redaction helpers.

Keypair searches hold private keys in memory; none of them should reach a log line.
Any 32-byte hex word in log text is treated as key material. Salts are reported
through results, not logs.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_REDACTION_PATTERNS: list[tuple[str, str]] = [
    (r"(?i)(private[_-]?key|secret|seed|mnemonic)\s*[:=]\s*[^\s\"']+", r"\1=[REDACTED]"),
    # Private key / seed hex
    (r"\b0x[a-fA-F0-9]{64}\b", "[REDACTED]"),
]

_SENSITIVE_FIELD_NAMES = {
    "private_key",
    "secret",
    "seed",
    "mnemonic",
}


def redact_secrets(text: str) -> str:
    out = text
    for pattern, repl in _REDACTION_PATTERNS:
        out = re.sub(pattern, repl, out)
    return out


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """Deep-copy and redact sensitive fields + embedded secrets."""

    def _walk(obj: Any) -> Any:
        if isinstance(obj, dict):
            out: dict[str, Any] = {}
            for k, v in obj.items():
                if str(k).lower() in _SENSITIVE_FIELD_NAMES:
                    out[k] = "[REDACTED]"
                else:
                    out[k] = _walk(v)
            return out
        if isinstance(obj, list):
            return [_walk(x) for x in obj]
        if isinstance(obj, str):
            return redact_secrets(obj)
        return obj

    return _walk(copy.deepcopy(data))
