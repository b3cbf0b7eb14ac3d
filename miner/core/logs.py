"""miner.core.logs

Logging setup.

Log messages are event names (``search_started``, ``worker_stopped``); the detail rides
in ``extra``. This module renders those records either as plain lines or as one JSON
object per line, and scrubs key material on the way out.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO, Any

from miner.core.redaction import redact_secrets, sanitize_for_log

_HANDLER_MARK = "_miner_handler"

# Attributes every LogRecord has; anything else came from ``extra``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": redact_secrets(record.getMessage()),
        }
        payload.update(sanitize_for_log(_extras(record)))
        if record.exc_info:
            payload["exc"] = redact_secrets(self.formatException(record.exc_info))
        return json.dumps(payload, default=str, sort_keys=True)


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = redact_secrets(super().format(record))
        extras = sanitize_for_log(_extras(record))
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def configure_logging(level: str = "INFO", *, json_output: bool = False, stream: IO[str] | None = None) -> logging.Logger:
    """Install (or replace) the miner's handler on the ``miner`` logger."""

    root = logging.getLogger("miner")
    for h in list(root.handlers):
        if getattr(h, _HANDLER_MARK, False):
            root.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())
    setattr(handler, _HANDLER_MARK, True)

    root.addHandler(handler)
    root.setLevel(level.upper())
    root.propagate = False
    return root
