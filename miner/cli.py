"""miner.cli

Command line interface entry point.

Design constraints:
- argparse-based.
- Lazy imports: do not import crypto backends at parse time.
- Bad input fails before a single worker starts (exit code 2).
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

EPILOG = "Pattern shorthand: 0x47...ea91e (prefix ... suffix). Odd-length halves match on nibbles."


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--pattern", default=None, help="Shorthand target, e.g. 0x47...ea91e.")
    p.add_argument("--prefix", default=None, help="Hex prefix (odd length = nibble-aligned).")
    p.add_argument("--suffix", default=None, help="Hex suffix (odd length = nibble-aligned).")
    p.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count).")
    p.add_argument("--batch-size", type=int, default=None, help="Candidates per counter flush.")
    p.add_argument("--no-progress", action="store_true", help="Disable periodic progress lines.")
    p.add_argument("--json", action="store_true", help="Machine-readable output.")
    p.add_argument("--output", type=Path, default=None, help="Also write the result as JSON to this file.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="miner",
        description="Parallel vanity search for CREATE2 salts and keypairs.",
        epilog=EPILOG,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config (default: config/default.yaml).")

    sub = parser.add_subparsers(dest="command")

    p_c2 = sub.add_parser("create2", help="Mine a CREATE2 salt")
    p_c2.add_argument("--factory", default=None, help="Deployer/factory address (20 bytes hex).")
    p_c2.add_argument("--init-code-hash", default=None, help="keccak256 of init code (32 bytes hex).")
    p_c2.add_argument("--strategy", choices=["counter", "random"], default=None)
    p_c2.add_argument("--start", type=int, default=None, help="First counter (resume point).")
    p_c2.add_argument("--stop", type=int, default=None, help="Counter upper bound (exclusive).")
    _add_common(p_c2)

    p_kp = sub.add_parser("keypair", help="Mine a keypair whose public encoding matches")
    p_kp.add_argument("--kind", choices=["ed25519", "ethereum"], default="ethereum")
    _add_common(p_kp)

    p_ih = sub.add_parser("init-hash", help="Compute a CREATE2 init code hash")
    p_ih.add_argument("--bytecode", required=True, help="Creation bytecode hex.")
    p_ih.add_argument("--types", default="", help="Comma-separated constructor ABI types.")
    p_ih.add_argument("--args", nargs="*", default=[], help="Constructor argument values.")
    p_ih.add_argument("--json", action="store_true")

    return parser


def _print_version() -> None:
    from miner import __version__

    print(f"miner v{__version__}")


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI flags into a nested config overlay. Unset flags are omitted."""

    from miner.search.pattern import Pattern

    target: dict[str, Any] = {}
    search: dict[str, Any] = {}

    # A pattern given on the command line replaces the configured one whole;
    # a half left unset is empty, not inherited from YAML.
    if args.pattern is not None or args.prefix is not None or args.suffix is not None:
        target["prefix"] = target["suffix"] = ""
    if args.pattern is not None:
        p = Pattern.parse(args.pattern)
        target["prefix"] = p.prefix_hex
        target["suffix"] = p.suffix_hex
    if args.prefix is not None:
        target["prefix"] = args.prefix
    if args.suffix is not None:
        target["suffix"] = args.suffix

    if args.command == "create2":
        search["mode"] = "create2"
        if args.factory is not None:
            target["factory"] = args.factory
        if args.init_code_hash is not None:
            target["init_code_hash"] = args.init_code_hash
        if args.strategy is not None:
            search["strategy"] = args.strategy
        if args.start is not None:
            search["start_counter"] = args.start
        if args.stop is not None:
            search["stop_counter"] = args.stop
    else:
        search["mode"] = args.kind
        search["strategy"] = "random"

    if args.workers is not None:
        search["workers"] = args.workers
    if args.batch_size is not None:
        search["batch_size"] = args.batch_size

    out: dict[str, Any] = {"target": target, "search": search}
    if args.no_progress:
        out["progress"] = {"enabled": False}
    return out


def _load_config(ctx: CliContext, args: argparse.Namespace):
    from miner.core.config import Config

    overrides = _overrides(args)
    cfg_path = args.config or ctx.repo_root / "config" / "default.yaml"
    if args.config is not None or cfg_path.exists():
        return Config.from_yaml(cfg_path, overrides=overrides)
    return Config.load(overrides)


def _cmd_search(ctx: CliContext, args: argparse.Namespace) -> int:
    from miner.core.exceptions import ConfigError, SearchStateError
    from miner.core.logs import configure_logging
    from miner.search.coordinator import SearchCoordinator
    from miner.search.progress import ProgressReporter, format_rate

    try:
        config = _load_config(ctx, args)
        coordinator = SearchCoordinator.from_config(config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.logging.level, json_output=config.logging.json_output)

    reporter = None
    if config.progress.enabled:
        reporter = ProgressReporter(
            coordinator,
            interval_s=config.progress.interval_seconds,
            metrics=coordinator.metrics,
        )

    coordinator.start()
    if reporter is not None:
        reporter.start()
    try:
        result = coordinator.await_result()
    except KeyboardInterrupt:
        coordinator.cancel()
        result = coordinator.await_result()
        if result is None:
            print(f"interrupted; resume with --start {coordinator.checkpoint()}", file=sys.stderr)
            return 130
    except SearchStateError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        if reporter is not None:
            reporter.stop()

    deriv = coordinator.derivation
    if result is None:
        payload: dict[str, Any] = {
            "found": False,
            "attempts": coordinator.current_attempts(),
            "checkpoint": coordinator.checkpoint(),
        }
    else:
        deployer = None
        if deriv.name == "create2":
            from eth_utils import to_checksum_address

            deployer = to_checksum_address(config.target.factory)
        payload = {"found": True}
        payload.update(
            result.to_dict(address=deriv.format_digest(result.digest), deployer=deployer, pattern=str(coordinator.pattern))
        )
        if deriv.name != "create2":
            payload["private_key"] = payload.pop("salt")

    if args.json:
        print(json.dumps(payload, indent=2, sort_keys=True))
    elif result is None:
        print(f"keyspace exhausted after {payload['attempts']:,} attempts, no match")
    else:
        print(f"address:  {payload['address']}")
        print(f"{'salt' if deriv.name == 'create2' else 'key'}:     {payload.get('salt') or payload['private_key']}")
        print(f"attempts: {result.total_attempts:,}")
        print(f"time:     {result.elapsed_s:.2f}s ({format_rate(result.rate)})")

    if args.output is not None:
        try:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as e:
            print(f"error: could not write {args.output}: {e}", file=sys.stderr)
            return 1

    return 0 if result is not None else 1


def _cmd_init_hash(ctx: CliContext, args: argparse.Namespace) -> int:
    from miner.core.exceptions import ConfigError
    from miner.integrations.initcode import encode_constructor_args, init_code_hash

    types = [t for t in args.types.split(",") if t.strip()] if args.types else []
    try:
        ctor = encode_constructor_args(types, list(args.args)) if types or args.args else b""
        digest = init_code_hash(args.bytecode, ctor)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps({"init_code_hash": "0x" + digest.hex(), "constructor_args": "0x" + ctor.hex()}, indent=2))
    else:
        print("0x" + digest.hex())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "create2": _cmd_search,
        "keypair": _cmd_search,
        "init-hash": _cmd_init_hash,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
