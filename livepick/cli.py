"""
Command-line runner for livepick.

Runs one picker to completion, ranks its results against --query and
prints them best first. Extra picker options are passed as -o key=value,
where the value is read as a TOML value (true, 3, ["src", "lib"]) and
falls back to a plain string.

Usage:
  livepick find_files --cwd ~/src --query main
  livepick grep_string -o search=TODO --mode exact
  livepick --list
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import toml
from loguru import logger

from livepick import create_dispatcher
from livepick.config import VALID_MODES, Config
from livepick.errors import LivePickError


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def parse_option(pair: str) -> tuple[str, Any]:
    """Split 'key=value' and read value as TOML when possible."""
    key, sep, raw = pair.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {pair!r}")
    try:
        value = toml.loads(f"value = {raw}")["value"]
    except toml.TomlDecodeError:
        value = raw
    return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="livepick",
        description="Run a picker and print its ranked results.",
    )
    parser.add_argument("picker", nargs="?", help="picker name (see --list)")
    parser.add_argument("--cwd", help="search root")
    parser.add_argument("-q", "--query", default=None, help="query to rank results with")
    parser.add_argument("--mode", choices=VALID_MODES, default=None, help="match mode")
    parser.add_argument("-n", "--limit", type=_positive_int, default=None,
                        help="print at most N results")
    parser.add_argument("--max-results", type=_positive_int, default=None,
                        help="stop storing results after N")
    parser.add_argument("--timeout", type=_positive_float, default=30.0,
                        help="seconds to wait for the picker (default: 30)")
    parser.add_argument("--config", type=Path, default=None, help="config.toml to load")
    parser.add_argument("-o", "--option", dest="options", action="append", default=[],
                        type=parse_option, metavar="KEY=VALUE", help="extra picker option")
    parser.add_argument("--list", action="store_true", help="list registered pickers")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    dispatcher = create_dispatcher(Config.load(args.config))

    if args.list:
        for spec in dispatcher.registry.specs():
            print(f"{spec.name:<16} {spec.description}")
        return 0

    if not args.picker:
        parser.error("a picker name is required (or --list)")

    options = dict(args.options)
    options["cache_picker"] = False
    if args.cwd:
        options["cwd"] = args.cwd
    if args.query is not None:
        options["default_text"] = args.query
    if args.mode:
        options["mode"] = args.mode
    if args.max_results:
        options["max_results"] = args.max_results

    try:
        instance = dispatcher.run(args.picker, options, timeout=args.timeout)
    except LivePickError as e:
        print(f"livepick: {e}", file=sys.stderr)
        return 1

    ranked = instance.ranked()
    if args.limit:
        ranked = ranked[:args.limit]
    for item in ranked:
        print(item.text)

    if instance.stream.truncated:
        print(f"livepick: results truncated at {instance.stream.max_results}", file=sys.stderr)
    return 0
