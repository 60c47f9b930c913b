"""Command-line entry point: run the window selector or packer over JSON files."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .config import OverflowPolicy, WindowConfig
from .error_text import first_error_message
from .errors import ChatWindowError, ConfigError
from .packer import SystemPromptPacker
from .provider import Turn
from .telemetry import TelemetryConfig, WindowTracer, install_tracer
from .token_counter import get_token_counter
from .window import WindowSelector

_TURNS = TypeAdapter(list[Turn])
_SNIPPETS = TypeAdapter(list[str])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatwindow",
        description="Select the chat messages or knowledge snippets that fit a token budget.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", type=Path, help="JSON input file ('-' for stdin)")
    common.add_argument("--model", default="gpt-3.5-turbo", help="model id passed to the counter")
    common.add_argument("--budget", type=int, required=True, help="token budget")
    common.add_argument("--counter", choices=["chars", "tiktoken"], help="token counter backend")
    common.add_argument("--strict", action="store_true", help="drop the item that reaches the budget")
    common.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub.add_parser("select", parents=[common], help="window a list of {speaker, text} turns")
    sub.add_parser("pack", parents=[common], help="pack a ranked list of snippet strings")
    return parser


def _read_json(path: Path) -> Any:
    if str(path) == "-":
        return json.load(sys.stdin)
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def _config(args: argparse.Namespace) -> WindowConfig:
    config = WindowConfig.from_env()
    updates: dict[str, Any] = {}
    if args.counter:
        updates["token_counter"] = args.counter
    if args.strict:
        updates["overflow_policy"] = OverflowPolicy.STRICT
    return config.model_copy(update=updates)


def _run(args: argparse.Namespace) -> Any:
    config = _config(args)
    counter = get_token_counter(config.token_counter, config.chars_per_token)
    raw = _read_json(args.file)
    if args.command == "select":
        turns = _TURNS.validate_python(raw)
        messages = WindowSelector(counter, config).select(turns, args.model, args.budget)
        return [m.model_dump(mode="json") for m in messages]
    snippets = _SNIPPETS.validate_python(raw)
    return SystemPromptPacker(counter, config).pack(snippets, args.model, args.budget)


def main(argv: list[str] | None = None) -> int:
    """Run the command and return the process exit status."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    tracer = WindowTracer(TelemetryConfig.from_env())
    try:
        tracer.init()
        install_tracer(tracer)
        out = _run(args)
    except ValidationError as exc:
        print(f"error: {first_error_message(exc.errors())}", file=sys.stderr)
        return 2
    except (OSError, ValueError, ConfigError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except ChatWindowError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        tracer.shutdown()

    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0


def run() -> None:
    """Console-script wrapper around :func:`main`."""
    sys.exit(main())


if __name__ == "__main__":
    run()
