"""Headless host: list tools and run them from the command line."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from rigidity_toolbox.core.loader import discover_tools, get_tool
from rigidity_toolbox.core.logging import configure_logging
from rigidity_toolbox.core.schema_utils import validate_inputs
from rigidity_toolbox.core.settings import load_settings
from rigidity_toolbox.core.tool_base import LiveTool


def _parse_assignment(text: str) -> tuple[str, Any]:
    key, sep, raw = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key.strip(), value


def _read_inputs(tool: Any, path: Optional[str], overrides: List[tuple[str, Any]]) -> Dict[str, Any]:
    inputs = tool.default_inputs()
    if path:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of inputs")
        inputs.update(data)
    inputs.update(dict(overrides))
    return inputs


def _cmd_list(_args: argparse.Namespace) -> int:
    for tool in discover_tools():
        print(f"{tool.meta.id}  {tool.meta.name} ({tool.meta.version})")
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        tool = get_tool(args.tool_id)
    except KeyError as e:
        print(f"ERROR {e.args[0]}", file=sys.stderr)
        return 2

    inputs = _read_inputs(tool, args.inputs, args.set or [])
    validated, error = validate_inputs(getattr(tool, "InputModel", None), inputs)
    if error:
        print(f"ERROR invalid inputs:\n{error}", file=sys.stderr)
        return 2

    if args.live:
        if not isinstance(tool, LiveTool):
            print(f"ERROR tool {tool.meta.id} has no live mode", file=sys.stderr)
            return 2
        result = tool.compute(validated)
    else:
        logger.info(f"Running {tool.meta.id}")
        result = tool.run(validated)

    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("ok") else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="rigidity-toolbox", description=__doc__)
    ap.add_argument("--log-level", default=None, help="Console log level (default: settings.json log_level or INFO)")
    sub = ap.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List available tools")
    p_list.set_defaults(func=_cmd_list)

    p_run = sub.add_parser("run", help="Run a tool")
    p_run.add_argument("tool_id")
    p_run.add_argument("--inputs", help="JSON file with input overrides")
    p_run.add_argument("--set", action="append", type=_parse_assignment, metavar="KEY=VALUE",
                       help="Override one input; VALUE is parsed as JSON when possible")
    p_run.add_argument("--live", action="store_true", help="Compute read-outs only, no calc package")
    p_run.set_defaults(func=_cmd_run)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = args.log_level or str(load_settings().get("log_level", "INFO"))
    configure_logging(level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
