# src/sisrs/commands/doctor.py
from __future__ import annotations

import sys

from sisrs.config.schema import RunConfig
from sisrs.stages.registry import DEFAULT_REGISTRY
from sisrs.tools.assemblers import resolve_assembler
from sisrs.tools.preflight import required_tools, tool_status
from sisrs.utils.logger import get_logger

LOG = get_logger("doctor")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "doctor", parents=[parent],
        help="Preflight checks: are the external tools for a full 'loci' run on PATH?",
    )
    p.add_argument("-a", "--assembler", type=str, default="velvet", help="Assembler to check (default velvet).")
    p.set_defaults(func=run)


def _ok(x: bool) -> str:
    return "OK" if x else "MISSING"


def run(args) -> None:
    assembler = resolve_assembler(args.assembler).name
    config = RunConfig(assembler=assembler)
    status = tool_status(required_tools(config, DEFAULT_REGISTRY.stage_names()))

    for tool, path in status.items():
        print(f"[check] {tool} on PATH: {_ok(bool(path))} ({path or 'not found'})")

    bad = [t for t, p in status.items() if not p]
    if bad:
        print("error: missing tools: " + ", ".join(bad), file=sys.stderr)
        sys.exit(1)

    print("[ok] environment looks good.")
