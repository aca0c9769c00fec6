# src/sisrs/cli.py
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from sisrs import __version__
from sisrs.errors import SisrsError
from sisrs.utils.logger import get_logger, setup_logger

from sisrs.commands import doctor as cmd_doctor
from sisrs.commands import pipeline as cmd_pipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sisrs",
        description="SISRS pipeline CLI (sites, loci, any stage to resume from, doctor).",
        epilog=f"sisrs {__version__}",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("--dry-run", action="store_true", help="Show the stage plan without executing it.")
    parent.add_argument("--debug", action="store_true", help="Log DEBUG messages to the console.")

    subparsers = parser.add_subparsers(dest="command")

    cmd_pipeline.setup_parser(subparsers, parent)
    cmd_doctor.setup_parser(subparsers, parent)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        return

    setup_logger(debug=getattr(args, "debug", False))
    logger = get_logger()
    logger.debug("Parsed args: %r", args)
    try:
        args.func(args)
    except SisrsError as e:
        logger.error("%s", e)
        sys.exit(1)
