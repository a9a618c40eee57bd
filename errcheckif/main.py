#!/usr/bin/env python3
"""errcheckif/main.py — CLI entry-point for the errcheckif checker.

Usage examples
--------------
    # Check one or more dump files, GCC-style output
    python -m errcheckif check fetch.go.dump store.go.dump

    # JSON lines, four workers, settings from a file
    python -m errcheckif check *.dump --output json --jobs 4 --config errcheckif.json

    # Also look at _test.go files and a project-specific errors package
    python -m errcheckif check *.dump --include-tests --error-package xerrors

    # Pretty-print the tree rebuilt from a dump (debugging aid)
    python -m errcheckif parse fetch.go.dump

    # Show version and exit
    python -m errcheckif --version

Exit codes
----------
    0   Success (no unchecked errors).
    1   One or more unchecked errors were reported.
    2   Infrastructure failure (unreadable dump, bad settings, checker crash).

The module doubles as ``python -m errcheckif`` via the companion
``errcheckif/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

from errcheckif import __version__
from errcheckif.checkers import run_addon
from errcheckif.config import OUTPUT_FORMATS, Settings
from errcheckif.dumpfile import parsedump, should_analyze
from errcheckif.errors import ConfigError, DumpError
from errcheckif.syntax import describe

_log = logging.getLogger("errcheckif")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``errcheckif`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("errcheckif")
    root.setLevel(level)
    root.handlers = [handler]


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """defaults → --config file → command-line flags."""
    settings = Settings.load(args.config) if args.config else Settings()
    suppress: Optional[List[str]] = None
    if args.suppress:
        suppress = list(settings.suppress) + list(args.suppress)
    return settings.merged(
        skip_tests=False if args.include_tests else None,
        skip_generated=False if args.include_generated else None,
        error_package=args.error_package,
        error_predicates=args.predicates,
        jobs=args.jobs,
        output=args.output,
        suppress=suppress,
    )


# ===========================================================================
# Subcommands
# ===========================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Run the unchecked-error pass over every given dump file."""
    try:
        settings = _settings_from_args(args)
    except ConfigError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    paths = [str(_resolve_path(raw, "dump file")) for raw in args.dump_files]
    try:
        return run_addon(paths, settings=settings, stream=sys.stdout)
    except DumpError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


def cmd_parse(args: argparse.Namespace) -> int:
    """Rebuild the tree from a dump file and print its outline."""
    path = _resolve_path(args.dump_file, "dump file")
    try:
        units = parsedump(path)
    except DumpError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    for unit in units:
        note = "" if should_analyze(unit) else "  (skipped by default)"
        sys.stdout.write(f"# {unit.filename}: package {unit.file.package}{note}\n")
        sys.stdout.write(describe(unit.file) + "\n")
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="errcheckif",
        description=(
            "errcheckif — report error results that are assigned but never\n"
            "checked against nil, passed to errors.Is/As, or returned."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              errcheckif check fetch.go.dump
              errcheckif check *.dump --output json --jobs 4
              errcheckif parse fetch.go.dump
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Report unchecked error results in dump files.",
        description="Run the unchecked-error pass over one or more dump files.",
    )
    p_check.add_argument(
        "dump_files",
        nargs="+",
        metavar="DUMP",
        help="Dump file(s) to check.",
    )
    p_check.add_argument(
        "--config",
        metavar="FILE",
        default=None,
        help="JSON settings file.",
    )
    p_check.add_argument(
        "--output",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format (default: gcc).",
    )
    p_check.add_argument(
        "--suppress",
        nargs="*",
        metavar="ID[:PATTERN]",
        default=None,
        help="Suppress an error id globally, or only in files matching PATTERN.",
    )
    p_check.add_argument(
        "-j", "--jobs",
        type=int,
        default=None,
        help="Number of files checked in parallel (default: 1).",
    )
    p_check.add_argument(
        "--include-tests",
        action="store_true",
        help="Also check _test.go files.",
    )
    p_check.add_argument(
        "--include-generated",
        action="store_true",
        help='Also check files marked "Code generated ... DO NOT EDIT.".',
    )
    p_check.add_argument(
        "--error-package",
        metavar="NAME",
        default=None,
        help="Qualifier of the error helper functions (default: errors).",
    )
    p_check.add_argument(
        "--predicates",
        nargs="+",
        metavar="NAME",
        default=None,
        help="Helper functions that count as a check (default: Is As).",
    )
    p_check.set_defaults(func=cmd_check)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Pretty-print the tree rebuilt from a dump file.",
        description="Load a dump file and print an outline of its syntax tree.",
    )
    p_parse.add_argument("dump_file", metavar="DUMP", help="Dump file to load.")
    p_parse.set_defaults(func=cmd_parse)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the errcheckif CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
