"""Perch CLI — inspect and validate a site source directory.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — streaming server-rendered pages from a directory of templates.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # -- perch list -------------------------------------------------------
    list_parser = subparsers.add_parser("list", help="List discovered pages and special files")
    list_parser.add_argument("src", help="Site source directory")

    # -- perch check ------------------------------------------------------
    check_parser = subparsers.add_parser("check", help="Build the page table and report problems")
    check_parser.add_argument("src", help="Site source directory")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "list":
        from perch.cli._list import run_list

        run_list(args)
    elif args.command == "check":
        from perch.cli._list import run_check

        run_check(args)
    else:
        parser.print_help()
        sys.exit(1)
