"""``perch list`` and ``perch check`` — site inspection commands."""

import argparse
import sys

from perch.errors import PerchError
from perch.pages.discovery import PageFiles, SiteFiles, discover, load_site


def _describe(page: PageFiles) -> str:
    extras = [p.as_posix() for p in (page.head, page.server) if p is not None]
    suffix = f" ({', '.join(extras)})" if extras else ""
    return f"{page.template.as_posix()}{suffix}"


def format_site(files: SiteFiles) -> list[str]:
    """Human-readable lines describing *files*."""
    lines = [
        f"app:       {files.app.as_posix() if files.app else '(built-in)'}",
        f"document:  {files.document.as_posix() if files.document else '(built-in)'}",
        f"404:       {_describe(files.not_found) if files.not_found else '(built-in)'}",
        f"error:     {_describe(files.error) if files.error else '(built-in)'}",
        f"pages:     {len(files.pages)}",
    ]
    lines.extend(f"  /{page.key:<30} {_describe(page)}" for page in files.pages)
    return lines


def run_list(args: argparse.Namespace) -> None:
    try:
        files = discover(args.src)
    except PerchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    print("\n".join(format_site(files)))


def run_check(args: argparse.Namespace) -> None:
    """Build the server; exit 1 if the page table is invalid."""
    try:
        server = load_site(args.src)
    except PerchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    print(f"OK: {len(server.table.pages)} pages")
