"""rbook - local EPUB library backend."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from rbook.config import AppConfig, load_config
from rbook.errors import RbookError
from rbook.library.models import ReaderStyle
from rbook.service import ReaderService


def _setup_logging(config: AppConfig) -> None:
    config.log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("rbook")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rbook", description="Local EPUB library")
    parser.add_argument("--env", type=Path, help="path to a .env file")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("import", help="import EPUB files into the library")
    p.add_argument("files", nargs="+", type=Path)

    sub.add_parser("list", help="list imported books")

    p = sub.add_parser("open", help="record a book as opened, print its local path")
    p.add_argument("file", type=Path)

    p = sub.add_parser("info", help="print EPUB metadata")
    p.add_argument("file", type=Path)

    p = sub.add_parser("convert", help="convert EPUB files to HTML")
    p.add_argument("files", nargs="+", type=Path)

    p = sub.add_parser("style", help="show or change the reader style")
    p.add_argument("--font-family")
    p.add_argument("--font-size", type=int)
    p.add_argument("--line-height", type=float)
    p.add_argument("--theme", choices=("light", "dark", "sepia"))
    return parser


def _run(service: ReaderService, args: argparse.Namespace) -> int:
    if args.command == "import":
        for result in service.import_books(args.files):
            state = "added" if result.created else "exists"
            print(f"{state}\t{result.book_path}")
            for warning in result.warnings:
                print(f"warning: {warning}", file=sys.stderr)
    elif args.command == "list":
        listing = service.list_books()
        for item in listing.items:
            print(f"{item.last_opened or '-'}\t{item.file_path}")
        for warning in listing.warnings:
            print(f"warning: {warning}", file=sys.stderr)
    elif args.command == "open":
        print(service.open_book(args.file))
    elif args.command == "info":
        print(json.dumps(asdict(service.read_epub(args.file)), ensure_ascii=False, indent=2))
    elif args.command == "convert":
        print(service.convert_many_to_html(args.files))
    elif args.command == "style":
        style = service.get_style()
        changes = {
            "font_family": args.font_family,
            "font_size": args.font_size,
            "line_height": args.line_height,
            "theme": args.theme,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes:
            style = ReaderStyle(**{**style.to_dict(), **changes})
            service.save_style(style)
        print(json.dumps(style.to_dict(), ensure_ascii=False))
    else:
        return 2
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    config = load_config(args.env)
    _setup_logging(config)

    service = ReaderService(config)
    try:
        service.startup()
        return _run(service, args)
    except RbookError as e:
        logging.getLogger("rbook").error("%s failed: %s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
