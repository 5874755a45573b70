"""Recursive directory scans for book and HTML files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterator, Optional

from rbook.errors import LibraryIOError

log = logging.getLogger(__name__)

HTML_EXTENSIONS = (".html", ".htm")


def iter_files(
    root: Path, warnings: Optional[list[str]] = None
) -> Iterator[Path]:
    """Yield files under ``root`` depth-first, entries sorted by name.

    A missing root yields nothing. An unreadable root raises
    LibraryIOError; unreadable subdirectories are skipped and reported.
    """
    root = Path(root)
    if not root.is_dir():
        return
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except OSError as e:
        raise LibraryIOError(f"Failed to read directory {root}: {e}") from e
    yield from _walk(entries, warnings)


def _walk(
    entries: list[os.DirEntry], warnings: Optional[list[str]]
) -> Iterator[Path]:
    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir():
            try:
                children = sorted(os.scandir(path), key=lambda e: e.name)
            except OSError as e:
                msg = f"Skipping unreadable directory {path}: {e}"
                log.warning(msg)
                if warnings is not None:
                    warnings.append(msg)
                continue
            yield from _walk(children, warnings)
        elif entry.is_file():
            yield path


def find_first(
    root: Path,
    predicate: Callable[[Path], bool],
    warnings: Optional[list[str]] = None,
) -> Optional[Path]:
    for path in iter_files(root, warnings):
        if predicate(path):
            return path
    return None


def is_html(path: Path) -> bool:
    return path.suffix.lower() in HTML_EXTENSIONS


def find_html_file(
    root: Path, warnings: Optional[list[str]] = None
) -> Optional[Path]:
    """Find the HTML file to open in an extracted conversion directory.

    ``index.html`` (any case) wins over other HTML files; otherwise the
    first HTML file in traversal order.
    """
    first: Optional[Path] = None
    for path in iter_files(root, warnings):
        if not is_html(path):
            continue
        if path.name.lower() == "index.html":
            return path
        if first is None:
            first = path
    return first

