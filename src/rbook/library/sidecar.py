"""Bookmarks, reader style and last-opened timestamps stored as small files.

Missing files read as defaults; files that exist but do not decode raise
DeserializationError. Writes replace the whole file.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

from rbook.config import AppConfig
from rbook.errors import DeserializationError, LibraryIOError

from .files import atomic_write_text
from .locks import KeyedLocks, path_locks
from .models import LAST_OPENED_FILE, MARK_FILE, Bookmark, ReaderStyle
from .store import LibraryStore

log = logging.getLogger(__name__)


def _read_text(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise LibraryIOError(f"Failed to read {path}: {e}") from e


def _read_json(path: Path) -> Optional[Any]:
    text = _read_text(path)
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"Failed to deserialize {path}: {e}") from e


def _write_json(path: Path, data: Any) -> Path:
    return atomic_write_text(path, json.dumps(data, ensure_ascii=False))


class BookmarkStore:
    """``mark.json`` in the book's entry directory.

    EPUB files and converted HTML under ``extracted/`` share the same
    bookmark file.
    """

    def __init__(self, store: LibraryStore, locks: KeyedLocks = path_locks) -> None:
        self._store = store
        self._locks = locks

    def path_for(self, book_path: Path) -> Path:
        return self._store.entry_root(Path(book_path)) / MARK_FILE

    def load(self, book_path: Path) -> Bookmark:
        data = _read_json(self.path_for(book_path))
        if data is None:
            return Bookmark(book_path=str(book_path))
        bookmark = Bookmark.from_dict(data)
        # The stored path goes stale when the data root moves.
        bookmark.book_path = str(book_path)
        return bookmark

    def save(self, bookmark: Bookmark, book_path: Optional[Path] = None) -> Path:
        target = Path(bookmark.book_path if book_path is None else book_path)
        path = _write_json(self.path_for(target), bookmark.to_dict())
        log.debug("Bookmark saved to %s", path)
        return path

    def add_or_update(
        self,
        book_path: Path,
        page: int,
        content: str = "",
        width: int = 0,
        height: int = 0,
        cfi: Optional[str] = None,
    ) -> Bookmark:
        with self._locks.hold(f"sidecar:{self.path_for(book_path)}"):
            bookmark = self.load(book_path)
            bookmark.add_or_update(page, content, width, height, cfi)
            self.save(bookmark, book_path)
        return bookmark

    def remove(self, book_path: Path, page: int) -> Bookmark:
        with self._locks.hold(f"sidecar:{self.path_for(book_path)}"):
            bookmark = self.load(book_path)
            bookmark.remove(page)
            self.save(bookmark, book_path)
        return bookmark


class StyleStore:
    """Global reader preferences in ``<data_dir>/config/reader_style.json``."""

    def __init__(self, config: AppConfig, locks: KeyedLocks = path_locks) -> None:
        self._config = config
        self._locks = locks

    @property
    def path(self) -> Path:
        return self._config.style_path

    def load(self) -> ReaderStyle:
        data = _read_json(self.path)
        if data is None:
            log.debug("Style file not found, using default style")
            return ReaderStyle()
        return ReaderStyle.from_dict(data)

    def save(self, style: ReaderStyle) -> Path:
        with self._locks.hold(f"sidecar:{self.path}"):
            path = _write_json(self.path, style.to_dict())
        log.debug("Style saved to %s", path)
        return path


class LastOpenedStore:
    """Plain-text unix timestamp in ``.lastopened`` next to the book."""

    def __init__(self, store: LibraryStore, locks: KeyedLocks = path_locks) -> None:
        self._store = store
        self._locks = locks

    def path_for(self, book_path: Path) -> Path:
        return self._store.entry_root(Path(book_path)) / LAST_OPENED_FILE

    def read(self, book_path: Path) -> Optional[int]:
        path = self.path_for(book_path)
        text = _read_text(path)
        if text is None:
            return None
        try:
            return int(text.strip())
        except ValueError as e:
            raise DeserializationError(f"Invalid timestamp in {path}: {text!r}") from e

    def touch(self, book_path: Path, when: Optional[int] = None) -> int:
        stamp = int(time.time()) if when is None else int(when)
        path = self.path_for(book_path)
        with self._locks.hold(f"sidecar:{path}"):
            atomic_write_text(path, str(stamp))
        return stamp
