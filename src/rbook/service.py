"""Command layer used by the host application.

One method per frontend command. Each call re-reads the filesystem; no
library state is cached between calls.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from rbook.config import AppConfig
from rbook.conversion.client import ConversionClient
from rbook.conversion.html import load_html_with_images
from rbook.errors import NotFoundError, RbookError
from rbook.library.cover import CoverExtractor, CoverResolver, install_default_cover
from rbook.library.locks import path_locks
from rbook.library.menu import list_books
from rbook.library.models import (
    CONVERTED_ZIP,
    EXTRACTED_DIR,
    Bookmark,
    EpubSummary,
    HtmlWithImages,
    ImportResult,
    MenuListing,
    ReaderStyle,
)
from rbook.library.scanner import find_html_file
from rbook.library.sidecar import BookmarkStore, LastOpenedStore, StyleStore
from rbook.library.store import LibraryStore
from rbook.parsers.epub_parser import EpubDocument, extract_cover

log = logging.getLogger(__name__)

ACTION_ADD = 0
ACTION_REMOVE = 1


class ReaderService:
    def __init__(
        self,
        config: AppConfig,
        conversion: Optional[ConversionClient] = None,
        cover_extractor: CoverExtractor = extract_cover,
    ) -> None:
        self.config = config
        self.store = LibraryStore(config)
        self.covers = CoverResolver(config, cover_extractor)
        self.bookmarks = BookmarkStore(self.store)
        self.styles = StyleStore(config)
        self.last_opened = LastOpenedStore(self.store)
        self.conversion = conversion or ConversionClient(config)

    def startup(self) -> None:
        install_default_cover(self.config)

    def close(self) -> None:
        self.conversion.close()

    # ── Library ────────────────────────────────────────────

    def import_book(self, path: Path) -> ImportResult:
        """Import (or find) a book and make sure its cover is cached."""
        result = self.store.import_or_locate(Path(path))
        entry = result.entry
        try:
            cover = self.covers.resolve_cover(entry.local_directory, entry.book_file_path)
            result.warnings.extend(cover.warnings)
        except RbookError as e:
            msg = f"No cover for {entry.book_file_path}: {e}"
            log.warning(msg)
            result.warnings.append(msg)
        return result

    def import_books(self, paths: Iterable[Path]) -> list[ImportResult]:
        return [self.import_book(p) for p in paths]

    def open_book(self, path: Path) -> Path:
        """Import if needed, record the open time, return the local path."""
        result = self.import_book(path)
        try:
            self.last_opened.touch(result.book_path)
        except RbookError as e:
            log.warning("Failed to record last-opened time for %s: %s", path, e)
        return result.book_path

    def list_books(self) -> MenuListing:
        return list_books(self.store, self.covers, self.last_opened)

    # ── EPUB ───────────────────────────────────────────────

    def read_epub(self, path: Path) -> EpubSummary:
        return EpubDocument(Path(path)).summary()

    def get_page(self, path: Path, index: int) -> str:
        return EpubDocument(Path(path)).page(index)

    # ── HTML conversion ────────────────────────────────────

    def convert_to_html(self, path: Path) -> Path:
        """Local HTML rendition of a book, converting it on first request."""
        entry = self.import_book(path).entry
        extract_dir = entry.local_directory / EXTRACTED_DIR

        with path_locks.hold(f"convert:{entry.local_directory}"):
            existing = find_html_file(extract_dir)
            if existing is not None:
                return existing

            response = self.conversion.upload(entry.book_file_path)
            self.conversion.download(
                response.id, entry.local_directory / CONVERTED_ZIP, extract_dir
            )
            html = find_html_file(extract_dir)
        if html is None:
            raise NotFoundError(f"No HTML file found in {extract_dir}")
        log.info("Converted %s to %s", entry.book_file_path, html)
        return html

    def convert_many_to_html(self, paths: Iterable[Path]) -> Path:
        """Convert each book; return the HTML path of the last one that worked."""
        last_html: Optional[Path] = None
        last_error: Optional[RbookError] = None
        for path in paths:
            try:
                last_html = self.convert_to_html(path)
            except RbookError as e:
                log.warning("Failed to convert %s: %s", path, e)
                last_error = e
        if last_html is not None:
            return last_html
        if last_error is not None:
            raise last_error
        raise NotFoundError("No books to convert")

    def html_with_images(self, path: Path) -> HtmlWithImages:
        return self._load_html(self.convert_to_html(path))

    def html_with_images_many(self, paths: Iterable[Path]) -> HtmlWithImages:
        return self._load_html(self.convert_many_to_html(paths))

    def _load_html(self, html_path: Path) -> HtmlWithImages:
        result = load_html_with_images(html_path)
        try:
            result.bookmark = self.bookmarks.load(html_path)
        except RbookError as e:
            msg = f"Ignoring unreadable bookmarks for {html_path}: {e}"
            log.warning(msg)
            result.warnings.append(msg)
        return result

    # ── Bookmarks & style ──────────────────────────────────

    def save_bookmark(
        self,
        book_path: Path,
        page: int,
        width: int = 0,
        height: int = 0,
        content: str = "",
        cfi: Optional[str] = None,
        action: Optional[int] = ACTION_ADD,
    ) -> Path:
        """Add/update (default) or remove (``action=1``) the mark for ``page``."""
        if action == ACTION_REMOVE:
            self.bookmarks.remove(Path(book_path), page)
        else:
            self.bookmarks.add_or_update(
                Path(book_path), page, content=content, width=width, height=height, cfi=cfi
            )
        return self.bookmarks.path_for(Path(book_path))

    def get_bookmark(self, book_path: Path) -> Bookmark:
        return self.bookmarks.load(Path(book_path))

    def save_style(self, style: ReaderStyle) -> Path:
        return self.styles.save(style)

    def get_style(self) -> ReaderStyle:
        return self.styles.load()
