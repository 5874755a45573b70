"""EPUB container access using ebooklib."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import ebooklib
from ebooklib import epub

from rbook.errors import LibraryIOError, NotFoundError, ParseError
from rbook.library.models import EpubSummary, SpineItem, TocEntry

log = logging.getLogger(__name__)

METADATA_KEYS = ("title", "creator", "description", "language", "publisher")


class EpubDocument:
    """Read-only view over one EPUB file."""

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)
        try:
            self._book = epub.read_epub(
                str(self.file_path), options={"ignore_ncx": False}
            )
        except OSError as e:
            raise LibraryIOError(f"Failed to open epub file: {e}") from e
        except Exception as e:
            raise ParseError(f"Failed to open epub file: {e}") from e

    # ── Metadata ───────────────────────────────────────────

    def metadata(self, key: str) -> Optional[str]:
        return self._get_meta(self._book, key) or None

    def summary(self) -> EpubSummary:
        return EpubSummary(
            title=self.metadata("title"),
            author=self.metadata("creator"),
            description=self.metadata("description"),
            language=self.metadata("language"),
            publisher=self.metadata("publisher"),
            toc=[entry.label for entry in self.toc()],
            spine=[item.id for item in self.spine()],
            cover_id=self._cover_item_id(),
        )

    # ── Navigation ─────────────────────────────────────────

    def toc(self) -> list[TocEntry]:
        counter = [0]

        def _convert(toc_list: list) -> list[TocEntry]:
            entries: list[TocEntry] = []
            for node in toc_list:
                if isinstance(node, tuple):
                    # (Section, [children])
                    section, children = node[0], list(node[1]) if len(node) > 1 else []
                    counter[0] += 1
                    entry = TocEntry(
                        label=getattr(section, "title", "") or "",
                        target=getattr(section, "href", "") or "",
                        order=counter[0],
                    )
                    entry.children = _convert(children)
                    entries.append(entry)
                elif isinstance(node, list):
                    entries.extend(_convert(node))
                elif isinstance(node, (epub.Link, epub.Section)):
                    counter[0] += 1
                    entries.append(
                        TocEntry(
                            label=node.title or "",
                            target=node.href or "",
                            order=counter[0],
                        )
                    )
            return entries

        return _convert(list(self._book.toc))

    def spine(self) -> list[SpineItem]:
        items: list[SpineItem] = []
        for entry in self._book.spine:
            if isinstance(entry, tuple):
                idref, linear = entry[0], entry[1] if len(entry) > 1 else "yes"
            else:
                idref, linear = entry, "yes"
            if not isinstance(idref, str):
                idref = idref.get_id()
            items.append(
                SpineItem(id=idref, properties=None, linear=str(linear).lower() != "no")
            )
        return items

    def page(self, index: int) -> str:
        """HTML text of the ``index``-th spine document."""
        spine = self.spine()
        if index < 0 or index >= len(spine):
            raise NotFoundError(f"Page index out of range: {index}")
        item = self._book.get_item_with_id(spine[index].id)
        if item is None:
            raise NotFoundError(f"Failed to get page content: {spine[index].id}")
        return item.get_content().decode("utf-8", errors="replace")

    # ── Resources ──────────────────────────────────────────

    def resource_keys(self) -> list[str]:
        return [item.get_name() for item in self._book.get_items()]

    def resource(self, key: str) -> tuple[bytes, str]:
        item = self._book.get_item_with_href(key)
        if item is None:
            raise NotFoundError(f"No such resource in {self.file_path.name}: {key}")
        return item.get_content(), item.media_type or "application/octet-stream"

    def cover(self) -> Optional[tuple[bytes, str]]:
        item = self._cover_item()
        if item is None:
            return None
        data = item.get_content()
        if not data:
            return None
        return data, item.media_type or "image/jpeg"

    def _cover_item_id(self) -> Optional[str]:
        item = self._cover_item()
        return item.get_id() if item is not None else None

    def _cover_item(self) -> Optional[epub.EpubItem]:
        try:
            cover_meta = self._book.get_metadata("OPF", "cover")
        except KeyError:
            cover_meta = []
        for _, attrs in cover_meta:
            cover_id = (attrs or {}).get("content")
            item = self._book.get_item_with_id(cover_id) if cover_id else None
            if item is not None and _is_image(item):
                return item

        fallback = None
        for item in self._book.get_items():
            if not _is_image(item):
                continue
            properties = getattr(item, "properties", None) or []
            if item.get_type() == ebooklib.ITEM_COVER or "cover-image" in properties:
                return item
            name = f"{item.get_id() or ''} {item.get_name() or ''}".casefold()
            if fallback is None and "cover" in name:
                fallback = item
        return fallback

    @staticmethod
    def _get_meta(book: epub.EpubBook, field: str) -> str:
        values = book.get_metadata("DC", field)
        if values:
            val = values[0]
            if isinstance(val, tuple):
                return str(val[0]) if val[0] else ""
            return str(val)
        return ""


def _is_image(item: epub.EpubItem) -> bool:
    return (item.media_type or "").lower().startswith("image/")


def extract_cover(file_path: Path) -> Optional[tuple[bytes, str]]:
    """Embedded cover image of an EPUB as ``(bytes, mime_type)``, or None."""
    return EpubDocument(file_path).cover()
