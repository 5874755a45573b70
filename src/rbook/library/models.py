"""Data models for the local book library."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from rbook.errors import DeserializationError

HASH_FILE = "file_hash.txt"
COVER_FILE = "cover.jpg"
MARK_FILE = "mark.json"
LAST_OPENED_FILE = ".lastopened"
EXTRACTED_DIR = "extracted"
CONVERTED_ZIP = "converted.zip"

SIDECAR_NAMES = frozenset(
    [HASH_FILE, COVER_FILE, MARK_FILE, LAST_OPENED_FILE, CONVERTED_ZIP]
)

THEMES = ("light", "dark", "sepia")


def _count(data: dict[str, Any], key: str, default: Optional[int] = None) -> int:
    """Non-negative integer field; floats and strings are rejected, not truncated."""
    value = data.get(key)
    if value is None:
        if default is None:
            raise DeserializationError(f"Missing field: {key}")
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DeserializationError(f"Invalid {key}: {value!r}")
    return value


def _number(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise DeserializationError(f"Invalid {key}: {value!r}")
    return float(value)


@dataclass
class LibraryEntry:
    origin_hash: str  # MD5 hex of the imported bytes
    local_directory: Path
    book_file_path: Path


@dataclass
class ImportResult:
    entry: LibraryEntry
    created: bool = False  # False when an existing entry was reused
    warnings: list[str] = field(default_factory=list)

    @property
    def book_path(self) -> Path:
        return self.entry.book_file_path


@dataclass
class CoverResult:
    data: bytes
    source: str  # "cache", "embedded" or "default"
    warnings: list[str] = field(default_factory=list)


@dataclass
class Mark:
    page: int
    content: str = ""  # user note
    width: int = 0  # window size when the mark was made
    height: int = 0
    cfi: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Mark:
        if not isinstance(data, dict):
            raise DeserializationError("Bookmark entry must be a JSON object")
        return cls(
            page=_count(data, "page"),
            content=str(data.get("content") or ""),
            width=_count(data, "width", 0),
            height=_count(data, "height", 0),
            cfi=data.get("cfi"),
        )


@dataclass
class Bookmark:
    book_path: str
    list: list[Mark] = field(default_factory=list)

    def add_or_update(
        self,
        page: int,
        content: str = "",
        width: int = 0,
        height: int = 0,
        cfi: Optional[str] = None,
    ) -> Mark:
        """Overwrite the mark for ``page`` in place, or append a new one."""
        for mark in self.list:
            if mark.page == page:
                mark.content = content
                mark.width = width
                mark.height = height
                mark.cfi = cfi
                return mark
        mark = Mark(page=page, content=content, width=width, height=height, cfi=cfi)
        self.list.append(mark)
        return mark

    def remove(self, page: int) -> None:
        self.list = [m for m in self.list if m.page != page]

    def pages(self) -> list[int]:
        return [m.page for m in self.list]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Bookmark:
        if not isinstance(data, dict):
            raise DeserializationError("Bookmark document must be a JSON object")
        marks = data.get("list", [])
        if "book_path" not in data or not isinstance(marks, list):
            raise DeserializationError("Bookmark document is missing book_path or list")
        return cls(
            book_path=str(data["book_path"]),
            list=[Mark.from_dict(m) for m in marks],
        )


@dataclass
class ReaderStyle:
    font_family: str = "Noto Serif"
    font_size: int = 18
    line_height: float = 1.4
    theme: str = "light"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> ReaderStyle:
        if not isinstance(data, dict):
            raise DeserializationError("Reader style must be a JSON object")
        defaults = cls()
        try:
            style = cls(
                font_family=str(data["font_family"]),
                font_size=_count(data, "font_size"),
                line_height=_number(data, "line_height"),
                theme=str(data.get("theme", defaults.theme)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError(f"Invalid reader style: {e}") from e
        if style.theme not in THEMES:
            raise DeserializationError(f"Unknown theme: {style.theme}")
        return style


@dataclass
class MenuItem:
    cover: str  # base64 of the cached cover
    file_path: str
    last_opened: Optional[int] = None


@dataclass
class MenuListing:
    items: list[MenuItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class TocEntry:
    label: str
    target: str  # href inside the container, may carry a #fragment
    order: int  # 1-based, depth-first
    children: list[TocEntry] = field(default_factory=list)


@dataclass
class SpineItem:
    id: str
    properties: Optional[str] = None
    linear: bool = True


@dataclass
class EpubSummary:
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    publisher: Optional[str] = None
    toc: list[str] = field(default_factory=list)  # top-level labels
    spine: list[str] = field(default_factory=list)  # idrefs
    cover_id: Optional[str] = None


@dataclass
class HtmlImage:
    path: str  # src as written in the HTML
    content: str  # base64
    mime_type: str


@dataclass
class HtmlWithImages:
    html_content: str
    images: list[HtmlImage] = field(default_factory=list)
    bookmark: Optional[Bookmark] = None
    warnings: list[str] = field(default_factory=list)
