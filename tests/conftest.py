"""Shared fixtures for tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest
from ebooklib import epub

from rbook.config import AppConfig
from rbook.library.store import LibraryStore

COVER_BYTES = b"\xff\xd8\xff\xe0" + b"cover-image-bytes" * 128  # > 1 KiB


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(data_dir=tmp_path / "data")


@pytest.fixture
def store(config: AppConfig) -> LibraryStore:
    return LibraryStore(config)


def write_epub(
    path: Path,
    title: str = "Test Book",
    author: str = "Test Author",
    cover: Optional[bytes] = None,
) -> Path:
    book = epub.EpubBook()
    book.set_identifier(f"id-{title}")
    book.set_title(title)
    book.set_language("en")
    book.add_author(author)
    book.add_metadata("DC", "publisher", "Test Press")
    book.add_metadata("DC", "description", "A book for tests.")

    c1 = epub.EpubHtml(title="Chapter 1", file_name="ch1.xhtml", lang="en")
    c1.content = "<html><body><h1>Chapter 1</h1><p>First paragraph.</p></body></html>"
    book.add_item(c1)

    c2 = epub.EpubHtml(title="Chapter 2", file_name="ch2.xhtml", lang="en")
    c2.content = "<html><body><h1>Chapter 2</h1><p>Chapter two content.</p></body></html>"
    book.add_item(c2)

    if cover is not None:
        book.set_cover("images/cover.jpg", cover, create_page=False)

    book.toc = [
        epub.Link("ch1.xhtml", "Chapter 1", "ch1"),
        (epub.Section("Part Two", "ch2.xhtml"), [epub.Link("ch2.xhtml", "Chapter 2", "ch2")]),
    ]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", c1, c2]

    path.parent.mkdir(parents=True, exist_ok=True)
    epub.write_epub(str(path), book)
    return path


@pytest.fixture
def make_epub(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "book.epub", **kwargs) -> Path:
        return write_epub(tmp_path / "src" / name, **kwargs)

    return _make


@pytest.fixture
def cover_bytes() -> bytes:
    return COVER_BYTES
