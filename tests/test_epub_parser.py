"""Tests for the ebooklib-backed EPUB reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from rbook.errors import LibraryIOError, NotFoundError, ParseError
from rbook.parsers.epub_parser import EpubDocument, extract_cover


class TestEpubDocument:
    def test_metadata(self, make_epub):
        doc = EpubDocument(make_epub(title="Dune", author="Frank Herbert"))
        assert doc.metadata("title") == "Dune"
        assert doc.metadata("creator") == "Frank Herbert"
        assert doc.metadata("language") == "en"
        assert doc.metadata("publisher") == "Test Press"
        assert doc.metadata("description") == "A book for tests."
        assert doc.metadata("rights") is None

    def test_toc_nested(self, make_epub):
        toc = EpubDocument(make_epub()).toc()
        assert [entry.label for entry in toc] == ["Chapter 1", "Part Two"]
        assert toc[0].target == "ch1.xhtml"
        assert [child.label for child in toc[1].children] == ["Chapter 2"]
        orders = [toc[0].order, toc[1].order, toc[1].children[0].order]
        assert orders == [1, 2, 3]

    def test_spine(self, make_epub):
        spine = EpubDocument(make_epub()).spine()
        assert len(spine) == 3
        assert spine[0].id == "nav"
        assert all(item.linear for item in spine)

    def test_page(self, make_epub):
        doc = EpubDocument(make_epub())
        assert "First paragraph." in doc.page(1)
        with pytest.raises(NotFoundError, match="out of range"):
            doc.page(99)

    def test_resources(self, make_epub):
        doc = EpubDocument(make_epub())
        keys = doc.resource_keys()
        assert "ch1.xhtml" in keys
        data, mime = doc.resource("ch1.xhtml")
        assert b"First paragraph." in data
        assert mime == "application/xhtml+xml"
        with pytest.raises(NotFoundError):
            doc.resource("missing.xhtml")

    def test_cover(self, make_epub, cover_bytes: bytes):
        doc = EpubDocument(make_epub("c.epub", cover=cover_bytes))
        cover = doc.cover()
        assert cover is not None
        data, mime = cover
        assert data == cover_bytes
        assert mime == "image/jpeg"
        assert doc.summary().cover_id is not None

    def test_no_cover(self, make_epub):
        assert extract_cover(make_epub()) is None

    def test_summary(self, make_epub):
        summary = EpubDocument(make_epub(title="T", author="A")).summary()
        assert summary.title == "T"
        assert summary.author == "A"
        assert summary.toc == ["Chapter 1", "Part Two"]
        assert len(summary.spine) == 3
        assert summary.cover_id is None

    def test_not_an_epub(self, tmp_path: Path):
        f = tmp_path / "fake.epub"
        f.write_bytes(b"this is not a zip")
        with pytest.raises(ParseError):
            EpubDocument(f)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises((LibraryIOError, ParseError)):
            EpubDocument(tmp_path / "missing.epub")
