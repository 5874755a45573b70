"""Tests for cover resolution and the default cover."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

import pytest

from rbook.config import BUNDLED_DEFAULT_COVER, AppConfig
from rbook.errors import CoverError, ParseError
from rbook.library.cover import (
    MIN_COVER_BYTES,
    CoverResolver,
    install_default_cover,
    load_default_cover,
)


@pytest.fixture
def book_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data" / "books" / "abc"
    d.mkdir(parents=True)
    (d / "book.epub").write_bytes(b"epub")
    return d


class TestCoverResolver:
    def test_no_embedded_cover_uses_default(self, config: AppConfig, book_dir: Path):
        extractor = Mock(return_value=None)
        resolver = CoverResolver(config, extractor)

        result = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        default = config.default_cover_path.read_bytes()
        assert result.source == "default"
        assert result.data == default
        assert (book_dir / "cover.jpg").read_bytes() == default

    def test_second_call_hits_cache(self, config: AppConfig, book_dir: Path):
        extractor = Mock(return_value=None)
        resolver = CoverResolver(config, extractor)

        first = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        second = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        assert second.source == "cache"
        assert second.data == first.data
        extractor.assert_called_once()

    def test_embedded_cover_persisted(
        self, config: AppConfig, book_dir: Path, cover_bytes: bytes
    ):
        resolver = CoverResolver(config, Mock(return_value=(cover_bytes, "image/jpeg")))
        result = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        assert result.source == "embedded"
        assert (book_dir / "cover.jpg").read_bytes() == cover_bytes

    def test_small_cover_replaced(self, config: AppConfig, book_dir: Path):
        tiny = b"x" * (MIN_COVER_BYTES - 1)
        resolver = CoverResolver(config, Mock(return_value=(tiny, "image/png")))
        result = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        assert result.source == "default"
        assert result.data == config.default_cover_path.read_bytes()

    def test_exactly_min_size_kept(self, config: AppConfig, book_dir: Path):
        data = b"y" * MIN_COVER_BYTES
        resolver = CoverResolver(config, Mock(return_value=(data, "image/png")))
        assert resolver.resolve_cover(book_dir, book_dir / "book.epub").data == data

    def test_existing_cover_not_reextracted(self, config: AppConfig, book_dir: Path):
        (book_dir / "cover.jpg").write_bytes(b"cached")
        extractor = Mock()
        result = CoverResolver(config, extractor).resolve_cover(
            book_dir, book_dir / "book.epub"
        )
        assert result.data == b"cached"
        extractor.assert_not_called()

    def test_extraction_error_falls_back(self, config: AppConfig, book_dir: Path):
        resolver = CoverResolver(config, Mock(side_effect=ParseError("bad zip")))
        result = resolver.resolve_cover(book_dir, book_dir / "book.epub")
        assert result.source == "default"
        assert any("bad zip" in w for w in result.warnings)

    def test_no_default_available(self, tmp_path: Path, book_dir: Path):
        config = AppConfig(
            data_dir=tmp_path / "data", default_cover_path=tmp_path / "missing.png"
        )
        resolver = CoverResolver(config, Mock(return_value=None))
        with pytest.raises(CoverError):
            resolver.resolve_cover(book_dir, book_dir / "book.epub")
        assert not (book_dir / "cover.jpg").exists()

    def test_real_epub_cover(self, config: AppConfig, make_epub, cover_bytes: bytes):
        book = make_epub("covered.epub", cover=cover_bytes)
        result = CoverResolver(config).resolve_cover(book.parent, book)
        assert result.source == "embedded"
        assert result.data == cover_bytes


class TestDefaultCover:
    def test_bundled_cover_is_real_image(self):
        data = BUNDLED_DEFAULT_COVER.read_bytes()
        assert data.startswith(b"\x89PNG\r\n\x1a\n")
        assert len(data) >= MIN_COVER_BYTES

    def test_install_once(self, config: AppConfig):
        target = install_default_cover(config)
        assert target == config.installed_default_cover
        assert target.read_bytes() == config.default_cover_path.read_bytes()
        target.write_bytes(b"customised")
        install_default_cover(config)
        assert target.read_bytes() == b"customised"

    def test_installed_copy_preferred(self, config: AppConfig):
        config.installed_default_cover.parent.mkdir(parents=True)
        config.installed_default_cover.write_bytes(b"installed")
        assert load_default_cover(config) == b"installed"

    def test_install_missing_resource(self, tmp_path: Path):
        config = AppConfig(
            data_dir=tmp_path / "data", default_cover_path=tmp_path / "nope.png"
        )
        with pytest.raises(CoverError):
            install_default_cover(config)
