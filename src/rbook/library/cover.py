"""Cover images cached as ``cover.jpg`` inside each book directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from rbook.config import AppConfig
from rbook.errors import CoverError, LibraryIOError, RbookError
from rbook.parsers.epub_parser import extract_cover

from .files import atomic_copy, atomic_write_bytes
from .models import COVER_FILE, CoverResult

log = logging.getLogger(__name__)

# Embedded covers below this size are placeholders or damaged.
MIN_COVER_BYTES = 1024

CoverExtractor = Callable[[Path], Optional[tuple[bytes, str]]]


def install_default_cover(config: AppConfig) -> Path:
    """Copy the bundled default cover into ``<data_dir>/cover`` once."""
    target = config.installed_default_cover
    if target.is_file():
        return target
    if not config.default_cover_path.is_file():
        raise CoverError(f"Default cover image not found: {config.default_cover_path}")
    atomic_copy(config.default_cover_path, target)
    log.info("Installed default cover at %s", target)
    return target


def load_default_cover(config: AppConfig) -> bytes:
    for candidate in (config.installed_default_cover, config.default_cover_path):
        if not candidate.is_file():
            continue
        try:
            return candidate.read_bytes()
        except OSError as e:
            log.warning("Failed to read default cover file %s: %s", candidate, e)
    raise CoverError("Default cover image not found")


class CoverResolver:
    def __init__(
        self, config: AppConfig, extractor: CoverExtractor = extract_cover
    ) -> None:
        self._config = config
        self._extract = extractor

    def resolve_cover(self, book_directory: Path, book_file_path: Path) -> CoverResult:
        """Return the book's cover, extracting and caching it on first use."""
        cover_path = Path(book_directory) / COVER_FILE
        warnings: list[str] = []

        if cover_path.is_file():
            try:
                return CoverResult(data=cover_path.read_bytes(), source="cache")
            except OSError as e:
                msg = f"Failed to read cover file {cover_path}: {e}"
                log.warning(msg)
                warnings.append(msg)

        extracted: Optional[tuple[bytes, str]] = None
        try:
            extracted = self._extract(Path(book_file_path))
        except RbookError as e:
            msg = f"Cover extraction failed for {book_file_path}: {e}"
            log.warning(msg)
            warnings.append(msg)

        if extracted is not None and len(extracted[0]) >= MIN_COVER_BYTES:
            data, source = extracted[0], "embedded"
        else:
            if extracted is not None:
                log.info(
                    "Embedded cover of %s is %d bytes, using default",
                    book_file_path,
                    len(extracted[0]),
                )
            data, source = load_default_cover(self._config), "default"

        try:
            atomic_write_bytes(cover_path, data)
        except LibraryIOError as e:
            msg = f"Failed to cache cover for {book_directory}: {e}"
            log.warning(msg)
            warnings.append(msg)

        return CoverResult(data=data, source=source, warnings=warnings)
