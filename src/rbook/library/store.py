"""Content-addressed book store under ``<data_dir>/books``.

Every imported book lives in its own directory together with its sidecar
files::

    books/<md5-or-random-id>/
        <original name>.epub
        file_hash.txt
        cover.jpg
        mark.json
        .lastopened
        extracted/

A fingerprint maps to at most one directory. Directories named after the
fingerprint are checked first, then every other directory's
``file_hash.txt``, so stores written with random directory names are
still found.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Optional

from rbook.config import AppConfig
from rbook.errors import LibraryIOError

from .files import atomic_copy, atomic_write_text, ensure_dir, is_temp_file
from .hasher import file_digest
from .locks import KeyedLocks, path_locks
from .models import (
    EXTRACTED_DIR,
    HASH_FILE,
    SIDECAR_NAMES,
    ImportResult,
    LibraryEntry,
)

log = logging.getLogger(__name__)

_MD5_RE = re.compile(r"^[0-9a-f]{32}$")


def _is_reserved(path: Path) -> bool:
    """Names that would land on a sidecar file inside the entry directory."""
    return (
        path.name in SIDECAR_NAMES or path.name == EXTRACTED_DIR or is_temp_file(path)
    )


class LibraryStore:
    def __init__(self, config: AppConfig, locks: KeyedLocks = path_locks) -> None:
        self._config = config
        self._locks = locks

    @property
    def books_dir(self) -> Path:
        return self._config.books_dir

    # ── Import ─────────────────────────────────────────────

    def import_or_locate(self, origin_path: Path) -> ImportResult:
        """Return the local copy of ``origin_path``, importing it on first sight.

        Re-importing identical bytes, under any name, returns the existing
        entry untouched.
        """
        origin = Path(origin_path)
        if _is_reserved(origin):
            raise LibraryIOError(f"Cannot import {origin}: name is reserved in the library")
        digest = file_digest(origin)
        ensure_dir(self.books_dir)

        with self._locks.hold(f"import:{self.books_dir}:{digest}"):
            entry = self.locate(digest, origin.suffix)
            if entry is not None:
                log.debug("Already imported %s as %s", origin, entry.book_file_path)
                return ImportResult(entry=entry, created=False)
            return self._create(origin, digest)

    def _create(self, origin: Path, digest: str) -> ImportResult:
        warnings: list[str] = []
        named = self.books_dir / digest
        if named.is_dir() and self._read_hash(named) not in (None, digest):
            directory = self._fresh_dir()
        else:
            if named.is_dir():
                log.info("Repairing incomplete entry %s", named)
            directory = ensure_dir(named)

        book = atomic_copy(origin, directory / origin.name)
        try:
            atomic_write_text(directory / HASH_FILE, digest)
        except LibraryIOError as e:
            msg = f"Failed to write hash file for {directory}: {e}"
            log.warning(msg)
            warnings.append(msg)

        log.info("Imported %s into %s", origin, directory)
        return ImportResult(
            entry=LibraryEntry(
                origin_hash=digest, local_directory=directory, book_file_path=book
            ),
            created=True,
            warnings=warnings,
        )

    def _fresh_dir(self) -> Path:
        while True:
            candidate = self.books_dir / uuid.uuid4().hex
            try:
                candidate.mkdir()
            except FileExistsError:
                continue
            except OSError as e:
                raise LibraryIOError(
                    f"Failed to create book directory {candidate}: {e}"
                ) from e
            return candidate

    # ── Lookup ─────────────────────────────────────────────

    def locate(self, digest: str, suffix: str = "") -> Optional[LibraryEntry]:
        named = self.books_dir / digest
        if named.is_dir() and self._read_hash(named) in (None, digest):
            book = self._book_file_in(named, suffix)
            if book is not None:
                return LibraryEntry(
                    origin_hash=digest, local_directory=named, book_file_path=book
                )

        for directory in self._entry_dirs():
            if directory == named or self._read_hash(directory) != digest:
                continue
            book = self._book_file_in(directory, suffix)
            if book is None:
                log.warning("Entry %s has no book file, ignoring", directory)
                continue
            return LibraryEntry(
                origin_hash=digest, local_directory=directory, book_file_path=book
            )
        return None

    def entries(self, suffix: str = ".epub") -> list[LibraryEntry]:
        """All complete entries, in directory-name order."""
        result: list[LibraryEntry] = []
        for directory in self._entry_dirs():
            book = self._book_file_in(directory, suffix, strict=True)
            if book is None:
                continue
            digest = self._read_hash(directory)
            if digest is None and _MD5_RE.match(directory.name):
                digest = directory.name
            result.append(
                LibraryEntry(
                    origin_hash=digest or "",
                    local_directory=directory,
                    book_file_path=book,
                )
            )
        return result

    def entry_root(self, path: Path) -> Path:
        """The per-book directory that owns ``path``.

        Paths outside the store fall back to their parent directory.
        """
        path = Path(os.path.abspath(path))
        books = Path(os.path.abspath(self.books_dir))
        try:
            rel = path.relative_to(books)
        except ValueError:
            return path.parent
        if len(rel.parts) < 2:
            return path.parent
        return books / rel.parts[0]

    def _entry_dirs(self) -> list[Path]:
        if not self.books_dir.is_dir():
            return []
        try:
            return sorted(p for p in self.books_dir.iterdir() if p.is_dir())
        except OSError as e:
            raise LibraryIOError(f"Failed to list {self.books_dir}: {e}") from e

    @staticmethod
    def _read_hash(directory: Path) -> Optional[str]:
        hash_file = directory / HASH_FILE
        if not hash_file.is_file():
            return None
        try:
            return hash_file.read_text(encoding="utf-8").strip().lower()
        except OSError as e:
            log.warning("Unreadable hash file %s: %s", hash_file, e)
            return None

    @staticmethod
    def _book_file_in(
        directory: Path, suffix: str = "", strict: bool = False
    ) -> Optional[Path]:
        try:
            candidates = sorted(
                p
                for p in directory.iterdir()
                if p.is_file() and p.name not in SIDECAR_NAMES and not is_temp_file(p)
            )
        except OSError as e:
            log.warning("Unreadable book directory %s: %s", directory, e)
            return None
        if suffix:
            matching = [p for p in candidates if p.suffix.lower() == suffix.lower()]
            if matching or strict:
                return matching[0] if matching else None
        return candidates[0] if candidates else None
