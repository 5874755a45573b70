"""Content fingerprints used as the deduplication key."""

from __future__ import annotations

import hashlib
from pathlib import Path

from rbook.errors import LibraryIOError

_CHUNK_SIZE = 1024 * 1024


def file_digest(file_path: Path) -> str:
    """Return the lowercase hex MD5 of the file's bytes.

    Only the content matters: the same bytes under another name or
    directory give the same digest.
    """
    digest = hashlib.md5()
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        raise LibraryIOError(f"Failed to read file for hashing: {file_path}: {e}") from e
    return digest.hexdigest()
