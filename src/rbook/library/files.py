"""Small filesystem helpers: temp-file-then-rename writes."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from rbook.errors import LibraryIOError


def _temp_in(directory: Path, name: str) -> Path:
    fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory)
    os.close(fd)
    return Path(tmp)


def ensure_dir(directory: Path) -> Path:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LibraryIOError(f"Failed to create directory {directory}: {e}") from e
    return directory


def atomic_write_bytes(path: Path, data: bytes) -> Path:
    """Write ``data`` next to ``path`` and rename it into place."""
    ensure_dir(path.parent)
    tmp = None
    try:
        tmp = _temp_in(path.parent, path.name)
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError as e:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        raise LibraryIOError(f"Failed to write {path}: {e}") from e
    return path


def atomic_write_text(path: Path, text: str) -> Path:
    return atomic_write_bytes(path, text.encode("utf-8"))


def atomic_copy(src: Path, dest: Path) -> Path:
    """Copy ``src`` to ``dest`` so that ``dest`` is never left half-written."""
    ensure_dir(dest.parent)
    tmp = None
    try:
        tmp = _temp_in(dest.parent, dest.name)
        shutil.copyfile(src, tmp)
        os.replace(tmp, dest)
    except OSError as e:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
        raise LibraryIOError(f"Failed to copy {src} to {dest}: {e}") from e
    return dest


def is_temp_file(path: Path) -> bool:
    return path.name.startswith(".") and path.name.endswith(".tmp")
