"""Client for the remote EPUB to HTML conversion service.

The service takes a multipart upload and answers with a job id; the
converted book is then downloaded as a zip archive. Each call is tried
once.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from rbook.config import AppConfig
from rbook.errors import LibraryIOError, NetworkError, ParseError
from rbook.library.files import atomic_write_bytes, ensure_dir

log = logging.getLogger(__name__)

EPUB_MIME = "application/epub"


@dataclass
class ConversionResponse:
    id: str
    file_name: Optional[str] = None
    text: Optional[str] = None


class ConversionClient:
    def __init__(
        self, config: AppConfig, client: Optional[httpx.Client] = None
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._config.http_timeout)
        return self._client

    def upload(self, epub_path: Path) -> ConversionResponse:
        path = Path(epub_path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise LibraryIOError(f"Failed to read {path}: {e}") from e

        url = self._config.convert_api_url
        files = {"1": (path.name, content, EPUB_MIME)}
        try:
            resp = self._http().post(url, files=files)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            log.error(
                "Conversion upload error: %s %s",
                e.response.status_code,
                e.response.text[:200],
            )
            raise NetworkError(
                f"Conversion upload failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            log.error("Conversion upload request error: %s -> %s", type(e).__name__, e)
            raise NetworkError(
                f"Conversion upload failed: {type(e).__name__} ({url})"
            ) from e
        except ValueError as e:
            raise ParseError("Conversion upload failed: response is not JSON") from e

        if not isinstance(data, dict) or not data.get("id"):
            log.error("Unexpected conversion response: %r", data)
            raise ParseError("Conversion upload failed: response has no id")
        log.debug("Conversion response for %s: %r", path.name, data)
        return ConversionResponse(
            id=str(data["id"]),
            file_name=data.get("fileName"),
            text=data.get("text"),
        )

    def download(self, job_id: str, zip_path: Path, extract_dir: Path) -> Path:
        """Fetch the converted archive to ``zip_path`` and unpack it."""
        url = self._config.convert_download_url
        log.info("Downloading converted file %s", job_id)
        try:
            resp = self._http().get(url, params={"id": job_id})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Failed to download file: HTTP status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Failed to download file: {type(e).__name__} ({url})"
            ) from e

        atomic_write_bytes(Path(zip_path), resp.content)
        extract_zip(Path(zip_path), Path(extract_dir))
        log.info("File extracted to %s", extract_dir)
        return Path(extract_dir)

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None


def extract_zip(zip_path: Path, extract_dir: Path) -> None:
    """Unpack every member, refusing names that point outside ``extract_dir``.

    Members are unpacked into a temporary sibling which replaces
    ``extract_dir`` only once the whole archive is out, so a failed
    extraction leaves nothing behind.
    """
    ensure_dir(extract_dir.parent)
    try:
        staging = Path(
            tempfile.mkdtemp(prefix=f".{extract_dir.name}.", dir=extract_dir.parent)
        )
    except OSError as e:
        raise LibraryIOError(f"Failed to extract {zip_path}: {e}") from e
    try:
        _unpack(zip_path, staging.resolve())
        if extract_dir.exists():
            shutil.rmtree(extract_dir)
        os.replace(staging, extract_dir)
    except zipfile.BadZipFile as e:
        raise ParseError(f"Converted archive is corrupt: {e}") from e
    except OSError as e:
        raise LibraryIOError(f"Failed to extract {zip_path}: {e}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)


def _unpack(zip_path: Path, root: Path) -> None:
    with zipfile.ZipFile(zip_path) as archive:
        for info in archive.infolist():
            target = (root / info.filename).resolve()
            if target != root and root not in target.parents:
                raise ParseError(f"Unsafe path in archive: {info.filename}")
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
