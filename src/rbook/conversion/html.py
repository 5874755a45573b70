"""Load a converted HTML page together with the images it references."""

from __future__ import annotations

import base64
import logging
import mimetypes
import warnings as _warnings
from pathlib import Path
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from rbook.errors import LibraryIOError
from rbook.library.models import HtmlImage, HtmlWithImages

_warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

log = logging.getLogger(__name__)


def _is_local(src: str) -> bool:
    parts = urlsplit(src)
    return not parts.scheme and not parts.netloc


def load_html_with_images(html_path: Path) -> HtmlWithImages:
    html_path = Path(html_path)
    try:
        html = html_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise LibraryIOError(f"Failed to read {html_path}: {e}") from e

    result = HtmlWithImages(html_content=html)
    soup = BeautifulSoup(html, "lxml")
    seen: set[str] = set()
    for tag in soup.find_all("img"):
        src = (tag.get("src") or "").strip()
        if not src or src in seen or not _is_local(src):
            continue
        seen.add(src)

        image_path = html_path.parent / unquote(urlsplit(src).path)
        try:
            data = image_path.read_bytes()
        except OSError as e:
            msg = f"Skipping image {src}: {e}"
            log.warning(msg)
            result.warnings.append(msg)
            continue

        mime_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
        result.images.append(
            HtmlImage(
                path=src,
                content=base64.b64encode(data).decode("ascii"),
                mime_type=mime_type,
            )
        )
    return result
