"""Library listing: every stored book joined with its cached cover."""

from __future__ import annotations

import base64
import logging

from rbook.errors import RbookError

from .cover import CoverResolver
from .models import MenuItem, MenuListing
from .sidecar import LastOpenedStore
from .store import LibraryStore

log = logging.getLogger(__name__)


def list_books(
    store: LibraryStore, covers: CoverResolver, last_opened: LastOpenedStore
) -> MenuListing:
    """Walk ``books/`` and build one menu item per stored EPUB.

    Books whose cover cannot be produced are left out and reported in
    ``warnings``. Most recently opened books come first.
    """
    listing = MenuListing()
    for entry in store.entries(".epub"):
        try:
            cover = covers.resolve_cover(entry.local_directory, entry.book_file_path)
        except RbookError as e:
            msg = f"Skipping {entry.book_file_path}: {e}"
            log.warning(msg)
            listing.warnings.append(msg)
            continue
        listing.warnings.extend(cover.warnings)

        try:
            opened = last_opened.read(entry.book_file_path)
        except RbookError as e:
            msg = f"Ignoring last-opened time of {entry.book_file_path}: {e}"
            log.warning(msg)
            listing.warnings.append(msg)
            opened = None

        listing.items.append(
            MenuItem(
                cover=base64.b64encode(cover.data).decode("ascii"),
                file_path=str(entry.book_file_path),
                last_opened=opened,
            )
        )

    listing.items.sort(
        key=lambda item: (
            item.last_opened is None,
            -(item.last_opened or 0),
            item.file_path,
        )
    )
    return listing
