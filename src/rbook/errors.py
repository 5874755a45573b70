"""Error categories raised by the library store and its collaborators."""

from __future__ import annotations


class RbookError(Exception):
    """Base for every expected failure. ``str(err)`` is the user-facing message."""


class LibraryIOError(RbookError):
    """Filesystem open/read/write/copy/create-dir failure."""


class NotFoundError(RbookError):
    """A required file, directory or path component is missing."""


class ParseError(RbookError):
    """Malformed input: EPUB container errors, bad archives, bad API payloads."""


class DeserializationError(ParseError):
    """A JSON or plain-text sidecar exists but cannot be decoded."""


class NetworkError(RbookError):
    """Non-success HTTP status or transport failure."""


class CoverError(RbookError):
    """Neither the embedded cover nor the default cover could be used."""
