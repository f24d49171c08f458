"""MIME type inference by file extension."""

from __future__ import annotations

import mimetypes

DIRECTORY_MIME_TYPE = "inode/directory"
DEFAULT_MIME_TYPE = "application/octet-stream"


def infer_mime_type(name: str) -> str:
    """Look up the MIME type for ``name``, defaulting to a generic binary type."""
    mime_type, _ = mimetypes.guess_type(name, strict=False)
    return mime_type or DEFAULT_MIME_TYPE
