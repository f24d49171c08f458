"""objfs data models.

Request-scoped value objects returned by filesystem operations.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from objfs.mime import DIRECTORY_MIME_TYPE

ACCESS_READ = 4
ACCESS_WRITE = 2
# Object stores expose no per-object permission model.
DEFAULT_ACCESS = ACCESS_READ | ACCESS_WRITE


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch."""
    return int(value.timestamp() * 1000)


def current_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DirectoryEntry:
    """Canonical listing record for a container, key prefix or object.

    Attributes:
        path: Virtual path of the entry, also used as its id.
        name: Last segment of the path, relative to the listed directory.
        mime_type: "inode/directory" for containers and prefixes, the
            inferred content type for objects.
        size_bytes: Object size; always 0 for directories.
        modified_at_ms: Modification time in epoch milliseconds. Synthetic
            (time of the call) for directories.
        access: Access bitmask (read=4, write=2).
        etag: Entry tag of the object, when the backend reported one.
    """

    path: str
    name: str
    mime_type: str
    size_bytes: int
    modified_at_ms: int
    access: int = DEFAULT_ACCESS
    etag: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.mime_type == DIRECTORY_MIME_TYPE

    def to_dict(self) -> dict[str, str | int]:
        """Convert the entry to its wire representation."""
        data: dict[str, str | int] = {
            "id": self.path,
            "name": self.name,
            "mime": self.mime_type,
            "size": self.size_bytes,
            "mtime": self.modified_at_ms,
            "access": self.access,
        }
        if self.etag is not None:
            data["etag"] = self.etag
        return data


@dataclass(frozen=True)
class ObjectHead:
    """Metadata reported by a storage client's object metadata lookup.

    Attributes:
        etag: Entry tag identifying the current content version.
        size_bytes: Content length in bytes.
        mime_type: Content type stored with the object, if any.
        last_modified: Last modification time, if reported.
    """

    etag: str
    size_bytes: int
    mime_type: str | None = None
    last_modified: datetime | None = None


@dataclass
class FileMeta:
    """Result of a readfile call.

    Attributes:
        etag: Entry tag of the object.
        size_bytes: Content length in bytes.
        mime_type: Content type of the object.
        not_modified: True when the caller's etag matched the current one.
        stream: Lazily consumed content chunks. None when ``not_modified``.
    """

    etag: str
    size_bytes: int
    mime_type: str
    not_modified: bool = False
    stream: AsyncIterator[bytes] | None = None

    async def read(self) -> bytes:
        """Drain the content stream into memory."""
        if self.stream is None:
            return b""
        chunks = [chunk async for chunk in self.stream]
        return b"".join(chunks)
