"""Entry normalization.

Maps raw storage-client records onto the canonical DirectoryEntry shape.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from objfs.errors import UnsupportedRecordError
from objfs.mime import DIRECTORY_MIME_TYPE, infer_mime_type
from objfs.models import DirectoryEntry, current_millis, to_epoch_millis
from objfs.paths import DELIMITER, join, strip_delimiter
from objfs.records import ContainerRecord, ObjectRecord, PrefixRecord


@dataclass(frozen=True)
class ListingContext:
    """Where a listing was taken from.

    Attributes:
        container: Container being listed. Empty when listing containers.
        prefix: Listing root within the container ("" or ending in the
            delimiter).
        delimiter: Key delimiter used for the listing.
    """

    container: str = ""
    prefix: str = ""
    delimiter: str = DELIMITER


class EntryNormalizer:
    """Normalizes raw records for one listing.

    Args:
        context: Listing the records belong to.
        now: Clock returning epoch milliseconds, used for the synthetic
            modification stamp of containers and prefixes.
    """

    def __init__(
        self,
        context: ListingContext,
        *,
        now: Callable[[], int] | None = None,
    ) -> None:
        self._context = context
        self._now = now or current_millis

    @property
    def context(self) -> ListingContext:
        return self._context

    def __call__(self, record: Any) -> DirectoryEntry:
        return normalize(record, self._context, now=self._now)


def _relative_name(value: str, context: ListingContext) -> str:
    """Strip the listing root from a key, falling back to its last segment."""
    if context.prefix and value.startswith(context.prefix):
        return value[len(context.prefix) :]
    return value.rsplit(context.delimiter, 1)[-1]


def _require_container(record: Any, context: ListingContext) -> None:
    if not context.container:
        raise UnsupportedRecordError(
            message=f"{type(record).__name__} requires a container context",
            record=record,
        )


def normalize(
    record: Any,
    context: ListingContext,
    *,
    now: Callable[[], int] | None = None,
) -> DirectoryEntry:
    """Map a raw record onto a DirectoryEntry.

    Args:
        record: A ContainerRecord, PrefixRecord or ObjectRecord.
        context: The listing the record came from.
        now: Clock returning epoch milliseconds for synthetic stamps.

    Returns:
        The normalized entry.

    Raises:
        UnsupportedRecordError: If the record is none of the known variants,
            or a key-scoped record arrives without a container context.
    """
    clock = now or current_millis

    if isinstance(record, ContainerRecord):
        return DirectoryEntry(
            path=join(record.name),
            name=record.name,
            mime_type=DIRECTORY_MIME_TYPE,
            size_bytes=0,
            modified_at_ms=clock(),
        )

    if isinstance(record, PrefixRecord):
        _require_container(record, context)
        key = strip_delimiter(record.prefix, context.delimiter)
        return DirectoryEntry(
            path=join(context.container, key),
            name=_relative_name(key, context),
            mime_type=DIRECTORY_MIME_TYPE,
            size_bytes=0,
            modified_at_ms=clock(),
        )

    if isinstance(record, ObjectRecord):
        _require_container(record, context)
        name = _relative_name(record.key, context)
        return DirectoryEntry(
            path=join(context.container, record.key),
            name=name,
            mime_type=infer_mime_type(name),
            size_bytes=record.size_bytes,
            modified_at_ms=to_epoch_millis(record.last_modified),
            etag=record.etag,
        )

    raise UnsupportedRecordError(
        message=f"Unsupported record type: {type(record).__name__}",
        record=record,
        container=context.container or None,
    )
