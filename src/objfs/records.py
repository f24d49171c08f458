"""Raw records produced by storage clients.

Storage clients translate their native listing responses into one of three
record variants, so the normalizer never has to guess a record's shape from
which fields happen to be present.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ContainerRecord:
    """A container (bucket) returned by a container listing."""

    name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class PrefixRecord:
    """A common prefix returned by a delimiter listing. Ends with the delimiter."""

    prefix: str


@dataclass(frozen=True)
class ObjectRecord:
    """An object returned by a listing."""

    key: str
    size_bytes: int
    last_modified: datetime
    etag: str | None = None


RawRecord = ContainerRecord | PrefixRecord | ObjectRecord


@dataclass(frozen=True)
class ListingPage:
    """One page of a delimiter listing.

    Attributes:
        common_prefixes: Key prefixes one level below the listing prefix.
        objects: Objects directly under the listing prefix.
        next_token: Continuation token for the following page, or None when
            this is the last page.
    """

    common_prefixes: list[PrefixRecord] = field(default_factory=list)
    objects: list[ObjectRecord] = field(default_factory=list)
    next_token: str | None = None

    def records(self) -> Iterator[PrefixRecord | ObjectRecord]:
        """Yield prefixes first, then objects."""
        yield from self.common_prefixes
        yield from self.objects

    def __len__(self) -> int:
        return len(self.common_prefixes) + len(self.objects)
