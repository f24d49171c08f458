"""Tests for entry normalization."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from objfs.errors import UnsupportedRecordError
from objfs.models import ACCESS_READ, ACCESS_WRITE
from objfs.normalizer import EntryNormalizer, ListingContext, normalize
from objfs.records import ContainerRecord, ObjectRecord, PrefixRecord

NOW_MS = 1_234_567_890_000


def _now() -> int:
    return NOW_MS


class TestContainerRecord:
    """Containers normalize to directory entries."""

    def test_container_entry(self) -> None:
        entry = normalize(ContainerRecord(name="docs"), ListingContext(), now=_now)

        assert entry.path == "/docs"
        assert entry.name == "docs"
        assert entry.mime_type == "inode/directory"
        assert entry.size_bytes == 0
        assert entry.modified_at_ms == NOW_MS
        assert entry.is_directory

    def test_container_ignores_creation_date(self) -> None:
        """Container stamps are synthetic even when a creation date is known."""
        record = ContainerRecord(name="docs", created_at=datetime(2020, 1, 1, tzinfo=UTC))

        entry = normalize(record, ListingContext(), now=_now)

        assert entry.modified_at_ms == NOW_MS


class TestPrefixRecord:
    """Common prefixes normalize to directory entries."""

    def test_top_level_prefix(self) -> None:
        entry = normalize(PrefixRecord(prefix="sub/"), ListingContext(container="docs"), now=_now)

        assert entry.path == "/docs/sub"
        assert entry.name == "sub"
        assert entry.mime_type == "inode/directory"
        assert entry.size_bytes == 0
        assert entry.modified_at_ms == NOW_MS

    def test_nested_prefix_strips_listing_root(self) -> None:
        context = ListingContext(container="docs", prefix="a/b/")

        entry = normalize(PrefixRecord(prefix="a/b/c/"), context, now=_now)

        assert entry.path == "/docs/a/b/c"
        assert entry.name == "c"

    @pytest.mark.parametrize(
        ("listing_prefix", "record_prefix", "expected_name"),
        [
            ("", "sub/", "sub"),
            ("", "a b/", "a b"),
            ("sub/", "sub/deeper/", "deeper"),
            ("a/b/c/", "a/b/c/d/", "d"),
        ],
    )
    def test_directory_name_is_last_segment(
        self, listing_prefix: str, record_prefix: str, expected_name: str
    ) -> None:
        context = ListingContext(container="docs", prefix=listing_prefix)

        entry = normalize(PrefixRecord(prefix=record_prefix), context, now=_now)

        assert entry.name == expected_name
        assert entry.path == f"/docs/{record_prefix.rstrip('/')}"

    def test_prefix_requires_container(self) -> None:
        with pytest.raises(UnsupportedRecordError):
            normalize(PrefixRecord(prefix="sub/"), ListingContext(), now=_now)


class TestObjectRecord:
    """Objects normalize to file entries."""

    def test_object_entry(self) -> None:
        modified = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        record = ObjectRecord(key="a.txt", size_bytes=10, last_modified=modified, etag='"abc"')

        entry = normalize(record, ListingContext(container="docs"), now=_now)

        assert entry.path == "/docs/a.txt"
        assert entry.name == "a.txt"
        assert entry.mime_type == "text/plain"
        assert entry.size_bytes == 10
        assert entry.modified_at_ms == int(modified.timestamp() * 1000)
        assert entry.etag == '"abc"'
        assert not entry.is_directory

    def test_nested_object_strips_listing_root(self) -> None:
        record = ObjectRecord(
            key="sub/b.json",
            size_bytes=3,
            last_modified=datetime(2024, 1, 1, tzinfo=UTC),
        )

        entry = normalize(record, ListingContext(container="docs", prefix="sub/"), now=_now)

        assert entry.path == "/docs/sub/b.json"
        assert entry.name == "b.json"
        assert entry.mime_type == "application/json"

    def test_unknown_extension_is_binary(self) -> None:
        record = ObjectRecord(
            key="blob.zzzunknown",
            size_bytes=1,
            last_modified=datetime(2024, 1, 1, tzinfo=UTC),
        )

        entry = normalize(record, ListingContext(container="docs"), now=_now)

        assert entry.mime_type == "application/octet-stream"


class TestAccessAndWireShape:
    """Access bits and dict rendering."""

    def test_entries_are_readable_and_writable(self) -> None:
        entry = normalize(ContainerRecord(name="docs"), ListingContext(), now=_now)

        assert entry.access == ACCESS_READ | ACCESS_WRITE == 6

    def test_to_dict(self) -> None:
        entry = normalize(PrefixRecord(prefix="sub/"), ListingContext(container="docs"), now=_now)

        assert entry.to_dict() == {
            "id": "/docs/sub",
            "name": "sub",
            "mime": "inode/directory",
            "size": 0,
            "mtime": NOW_MS,
            "access": 6,
        }


class TestUnsupportedRecord:
    """Unknown record shapes are rejected."""

    @pytest.mark.parametrize("record", [None, {"Key": "a.txt"}, "a.txt", 42])
    def test_unknown_shapes_raise(self, record: object) -> None:
        with pytest.raises(UnsupportedRecordError) as exc_info:
            normalize(record, ListingContext(container="docs"), now=_now)

        assert exc_info.value.record == record

    def test_entry_normalizer_binds_context(self) -> None:
        normalizer = EntryNormalizer(ListingContext(container="docs", prefix="sub/"), now=_now)
        record = ObjectRecord(
            key="sub/b.txt",
            size_bytes=6,
            last_modified=datetime(2024, 1, 1, tzinfo=UTC),
        )

        entry = normalizer(record)

        assert normalizer.context.container == "docs"
        assert entry.name == "b.txt"
