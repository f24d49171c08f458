"""Tests for the S3 storage backend.

Uses an in-process stand-in for the boto3 client so request parameters and
error translation can be checked without network access.
"""

from __future__ import annotations

import asyncio
import io
from datetime import UTC, datetime
from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from objfs.adapter import ObjectFilesystem
from objfs.clients.s3 import S3StorageClient
from objfs.errors import NotFoundError, StorageBackendError

MODIFIED = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _client_error(code: str, status: int, operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


class FakeBody:
    """Minimal StreamingBody stand-in."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)
        self.closed = False

    def read(self, amount: int | None = None) -> bytes:
        return self._buffer.read(amount)

    def close(self) -> None:
        self.closed = True


class FakeS3:
    """Records calls and serves a bucket "docs" with a.txt and sub/b.txt."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.objects = {"a.txt": b"0123456789", "sub/b.txt": b"nested"}
        self.bodies: list[FakeBody] = []
        self.fail_with: ClientError | None = None

    def _record(self, name: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((name, kwargs))
        if self.fail_with is not None:
            raise self.fail_with

    def head_object(self, **kwargs: Any) -> dict[str, Any]:
        self._record("head_object", kwargs)
        if kwargs["Bucket"] != "docs" or kwargs["Key"] not in self.objects:
            raise _client_error("404", 404, "HeadObject")
        return {
            "ETag": '"etag-a"',
            "ContentLength": len(self.objects[kwargs["Key"]]),
            "ContentType": "text/plain",
            "LastModified": MODIFIED,
        }

    def get_object(self, **kwargs: Any) -> dict[str, Any]:
        self._record("get_object", kwargs)
        body = FakeBody(self.objects[kwargs["Key"]])
        self.bodies.append(body)
        return {"Body": body}

    def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
        self._record("list_objects_v2", kwargs)
        if kwargs["Bucket"] != "docs":
            raise _client_error("NoSuchBucket", 404, "ListObjectsV2")
        if kwargs.get("Prefix") == "sub/":
            return {
                "Contents": [
                    {"Key": "sub/b.txt", "Size": 6, "LastModified": MODIFIED, "ETag": '"b"'}
                ],
                "IsTruncated": False,
            }
        return {
            "CommonPrefixes": [{"Prefix": "sub/"}],
            "Contents": [
                {"Key": "a.txt", "Size": 10, "LastModified": MODIFIED, "ETag": '"etag-a"'}
            ],
            "IsTruncated": False,
        }

    def list_buckets(self, **kwargs: Any) -> dict[str, Any]:
        self._record("list_buckets", kwargs)
        return {"Buckets": [{"Name": "docs", "CreationDate": MODIFIED}]}

    def head_bucket(self, **kwargs: Any) -> dict[str, Any]:
        self._record("head_bucket", kwargs)
        if kwargs["Bucket"] != "docs":
            raise _client_error("404", 404, "HeadBucket")
        return {}

    def put_object(self, **kwargs: Any) -> dict[str, Any]:
        self._record("put_object", kwargs)
        return {"ETag": '"new"'}


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def s3_client(fake_s3: FakeS3) -> S3StorageClient:
    return S3StorageClient(client=fake_s3, page_size=500, chunk_size=4)


class TestHeadObject:
    """Tests for metadata lookups."""

    def test_maps_response_fields(self, s3_client: S3StorageClient) -> None:
        head = asyncio.run(s3_client.head_object("docs", "a.txt"))

        assert head.etag == '"etag-a"'
        assert head.size_bytes == 10
        assert head.mime_type == "text/plain"
        assert head.last_modified == MODIFIED

    def test_404_is_not_found(self, s3_client: S3StorageClient) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(s3_client.head_object("docs", "missing.txt"))

    def test_access_denied_is_backend_error(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        fake_s3.fail_with = _client_error("AccessDenied", 403, "HeadObject")

        with pytest.raises(StorageBackendError) as exc_info:
            asyncio.run(s3_client.head_object("docs", "a.txt"))

        assert exc_info.value.cause is fake_s3.fail_with
        assert exc_info.value.__cause__ is fake_s3.fail_with

    def test_network_failure_is_backend_error(self, fake_s3: FakeS3) -> None:
        class Unreachable(FakeS3):
            def head_object(self, **kwargs: Any) -> dict[str, Any]:
                raise EndpointConnectionError(endpoint_url="http://localhost:9000")

        client = S3StorageClient(client=Unreachable())

        with pytest.raises(StorageBackendError):
            asyncio.run(client.head_object("docs", "a.txt"))


class TestListing:
    """Tests for ListObjectsV2 and ListBuckets translation."""

    def test_requests_delimiter_grouping(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        asyncio.run(s3_client.list_objects("docs", "sub/", "/"))

        assert fake_s3.calls == [
            (
                "list_objects_v2",
                {"Bucket": "docs", "Prefix": "sub/", "Delimiter": "/", "MaxKeys": 500},
            )
        ]

    def test_forwards_continuation_token(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        asyncio.run(s3_client.list_objects("docs", "", "/", continuation_token="tok"))

        assert fake_s3.calls[0][1]["ContinuationToken"] == "tok"

    def test_parses_prefixes_and_contents(self, s3_client: S3StorageClient) -> None:
        page = asyncio.run(s3_client.list_objects("docs", "", "/"))

        assert [p.prefix for p in page.common_prefixes] == ["sub/"]
        assert [(o.key, o.size_bytes, o.etag) for o in page.objects] == [
            ("a.txt", 10, '"etag-a"')
        ]
        assert page.next_token is None

    def test_next_token_only_when_truncated(self, fake_s3: FakeS3) -> None:
        class Truncated(FakeS3):
            def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
                return {"IsTruncated": True, "NextContinuationToken": "next"}

        page = asyncio.run(S3StorageClient(client=Truncated()).list_objects("docs", "", "/"))

        assert page.next_token == "next"
        assert len(page) == 0

    def test_missing_bucket_is_not_found(self, s3_client: S3StorageClient) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(s3_client.list_objects("nope", "", "/"))

    def test_list_containers(self, s3_client: S3StorageClient) -> None:
        containers = asyncio.run(s3_client.list_containers())

        assert [(c.name, c.created_at) for c in containers] == [("docs", MODIFIED)]


class TestContainersAndWrites:
    """Tests for HeadBucket and PutObject."""

    def test_head_container(self, s3_client: S3StorageClient) -> None:
        asyncio.run(s3_client.head_container("docs"))

        with pytest.raises(NotFoundError):
            asyncio.run(s3_client.head_container("nope"))

    def test_put_object_forwards_content_type(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        asyncio.run(s3_client.put_object("docs", "x.json", b"{}", content_type="application/json"))

        assert fake_s3.calls == [
            (
                "put_object",
                {"Bucket": "docs", "Key": "x.json", "Body": b"{}", "ContentType": "application/json"},
            )
        ]


class TestObjectStream:
    """Tests for GetObject streaming."""

    def test_streams_in_chunks_and_closes_body(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        async def read() -> list[bytes]:
            return [chunk async for chunk in s3_client.get_object_stream("docs", "a.txt")]

        chunks = asyncio.run(read())

        assert chunks == [b"0123", b"4567", b"89"]
        assert fake_s3.bodies[0].closed

    def test_forwards_if_none_match(self, s3_client: S3StorageClient, fake_s3: FakeS3) -> None:
        async def read() -> None:
            async for _ in s3_client.get_object_stream("docs", "a.txt", if_none_match='"old"'):
                pass

        asyncio.run(read())

        assert fake_s3.calls[0] == (
            "get_object",
            {"Bucket": "docs", "Key": "a.txt", "IfNoneMatch": '"old"'},
        )

    def test_no_request_until_iterated(self, s3_client: S3StorageClient, fake_s3: FakeS3) -> None:
        s3_client.get_object_stream("docs", "a.txt")

        assert fake_s3.calls == []


class TestAdapterOverS3:
    """End-to-end listing through the adapter."""

    def test_docs_listing_yields_file_and_directory(self, s3_client: S3StorageClient) -> None:
        fs = ObjectFilesystem(s3_client, now=lambda: 0)

        async def run() -> list[tuple[str, str, int]]:
            stream = await fs.readdir("/docs")
            return [(e.name, e.mime_type, e.size_bytes) async for e in stream]

        assert asyncio.run(run()) == [
            ("sub", "inode/directory", 0),
            ("a.txt", "text/plain", 10),
        ]

    def test_matching_etag_skips_download(
        self, s3_client: S3StorageClient, fake_s3: FakeS3
    ) -> None:
        fs = ObjectFilesystem(s3_client)

        meta = asyncio.run(fs.readfile("/docs/a.txt", {"etag": '"etag-a"'}))

        assert meta.not_modified
        assert [name for name, _ in fake_s3.calls] == ["head_object"]

    def test_stat_missing_key_is_directory(self, s3_client: S3StorageClient) -> None:
        entry = asyncio.run(ObjectFilesystem(s3_client).stat("/docs/sub"))

        assert entry.is_directory
        assert entry.size_bytes == 0

    def test_backend_name(self, s3_client: S3StorageClient) -> None:
        assert s3_client.backend_name == "s3"
