"""objfs S3 storage backend using boto3.

Uses standard boto3 configuration (env vars, shared credentials, instance
roles) unless explicit credentials are given. Pass ``endpoint_url`` for
S3-compatible providers such as MinIO.

boto3 is synchronous; every request runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from objfs.clients.base import StorageClient
from objfs.errors import NotFoundError, StorageBackendError
from objfs.models import ObjectHead
from objfs.records import ContainerRecord, ListingPage, ObjectRecord, PrefixRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})


def _is_not_found(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


def _translate(
    error: Exception,
    operation: str,
    container: str | None = None,
    key: str | None = None,
) -> Exception:
    """Map a boto3 failure onto the objfs error taxonomy."""
    if isinstance(error, ClientError) and _is_not_found(error):
        return NotFoundError(message=f"{operation}: not found", container=container, key=key)
    return StorageBackendError(
        message=f"{operation} failed: {error}",
        container=container,
        key=key,
        cause=error,
    )


class S3StorageClient(StorageClient):
    """S3 implementation of StorageClient."""

    def __init__(
        self,
        client: Any = None,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        page_size: int = 1000,
        chunk_size: int = 64 * 1024,
    ) -> None:
        """Initialize the S3 client.

        Args:
            client: Pre-built boto3 S3 client. Built from the remaining
                arguments when None.
            region: AWS region name.
            endpoint_url: Endpoint for S3-compatible providers.
            access_key: Access key id. Both keys must be given to override
                boto3's default credential chain.
            secret_key: Secret access key.
            page_size: MaxKeys per listing request.
            chunk_size: Bytes per chunk when streaming content.
        """
        if client is None:
            session_kwargs: dict[str, str] = {}
            if access_key and secret_key:
                session_kwargs["aws_access_key_id"] = access_key
                session_kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                **session_kwargs,
            )
        self._client = client
        self._page_size = page_size
        self._chunk_size = chunk_size

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    async def _call(
        self,
        operation: str,
        func: Callable[..., T],
        *,
        container: str | None = None,
        key: str | None = None,
        **kwargs: Any,
    ) -> T:
        try:
            return await asyncio.to_thread(func, **kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.debug("S3 %s failed: container=%s key=%s error=%s", operation, container, key, e)
            raise _translate(e, operation, container, key) from e

    async def head_object(self, container: str, key: str) -> ObjectHead:
        """Fetch object metadata with HeadObject."""
        response = await self._call(
            "head_object",
            self._client.head_object,
            container=container,
            key=key,
            Bucket=container,
            Key=key,
        )
        return ObjectHead(
            etag=response.get("ETag", ""),
            size_bytes=int(response.get("ContentLength", 0)),
            mime_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
        )

    async def get_object_stream(
        self,
        container: str,
        key: str,
        *,
        if_none_match: str | None = None,
    ) -> AsyncIterator[bytes]:
        """Stream object content from GetObject."""
        params: dict[str, str] = {"Bucket": container, "Key": key}
        if if_none_match:
            params["IfNoneMatch"] = if_none_match

        response = await self._call(
            "get_object",
            self._client.get_object,
            container=container,
            key=key,
            **params,
        )
        body = response["Body"]
        try:
            while True:
                try:
                    chunk = await asyncio.to_thread(body.read, self._chunk_size)
                except (ClientError, BotoCoreError) as e:
                    raise _translate(e, "get_object", container, key) from e
                if not chunk:
                    break
                yield chunk
        finally:
            body.close()

    async def list_objects(
        self,
        container: str,
        prefix: str,
        delimiter: str,
        *,
        continuation_token: str | None = None,
    ) -> ListingPage:
        """List one page with ListObjectsV2 and delimiter grouping."""
        params: dict[str, Any] = {
            "Bucket": container,
            "Prefix": prefix,
            "Delimiter": delimiter,
            "MaxKeys": self._page_size,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        response = await self._call(
            "list_objects",
            self._client.list_objects_v2,
            container=container,
            key=prefix,
            **params,
        )

        common_prefixes = [
            PrefixRecord(prefix=item["Prefix"]) for item in response.get("CommonPrefixes", [])
        ]
        objects = [
            ObjectRecord(
                key=item["Key"],
                size_bytes=int(item.get("Size", 0)),
                last_modified=item["LastModified"],
                etag=item.get("ETag"),
            )
            for item in response.get("Contents", [])
        ]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None

        logger.debug(
            "Listed bucket=%s prefix=%s: %d prefixes, %d objects, truncated=%s",
            container,
            prefix,
            len(common_prefixes),
            len(objects),
            next_token is not None,
        )
        return ListingPage(
            common_prefixes=common_prefixes,
            objects=objects,
            next_token=next_token,
        )

    async def list_containers(self) -> list[ContainerRecord]:
        """List buckets with ListBuckets."""
        response = await self._call("list_buckets", self._client.list_buckets)
        return [
            ContainerRecord(name=item["Name"], created_at=item.get("CreationDate"))
            for item in response.get("Buckets", [])
        ]

    async def head_container(self, container: str) -> None:
        """Check bucket existence with HeadBucket."""
        await self._call(
            "head_bucket",
            self._client.head_bucket,
            container=container,
            Bucket=container,
        )

    async def put_object(
        self,
        container: str,
        key: str,
        body: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Store an object with PutObject."""
        params: dict[str, Any] = {"Bucket": container, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        await self._call(
            "put_object",
            self._client.put_object,
            container=container,
            key=key,
            **params,
        )
