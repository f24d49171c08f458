"""objfs storage client interface definition.

Provides the StorageClient interface that every object-storage backend must
implement. The filesystem adapter only talks to backends through it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from objfs.models import ObjectHead
from objfs.records import ContainerRecord, ListingPage


class StorageClient(ABC):
    """Abstract base class for object-storage backends.

    Implementations translate native failures: a missing container or
    object raises NotFoundError, any other failure raises
    StorageBackendError with the native exception as ``cause``.

    Implementations:
    - S3StorageClient: AWS S3 and S3-compatible stores (MinIO)
    - FilesystemStorageClient: Local directory tree (dev/test)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability.

        Returns:
            Backend name string (e.g., "filesystem", "s3").
        """
        ...

    @abstractmethod
    async def head_object(self, container: str, key: str) -> ObjectHead:
        """Get object metadata without retrieving content.

        Args:
            container: Container (bucket) name.
            key: Object key.

        Returns:
            ObjectHead with etag, size, content type and modification time.

        Raises:
            NotFoundError: If the container or object does not exist.
            StorageBackendError: If the backend cannot complete the request.
        """
        ...

    @abstractmethod
    def get_object_stream(
        self,
        container: str,
        key: str,
        *,
        if_none_match: str | None = None,
    ) -> AsyncIterator[bytes]:
        """Stream object content.

        The request is issued when iteration starts, not when this method
        is called.

        Args:
            container: Container (bucket) name.
            key: Object key.
            if_none_match: Entry tag forwarded as a conditional header.

        Returns:
            Async iterator over content chunks.
        """
        ...

    @abstractmethod
    async def list_objects(
        self,
        container: str,
        prefix: str,
        delimiter: str,
        *,
        continuation_token: str | None = None,
    ) -> ListingPage:
        """List one page of keys under a prefix, grouped by delimiter.

        Args:
            container: Container (bucket) name.
            prefix: Listing root ("" or ending with the delimiter).
            delimiter: Grouping delimiter. Keys containing it past the prefix
                collapse into common prefixes.
            continuation_token: Token from the previous page's ``next_token``.

        Returns:
            ListingPage with common prefixes, objects and the next token.

        Raises:
            NotFoundError: If the container does not exist.
            StorageBackendError: If the backend cannot complete the listing.
        """
        ...

    @abstractmethod
    async def list_containers(self) -> list[ContainerRecord]:
        """List all containers visible to the client."""
        ...

    @abstractmethod
    async def head_container(self, container: str) -> None:
        """Check that a container exists.

        Raises:
            NotFoundError: If the container does not exist.
            StorageBackendError: If the backend cannot complete the request.
        """
        ...

    @abstractmethod
    async def put_object(
        self,
        container: str,
        key: str,
        body: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Store an object, replacing any existing one under the same key."""
        ...
