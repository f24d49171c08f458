"""Filesystem adapter over object storage.

Exposes readfile, mkfile, rmfile, readdir, stat, mkdir, rmdir, rename, copy
and symlink for a flat key space. Directories are synthesized from key
prefixes: listings always request delimiter grouping from the backend, and a
key the backend reports missing is treated as an implicit directory by stat.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import TYPE_CHECKING, Any

from objfs.clients.base import StorageClient
from objfs.errors import InvalidOperationError, NotFoundError, OperationNotImplementedError
from objfs.mime import DIRECTORY_MIME_TYPE, infer_mime_type
from objfs.models import DirectoryEntry, FileMeta, current_millis, to_epoch_millis
from objfs.normalizer import EntryNormalizer, ListingContext
from objfs.paths import DELIMITER, ResolvedPath, listing_prefix, resolve
from objfs.records import ContainerRecord, ListingPage, ObjectRecord, RawRecord
from objfs.stream import EntryStream
from objfs.tracing import traced_fs_operation

if TYPE_CHECKING:
    from objfs.config import ObjfsConfig

logger = logging.getLogger(__name__)

Options = Mapping[str, Any]


async def _iter_containers(containers: list[ContainerRecord]) -> AsyncIterator[RawRecord]:
    for container in containers:
        yield container


class ObjectFilesystem:
    """Filesystem-like operations on top of a StorageClient.

    Every operation takes a virtual path ("/", "/container" or
    "/container/key...") and an optional options mapping. Results are
    returned and failures raised; readdir returns an EntryStream.

    Args:
        client: Storage backend to operate on.
        delimiter: Key delimiter interpreted as a path separator.
        now: Clock returning epoch milliseconds for synthetic timestamps.
    """

    operations = (
        "readfile",
        "mkfile",
        "rmfile",
        "readdir",
        "stat",
        "mkdir",
        "rmdir",
        "rename",
        "copy",
        "symlink",
    )

    def __init__(
        self,
        client: StorageClient,
        *,
        delimiter: str = DELIMITER,
        now: Callable[[], int] | None = None,
    ) -> None:
        self._client = client
        self._delimiter = delimiter
        self._now = now or current_millis

    @property
    def backend_name(self) -> str:
        return self._client.backend_name

    @property
    def client(self) -> StorageClient:
        return self._client

    async def call(self, operation: str, path: str, options: Options | None = None) -> Any:
        """Invoke an operation by name.

        Raises:
            InvalidOperationError: If ``operation`` is not part of the surface.
        """
        if operation not in self.operations:
            raise InvalidOperationError(f"Unknown operation: {operation}", path=path)
        return await getattr(self, operation)(path, options)

    def _directory_entry(self, resolved: ResolvedPath) -> DirectoryEntry:
        return DirectoryEntry(
            path=resolved.virtual_path,
            name=resolved.name,
            mime_type=DIRECTORY_MIME_TYPE,
            size_bytes=0,
            modified_at_ms=self._now(),
        )

    @traced_fs_operation("stat")
    async def stat(self, path: str, options: Options | None = None) -> DirectoryEntry:
        """Describe a path.

        The root is always a directory. A container is a directory if the
        backend confirms it exists. A key is a file if the backend has an
        object under it; otherwise it is reported as an empty directory,
        since object stores need no marker object for a prefix to act as one.
        This cannot tell a directory without a marker from a path that does
        not exist at all.

        Raises:
            NotFoundError: If a container-only path names a missing container.
            StorageBackendError: For any other backend failure.
        """
        resolved = resolve(path)

        if resolved.is_root:
            return self._directory_entry(resolved)

        if resolved.is_container:
            await self._client.head_container(resolved.container)
            return self._directory_entry(resolved)

        try:
            head = await self._client.head_object(resolved.container, resolved.key)
        except NotFoundError:
            logger.debug("stat: no object at %s, reporting implicit directory", path)
            return self._directory_entry(resolved)

        if head.last_modified is not None:
            modified_at_ms = to_epoch_millis(head.last_modified)
        else:
            modified_at_ms = self._now()

        return DirectoryEntry(
            path=resolved.virtual_path,
            name=resolved.name,
            mime_type=head.mime_type or infer_mime_type(resolved.name),
            size_bytes=head.size_bytes,
            modified_at_ms=modified_at_ms,
            etag=head.etag,
        )

    @traced_fs_operation("readfile")
    async def readfile(self, path: str, options: Options | None = None) -> FileMeta:
        """Read an object.

        Args:
            path: Virtual path of the object.
            options: ``etag`` makes the read conditional. When it matches the
                object's current tag, no content is fetched.

        Returns:
            FileMeta with ``not_modified=True`` and no stream on a tag match,
            otherwise the object's metadata and a lazily consumed byte stream.

        Raises:
            InvalidOperationError: If the path is the root or a container.
            NotFoundError: If the object does not exist.
            StorageBackendError: For any other backend failure.
        """
        resolved = resolve(path)
        if resolved.is_root or resolved.is_container:
            raise InvalidOperationError("readfile: path is a directory", path=path)

        head = await self._client.head_object(resolved.container, resolved.key)
        mime_type = head.mime_type or infer_mime_type(resolved.name)
        etag = (options or {}).get("etag")

        if etag is not None and etag == head.etag:
            logger.debug("readfile: %s not modified (etag=%s)", path, etag)
            return FileMeta(
                etag=head.etag,
                size_bytes=head.size_bytes,
                mime_type=mime_type,
                not_modified=True,
            )

        stream = self._client.get_object_stream(
            resolved.container,
            resolved.key,
            if_none_match=etag,
        )
        return FileMeta(
            etag=head.etag,
            size_bytes=head.size_bytes,
            mime_type=mime_type,
            stream=stream,
        )

    @traced_fs_operation("readdir")
    async def readdir(self, path: str, options: Options | None = None) -> EntryStream:
        """List a directory as a stream of entries.

        The root lists containers. Any other path lists the keys under it
        with delimiter grouping, so nested keys collapse into one directory
        entry per common prefix. The first listing page is fetched before
        the stream is returned; later pages are fetched as the consumer
        drains the stream.

        Raises:
            NotFoundError: If the container does not exist.
            StorageBackendError: If the initial listing request fails.
        """
        resolved = resolve(path)

        if resolved.is_root:
            containers = await self._client.list_containers()
            context = ListingContext(delimiter=self._delimiter)
            source = _iter_containers(containers)
            logger.debug("readdir: %d containers", len(containers))
        else:
            prefix = listing_prefix(resolved.key, self._delimiter)
            first_page = await self._client.list_objects(
                resolved.container,
                prefix,
                self._delimiter,
            )
            context = ListingContext(
                container=resolved.container,
                prefix=prefix,
                delimiter=self._delimiter,
            )
            source = self._iter_listing(resolved.container, prefix, first_page)
            logger.debug("readdir: %s first page has %d records", path, len(first_page))

        return EntryStream(source, EntryNormalizer(context, now=self._now))

    async def _iter_listing(
        self,
        container: str,
        prefix: str,
        page: ListingPage,
    ) -> AsyncIterator[RawRecord]:
        while True:
            for record in page.records():
                # The listed directory's own marker is not one of its children.
                if isinstance(record, ObjectRecord) and prefix and record.key == prefix:
                    continue
                yield record
            if not page.next_token:
                return
            page = await self._client.list_objects(
                container,
                prefix,
                self._delimiter,
                continuation_token=page.next_token,
            )

    @traced_fs_operation("mkdir")
    async def mkdir(self, path: str, options: Options | None = None) -> None:
        """Create a directory marker object ("<key>/") under a container.

        Raises:
            InvalidOperationError: At the root or at container depth.
            StorageBackendError: If the backend rejects the write.
        """
        resolved = resolve(path)
        if resolved.is_root:
            raise InvalidOperationError("mkdir: creating root directory not allowed", path=path)
        if resolved.is_container:
            raise InvalidOperationError("mkdir: creating container not supported", path=path)

        marker_key = resolved.key + self._delimiter
        await self._client.put_object(resolved.container, marker_key, b"")
        logger.debug("mkdir: created marker container=%s key=%s", resolved.container, marker_key)

    # Declared operations without an implementation. They accept any
    # arguments so the operation surface stays uniform.

    @traced_fs_operation("mkfile")
    async def mkfile(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("mkfile", path=path or None)

    @traced_fs_operation("rmfile")
    async def rmfile(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("rmfile", path=path or None)

    @traced_fs_operation("rmdir")
    async def rmdir(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("rmdir", path=path or None)

    @traced_fs_operation("rename")
    async def rename(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("rename", path=path or None)

    @traced_fs_operation("copy")
    async def copy(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("copy", path=path or None)

    @traced_fs_operation("symlink")
    async def symlink(self, path: str = "", *args: Any, **kwargs: Any) -> None:
        raise OperationNotImplementedError("symlink", path=path or None)


def create_filesystem(config: ObjfsConfig | None = None) -> ObjectFilesystem:
    """Build an ObjectFilesystem around the configured storage client."""
    from objfs.clients.factory import create_storage_client

    return ObjectFilesystem(create_storage_client(config))
