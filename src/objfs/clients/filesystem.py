"""objfs local-directory storage backend.

Emulates an object store on top of a directory tree for development and
testing:
- Containers are the sub-directories of the base directory
- Keys are file paths relative to their container directory
- An empty directory is reported as a directory-marker key ("dir/")
- Delimiter listings group keys into common prefixes the way S3 does

Content types are not persisted; they are inferred from the key by the
adapter.

Environment Variables:
    OBJFS_BASE_DIR: Base directory for storage
        (default: tempfile.gettempdir() / objfs)
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

from objfs.clients.base import StorageClient
from objfs.errors import NotFoundError, PathTraversalError, StorageBackendError
from objfs.models import ObjectHead
from objfs.paths import DELIMITER
from objfs.records import ContainerRecord, ListingPage, ObjectRecord, PrefixRecord

logger = logging.getLogger(__name__)

_TMP_SUFFIX = ".objfs.tmp"
_HASH_BLOCK_SIZE = 1024 * 1024


def _is_path_traversal(value: str) -> bool:
    """Check if a container name or key contains path traversal sequences.

    Detects:
    - ".." segments
    - Absolute paths (starting with / or ~, or a drive letter like C:)
    - Backslashes (Windows path separators)
    - Null bytes
    - Empty segments ("a//b")
    """
    if not value:
        return True

    if "\x00" in value or "\\" in value:
        return True

    if value.startswith(DELIMITER) or value.startswith("~"):
        return True

    if len(value) >= 2 and value[1] == ":":
        return True

    segments = value.split(DELIMITER)
    # A single trailing delimiter marks a directory key.
    if segments[-1] == "":
        segments = segments[:-1]
    return any(segment in ("", ".", "..") for segment in segments)


def _mtime(stat_result: os.stat_result) -> datetime:
    return datetime.fromtimestamp(stat_result.st_mtime, UTC)


def _etag_for_file(path: Path) -> str:
    """Quoted MD5 of the file content, matching S3's single-part ETag format."""
    digest = hashlib.md5(usedforsecurity=False)
    with path.open("rb") as f:
        for block in iter(lambda: f.read(_HASH_BLOCK_SIZE), b""):
            digest.update(block)
    return f'"{digest.hexdigest()}"'


_EMPTY_ETAG = f'"{hashlib.md5(b"", usedforsecurity=False).hexdigest()}"'


class FilesystemStorageClient(StorageClient):
    """Directory-tree implementation of StorageClient.

    Blocking disk access runs in worker threads so the event loop stays
    responsive.
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        *,
        page_size: int = 1000,
        chunk_size: int = 64 * 1024,
    ) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory holding one sub-directory per container.
                If None, uses the configured OBJFS_BASE_DIR.
            page_size: Maximum prefixes plus objects per listing page.
            chunk_size: Bytes per chunk when streaming content.
        """
        if base_dir is None:
            from objfs.config import load_config

            base_dir = load_config().base_dir

        if page_size < 1:
            raise ValueError("page_size must be positive")

        self._base_dir = Path(base_dir).resolve()
        self._page_size = page_size
        self._chunk_size = chunk_size
        logger.debug("FilesystemStorageClient initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    def _container_dir(self, container: str) -> Path:
        if DELIMITER in container or _is_path_traversal(container):
            raise PathTraversalError(
                message="Invalid container name",
                container=container,
            )
        return self._base_dir / container

    def _object_path(self, container: str, key: str) -> Path:
        """Resolve the on-disk path for a key, validating inputs."""
        container_dir = self._container_dir(container)
        if _is_path_traversal(key):
            raise PathTraversalError(
                message="Invalid key: path traversal or unsafe segment detected",
                container=container,
                key=key,
            )
        path = container_dir / key.rstrip(DELIMITER)
        resolved = path.resolve()
        try:
            resolved.relative_to(container_dir.resolve())
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside container directory",
                container=container,
                key=key,
            ) from e
        return path

    def _require_container(self, container: str) -> Path:
        container_dir = self._container_dir(container)
        if not container_dir.is_dir():
            raise NotFoundError(message="Container not found", container=container)
        return container_dir

    def _head_sync(self, container: str, key: str) -> ObjectHead:
        self._require_container(container)
        path = self._object_path(container, key)
        try:
            if key.endswith(DELIMITER):
                if not path.is_dir():
                    raise NotFoundError(message="Object not found", container=container, key=key)
                return ObjectHead(
                    etag=_EMPTY_ETAG,
                    size_bytes=0,
                    last_modified=_mtime(path.stat()),
                )
            if not path.is_file():
                raise NotFoundError(message="Object not found", container=container, key=key)
            stat_result = path.stat()
            return ObjectHead(
                etag=_etag_for_file(path),
                size_bytes=stat_result.st_size,
                last_modified=_mtime(stat_result),
            )
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to read object metadata: {e}",
                container=container,
                key=key,
                cause=e,
            ) from e

    async def head_object(self, container: str, key: str) -> ObjectHead:
        """Get object metadata without retrieving content."""
        return await asyncio.to_thread(self._head_sync, container, key)

    async def get_object_stream(
        self,
        container: str,
        key: str,
        *,
        if_none_match: str | None = None,
    ) -> AsyncIterator[bytes]:
        """Stream object content in ``chunk_size`` pieces."""
        head = await self.head_object(container, key)
        if if_none_match is not None and if_none_match == head.etag:
            raise StorageBackendError(
                message="Object not modified",
                container=container,
                key=key,
            )
        if key.endswith(DELIMITER):
            return

        path = self._object_path(container, key)
        try:
            handle = await asyncio.to_thread(path.open, "rb")
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to open object: {e}",
                container=container,
                key=key,
                cause=e,
            ) from e
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, self._chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()

    def _iter_keys(self, container_dir: Path, prefix: str) -> list[str]:
        """All keys in a container that start with ``prefix``, sorted.

        Only the directory holding the prefix is walked, not the whole
        container.
        """
        start_part = prefix.rpartition(DELIMITER)[0]
        if start_part and _is_path_traversal(start_part):
            raise PathTraversalError(
                message="Invalid prefix: path traversal or unsafe segment detected",
                key=prefix,
            )
        start_dir = container_dir / start_part if start_part else container_dir

        keys: list[str] = []
        for dirpath, dirnames, filenames in os.walk(start_dir):
            relative = Path(dirpath).relative_to(container_dir).as_posix()
            base = "" if relative == "." else relative + DELIMITER
            for filename in filenames:
                if filename.endswith(_TMP_SUFFIX):
                    continue
                keys.append(base + filename)
            if base and not dirnames and not filenames:
                keys.append(base)
        return sorted(key for key in keys if key.startswith(prefix))

    def _list_sync(
        self,
        container: str,
        prefix: str,
        delimiter: str,
        continuation_token: str | None,
    ) -> ListingPage:
        container_dir = self._require_container(container)
        try:
            keys = self._iter_keys(container_dir, prefix)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to list objects: {e}",
                container=container,
                key=prefix,
                cause=e,
            ) from e

        token_is_group = bool(
            continuation_token
            and delimiter
            and continuation_token != prefix
            and continuation_token.endswith(delimiter)
        )

        common_prefixes: list[PrefixRecord] = []
        objects: list[ObjectRecord] = []
        count = 0
        last: str | None = None
        truncated = False

        for key in keys:
            if continuation_token is not None:
                if key <= continuation_token:
                    continue
                if token_is_group and key.startswith(continuation_token):
                    continue

            rest = key[len(prefix) :]
            if delimiter and delimiter in rest:
                group = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common_prefixes and common_prefixes[-1].prefix == group:
                    continue
                if count == self._page_size:
                    truncated = True
                    break
                common_prefixes.append(PrefixRecord(prefix=group))
                last = group
            else:
                if count == self._page_size:
                    truncated = True
                    break
                path = container_dir / key.rstrip(DELIMITER)
                try:
                    stat_result = path.stat()
                except OSError as e:
                    raise StorageBackendError(
                        message=f"Failed to stat object: {e}",
                        container=container,
                        key=key,
                        cause=e,
                    ) from e
                objects.append(
                    ObjectRecord(
                        key=key,
                        size_bytes=0 if key.endswith(delimiter) else stat_result.st_size,
                        last_modified=_mtime(stat_result),
                    )
                )
                last = key
            count += 1

        logger.debug(
            "Listed container=%s prefix=%s: %d prefixes, %d objects, truncated=%s",
            container,
            prefix,
            len(common_prefixes),
            len(objects),
            truncated,
        )
        return ListingPage(
            common_prefixes=common_prefixes,
            objects=objects,
            next_token=last if truncated else None,
        )

    async def list_objects(
        self,
        container: str,
        prefix: str,
        delimiter: str,
        *,
        continuation_token: str | None = None,
    ) -> ListingPage:
        """List one page of keys under a prefix, grouped by delimiter."""
        return await asyncio.to_thread(
            self._list_sync, container, prefix, delimiter, continuation_token
        )

    def _list_containers_sync(self) -> list[ContainerRecord]:
        if not self._base_dir.is_dir():
            return []
        try:
            return [
                ContainerRecord(name=child.name, created_at=_mtime(child.stat()))
                for child in sorted(self._base_dir.iterdir())
                if child.is_dir()
            ]
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to list containers: {e}",
                cause=e,
            ) from e

    async def list_containers(self) -> list[ContainerRecord]:
        """List the sub-directories of the base directory."""
        return await asyncio.to_thread(self._list_containers_sync)

    async def head_container(self, container: str) -> None:
        """Check that a container directory exists."""
        await asyncio.to_thread(self._require_container, container)

    def _put_sync(self, container: str, key: str, body: bytes) -> None:
        self._require_container(container)
        path = self._object_path(container, key)
        try:
            if key.endswith(DELIMITER):
                path.mkdir(parents=True, exist_ok=True)
                return
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create object directory: {e}",
                container=container,
                key=key,
                cause=e,
            ) from e

        tmp_file = path.parent / f".{path.name}.{uuid.uuid4().hex}{_TMP_SUFFIX}"
        try:
            tmp_file.write_bytes(body)
            tmp_file.replace(path)
        except OSError as e:
            if tmp_file.exists():
                tmp_file.unlink(missing_ok=True)
            raise StorageBackendError(
                message=f"Failed to write object: {e}",
                container=container,
                key=key,
                cause=e,
            ) from e

    async def put_object(
        self,
        container: str,
        key: str,
        body: bytes,
        *,
        content_type: str | None = None,
    ) -> None:
        """Store an object atomically. A key ending in "/" creates a directory."""
        await asyncio.to_thread(self._put_sync, container, key, body)
        logger.debug(
            "Stored object: container=%s key=%s size=%d content_type=%s",
            container,
            key,
            len(body),
            content_type,
        )
