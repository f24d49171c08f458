"""objfs error types.

Typed exceptions for filesystem operations over object storage. Every error
carries whatever path context was known when it was raised.
"""

from __future__ import annotations

from typing import Any


class ObjfsError(Exception):
    """Base exception for objfs operations.

    Attributes:
        message: Human-readable error message.
        path: Virtual path associated with the operation (if applicable).
        container: Container (bucket) associated with the operation.
        key: Object key associated with the operation.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        container: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.container = container
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"path={self.path}")
        if self.container:
            parts.append(f"container={self.container}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class NotFoundError(ObjfsError):
    """Raised when a container or object does not exist in the backend."""

    def __init__(
        self,
        message: str = "Not found",
        *,
        path: str | None = None,
        container: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, path=path, container=container, key=key)


class InvalidOperationError(ObjfsError):
    """Raised when a request is structurally disallowed.

    Examples are creating a directory at the root or at container depth, or
    reading a directory as a file.
    """


class OperationNotImplementedError(ObjfsError):
    """Raised by every operation that is declared but has no implementation.

    Attributes:
        operation: Name of the operation that was called.
    """

    def __init__(self, operation: str, *, path: str | None = None) -> None:
        super().__init__(f"{operation}: not implemented", path=path)
        self.operation = operation


class UnsupportedRecordError(ObjfsError):
    """Raised when a raw backend record matches no known record shape."""

    def __init__(
        self,
        message: str = "Unsupported record",
        *,
        record: Any = None,
        container: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, container=container)
        self.record = record
        self.cause = cause


class StorageBackendError(ObjfsError):
    """Raised when the storage backend cannot complete an operation.

    Wraps the backend's own exception (auth failure, network fault, I/O
    error) which stays available as ``cause``.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        path: str | None = None,
        container: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, path=path, container=container, key=key)
        self.cause = cause


class PathTraversalError(ObjfsError):
    """Raised when an object key would escape the filesystem backend's base directory."""

    def __init__(
        self,
        message: str = "Invalid key: path traversal detected",
        *,
        container: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, container=container, key=key)


class ConfigurationError(ObjfsError):
    """Raised when objfs configuration is invalid."""
