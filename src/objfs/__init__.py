"""objfs - filesystem view of object storage.

Maps flat, slash-delimited object keys onto a hierarchical path model and
exposes readfile, readdir, stat and mkdir (plus declared-but-unimplemented
mkfile, rmfile, rmdir, rename, copy and symlink) over any StorageClient.

Environment Variables:
    OBJFS_BACKEND: "filesystem" or "s3" (default: "filesystem")
    OBJFS_BASE_DIR: Base directory for the filesystem backend
"""

from objfs.adapter import ObjectFilesystem, create_filesystem
from objfs.errors import (
    ConfigurationError,
    InvalidOperationError,
    NotFoundError,
    ObjfsError,
    OperationNotImplementedError,
    PathTraversalError,
    StorageBackendError,
    UnsupportedRecordError,
)
from objfs.models import ACCESS_READ, ACCESS_WRITE, DirectoryEntry, FileMeta, ObjectHead
from objfs.paths import ResolvedPath, resolve
from objfs.stream import EntryStream, StreamState

__all__ = [
    "ACCESS_READ",
    "ACCESS_WRITE",
    "ConfigurationError",
    "DirectoryEntry",
    "EntryStream",
    "FileMeta",
    "InvalidOperationError",
    "NotFoundError",
    "ObjectFilesystem",
    "ObjectHead",
    "ObjfsError",
    "OperationNotImplementedError",
    "PathTraversalError",
    "ResolvedPath",
    "StorageBackendError",
    "StreamState",
    "UnsupportedRecordError",
    "create_filesystem",
    "resolve",
]
