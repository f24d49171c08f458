"""objfs storage clients.

Backends:
- FilesystemStorageClient: Local directory tree (dev/test)
- S3StorageClient: AWS S3 and S3-compatible stores (production)
"""

from objfs.clients.base import StorageClient
from objfs.clients.factory import create_storage_client

__all__ = ["StorageClient", "create_storage_client"]
