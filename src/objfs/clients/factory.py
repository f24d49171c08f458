"""Storage client factory.

Creates exactly one StorageClient implementation from configuration at
startup. Operations never branch on the backend afterwards.
"""

from __future__ import annotations

import logging

from objfs.clients.base import StorageClient
from objfs.config import ObjfsConfig, load_config
from objfs.errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_storage_client(config: ObjfsConfig | None = None) -> StorageClient:
    """Build the storage client selected by ``config.backend``.

    Args:
        config: Settings to use. Loaded from the environment when None.

    Raises:
        ConfigurationError: If the backend name is not supported.
    """
    config = config or load_config()
    backend = config.backend.lower()

    if backend == "filesystem":
        from objfs.clients.filesystem import FilesystemStorageClient

        client: StorageClient = FilesystemStorageClient(
            base_dir=config.base_dir,
            page_size=config.list_page_size,
            chunk_size=config.read_chunk_size,
        )
    elif backend == "s3":
        from objfs.clients.s3 import S3StorageClient

        client = S3StorageClient(
            region=config.s3_region,
            endpoint_url=config.s3_endpoint_url,
            access_key=config.s3_access_key_id,
            secret_key=config.s3_secret_access_key,
            page_size=config.list_page_size,
            chunk_size=config.read_chunk_size,
        )
    else:
        raise ConfigurationError(f"Unsupported storage backend: {config.backend}")

    logger.info("Storage client created: backend=%s", client.backend_name)
    return client
