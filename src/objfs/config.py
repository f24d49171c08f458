"""objfs configuration.

Settings are read from the environment when load_config() is called, never
at import time.

Environment Variables:
    OBJFS_BACKEND: "filesystem" or "s3" (default: "filesystem")
    OBJFS_BASE_DIR: Base directory for the filesystem backend
        (default: OS temp dir / objfs)
    OBJFS_S3_REGION: AWS region for the s3 backend
    OBJFS_S3_ENDPOINT_URL: Endpoint for S3-compatible providers (MinIO)
    OBJFS_S3_ACCESS_KEY_ID: Access key id (optional)
    OBJFS_S3_SECRET_ACCESS_KEY: Secret access key (optional)
    OBJFS_LIST_PAGE_SIZE: Maximum keys per listing request (default: 1000)
    OBJFS_READ_CHUNK_SIZE: Bytes per content chunk (default: 65536)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from objfs.errors import ConfigurationError

OBJFS_BACKEND_ENV = "OBJFS_BACKEND"
OBJFS_BASE_DIR_ENV = "OBJFS_BASE_DIR"
OBJFS_S3_REGION_ENV = "OBJFS_S3_REGION"
OBJFS_S3_ENDPOINT_URL_ENV = "OBJFS_S3_ENDPOINT_URL"
OBJFS_S3_ACCESS_KEY_ID_ENV = "OBJFS_S3_ACCESS_KEY_ID"
OBJFS_S3_SECRET_ACCESS_KEY_ENV = "OBJFS_S3_SECRET_ACCESS_KEY"
OBJFS_LIST_PAGE_SIZE_ENV = "OBJFS_LIST_PAGE_SIZE"
OBJFS_READ_CHUNK_SIZE_ENV = "OBJFS_READ_CHUNK_SIZE"

SUPPORTED_BACKENDS = frozenset({"filesystem", "s3"})

DEFAULT_LIST_PAGE_SIZE = 1000
DEFAULT_READ_CHUNK_SIZE = 64 * 1024


def _get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip()


def _get_env_optional(key: str) -> str | None:
    value = _get_env_str(key)
    return value or None


def _get_env_positive_int(key: str, default: int) -> int:
    raw = _get_env_str(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigurationError(f"{key} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class ObjfsConfig:
    """Resolved objfs settings.

    Attributes:
        backend: Storage backend name ("filesystem" or "s3").
        base_dir: Base directory for the filesystem backend.
        s3_region: AWS region for the s3 backend.
        s3_endpoint_url: Custom endpoint for S3-compatible providers.
        s3_access_key_id: Explicit access key id, if any.
        s3_secret_access_key: Explicit secret access key, if any.
        list_page_size: Maximum keys per listing request.
        read_chunk_size: Bytes per content chunk.
    """

    backend: str = "filesystem"
    base_dir: Path = Path(tempfile.gettempdir()) / "objfs"
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE

    def __repr__(self) -> str:
        # Keep credentials out of logs.
        return (
            f"ObjfsConfig(backend={self.backend!r}, base_dir={str(self.base_dir)!r}, "
            f"s3_region={self.s3_region!r}, s3_endpoint_url={self.s3_endpoint_url!r}, "
            f"list_page_size={self.list_page_size}, read_chunk_size={self.read_chunk_size})"
        )


def load_config() -> ObjfsConfig:
    """Build configuration from the environment.

    Raises:
        ConfigurationError: If the backend is unknown or a numeric setting
            is not a positive integer.
    """
    backend = _get_env_str(OBJFS_BACKEND_ENV, "filesystem").lower() or "filesystem"
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigurationError(
            f"Unsupported {OBJFS_BACKEND_ENV}: {backend} "
            f"(expected one of {', '.join(sorted(SUPPORTED_BACKENDS))})"
        )

    base_dir_raw = _get_env_optional(OBJFS_BASE_DIR_ENV)
    base_dir = Path(base_dir_raw) if base_dir_raw else Path(tempfile.gettempdir()) / "objfs"

    return ObjfsConfig(
        backend=backend,
        base_dir=base_dir,
        s3_region=_get_env_optional(OBJFS_S3_REGION_ENV),
        s3_endpoint_url=_get_env_optional(OBJFS_S3_ENDPOINT_URL_ENV),
        s3_access_key_id=_get_env_optional(OBJFS_S3_ACCESS_KEY_ID_ENV),
        s3_secret_access_key=_get_env_optional(OBJFS_S3_SECRET_ACCESS_KEY_ENV),
        list_page_size=_get_env_positive_int(OBJFS_LIST_PAGE_SIZE_ENV, DEFAULT_LIST_PAGE_SIZE),
        read_chunk_size=_get_env_positive_int(OBJFS_READ_CHUNK_SIZE_ENV, DEFAULT_READ_CHUNK_SIZE),
    )
