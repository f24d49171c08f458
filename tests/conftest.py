"""Pytest configuration and fixtures for objfs tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from objfs.adapter import ObjectFilesystem
from objfs.clients.filesystem import FilesystemStorageClient

FIXED_NOW_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def clear_objfs_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove OBJFS_* variables so tests never see the developer's settings."""
    for key in list(os.environ):
        if key.startswith("OBJFS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def temp_storage_dir() -> Iterator[Path]:
    """Create a temporary directory for storage tests."""
    with tempfile.TemporaryDirectory(prefix="objfs_test_storage_") as tmpdir:
        yield Path(tmpdir)


def seed_object(base_dir: Path, container: str, key: str, data: bytes) -> Path:
    """Write an object directly into a filesystem backend directory."""
    path = base_dir / container / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def docs_storage_dir(temp_storage_dir: Path) -> Path:
    """Base directory with container "docs" holding a.txt and sub/b.txt."""
    seed_object(temp_storage_dir, "docs", "a.txt", b"0123456789")
    seed_object(temp_storage_dir, "docs", "sub/b.txt", b"nested")
    return temp_storage_dir


@pytest.fixture
def client(docs_storage_dir: Path) -> FilesystemStorageClient:
    """Create a FilesystemStorageClient over the docs fixture."""
    return FilesystemStorageClient(base_dir=docs_storage_dir)


@pytest.fixture
def fs(client: FilesystemStorageClient) -> ObjectFilesystem:
    """Create an ObjectFilesystem with a fixed clock."""
    return ObjectFilesystem(client, now=lambda: FIXED_NOW_MS)
