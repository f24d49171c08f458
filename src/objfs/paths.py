"""Virtual path resolution.

Maps a slash-separated virtual path onto a (container, key) pair. The first
non-empty segment names the container, the rest joined with the delimiter
is the key.
"""

from __future__ import annotations

from dataclasses import dataclass

DELIMITER = "/"


@dataclass(frozen=True)
class ResolvedPath:
    """A virtual path split into container and key.

    Attributes:
        container: Container (bucket) name. Empty only for the root path.
        key: Object key or key prefix. Empty when the path names the root
            or a container itself.
    """

    container: str
    key: str

    @property
    def is_root(self) -> bool:
        return not self.container

    @property
    def is_container(self) -> bool:
        return bool(self.container) and not self.key

    @property
    def virtual_path(self) -> str:
        return join(self.container, self.key)

    @property
    def name(self) -> str:
        """Last path segment, or the delimiter itself for the root."""
        if self.key:
            return self.key.rsplit(DELIMITER, 1)[-1]
        return self.container or DELIMITER


def resolve(path: str) -> ResolvedPath:
    """Split a virtual path into container and key.

    Empty segments are discarded, so leading, trailing and doubled slashes
    are tolerated. Never fails: an all-empty path resolves to the root.
    """
    segments = [segment for segment in path.split(DELIMITER) if segment]
    if not segments:
        return ResolvedPath(container="", key="")
    return ResolvedPath(container=segments[0], key=DELIMITER.join(segments[1:]))


def join(container: str, key: str = "") -> str:
    """Build the canonical virtual path for a container and key."""
    if not container:
        return DELIMITER
    if not key:
        return f"{DELIMITER}{container}"
    return f"{DELIMITER}{container}{DELIMITER}{key}"


def listing_prefix(key: str, delimiter: str = DELIMITER) -> str:
    """Key prefix used to list the children of ``key``."""
    if not key:
        return ""
    return key + delimiter


def strip_delimiter(value: str, delimiter: str = DELIMITER) -> str:
    if value.endswith(delimiter):
        return value[: -len(delimiter)]
    return value
