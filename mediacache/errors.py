from __future__ import annotations

from typing import Any


class MediaCacheError(Exception):
    """Base class for errors raised by the media and response cache core."""


class DescriptorValidationError(MediaCacheError):
    """A cache request body failed validation.

    ``errors`` holds one entry per violated constraint, each a mapping with
    ``loc``, ``msg`` and ``type`` keys.
    """

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        first = errors[0]["msg"] if errors else "invalid request descriptor"
        super().__init__(first)


class InvalidRangeError(MediaCacheError):
    """A ``Range`` header could not be satisfied for an object."""

    def __init__(self, header: str, total_size: int, reason: str):
        self.header = header
        self.total_size = total_size
        self.reason = reason
        super().__init__(f"unsatisfiable range {header!r}: {reason}")


class MediaNotFoundError(MediaCacheError):
    def __init__(self, media_id: str):
        self.media_id = media_id
        super().__init__(f"media object {media_id!r} not found")


class StorageError(MediaCacheError):
    """Filesystem or persistent store failure."""


class UpstreamError(MediaCacheError):
    """The upstream dispatch for a cache miss failed."""
