"""Byte-range media serving and a persistent upstream response cache."""

from .cache import ResponseCache, UpstreamDispatcher
from .fingerprint import fingerprint
from .models import ByteRange, RequestDescriptor
from .ranges import MediaLibrary, parse_range, read_range
from .service import MediaCacheService
from .settings import Settings
from .store import ResponseStore

__all__ = [
    "ByteRange",
    "MediaCacheService",
    "MediaLibrary",
    "RequestDescriptor",
    "ResponseCache",
    "ResponseStore",
    "Settings",
    "UpstreamDispatcher",
    "fingerprint",
    "parse_range",
    "read_range",
]
