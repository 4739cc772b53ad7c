from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from anyio import to_thread

from .errors import InvalidRangeError, MediaNotFoundError, StorageError
from .models import ByteRange
from .settings import DEFAULT_MAX_CHUNK_SIZE

LOG = logging.getLogger("mediacache.ranges")

DEFAULT_MEDIA_TYPE = "audio/mpeg"

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*$", re.IGNORECASE)


def parse_range(
    header: str | None,
    total_size: int,
    max_chunk: int = DEFAULT_MAX_CHUNK_SIZE,
) -> ByteRange | None:
    """Translate a ``Range`` header into a clamped :class:`ByteRange`.

    Returns ``None`` when no range was requested. An open-ended range runs to
    the end of the object, and any range longer than ``max_chunk`` is cut to
    its first ``max_chunk`` bytes so clients page through large objects.

    Raises:
        InvalidRangeError: the header is malformed or starts past the end.
    """
    if header is None or not header.strip():
        return None

    match = _RANGE_RE.match(header)
    if match is None:
        raise InvalidRangeError(header, total_size, "expected bytes=<start>-[<end>]")

    start = int(match.group(1))
    if start >= total_size:
        raise InvalidRangeError(header, total_size, "start is beyond end of object")

    end = int(match.group(2)) if match.group(2) else total_size - 1
    if end < start:
        raise InvalidRangeError(header, total_size, "end precedes start")
    end = min(end, total_size - 1)

    if end - start + 1 > max_chunk:
        end = start + max_chunk - 1

    return ByteRange(start=start, end=end, total_size=total_size)


@dataclass
class MediaSlice:
    """Status, headers and body for one media response."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def read_range(
    path: str | os.PathLike[str],
    byte_range: ByteRange | None,
    media_type: str = DEFAULT_MEDIA_TYPE,
) -> MediaSlice:
    """Read a whole file (200) or exactly one byte range of it (206)."""
    try:
        with open(path, "rb") as handle:
            if byte_range is None:
                body = handle.read()
            else:
                handle.seek(byte_range.start)
                body = handle.read(byte_range.length)
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as error:
        raise MediaNotFoundError(Path(path).name) from error
    except OSError as error:
        msg = f"failed to read {path}"
        raise StorageError(msg) from error

    if byte_range is None:
        return MediaSlice(
            status_code=200,
            headers={
                "Content-Length": str(len(body)),
                "Content-Type": media_type,
                "Accept-Ranges": "bytes",
            },
            body=body,
        )

    if len(body) != byte_range.length:
        msg = (
            f"short read from {path}: expected {byte_range.length} bytes, "
            f"got {len(body)}"
        )
        raise StorageError(msg)

    return MediaSlice(
        status_code=206,
        headers={
            "Content-Range": byte_range.content_range,
            "Accept-Ranges": "bytes",
            "Content-Length": str(byte_range.length),
            "Content-Type": media_type,
        },
        body=body,
    )


class MediaLibrary:
    """Serves the files of one media directory by name."""

    def __init__(
        self,
        media_dir: Path,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        media_type: str = DEFAULT_MEDIA_TYPE,
    ):
        self._media_dir = media_dir
        self._max_chunk_size = max_chunk_size
        self._media_type = media_type

    @property
    def media_dir(self) -> Path:
        return self._media_dir

    def resolve_path(self, media_id: str) -> Path:
        # Only plain file names directly inside the media directory.
        if (
            not media_id
            or media_id.startswith(".")
            or "/" in media_id
            or "\\" in media_id
            or "\x00" in media_id
        ):
            raise MediaNotFoundError(media_id)
        return self._media_dir / media_id

    def size(self, media_id: str) -> int:
        path = self.resolve_path(media_id)
        try:
            info = path.stat()
        except (FileNotFoundError, NotADirectoryError) as error:
            raise MediaNotFoundError(media_id) from error
        except OSError as error:
            msg = f"failed to stat {path}"
            raise StorageError(msg) from error
        if not stat.S_ISREG(info.st_mode):
            raise MediaNotFoundError(media_id)
        return info.st_size

    def serve_sync(self, media_id: str, range_header: str | None = None) -> MediaSlice:
        total_size = self.size(media_id)
        byte_range = parse_range(range_header, total_size, self._max_chunk_size)
        if byte_range is None:
            LOG.debug("serving %s in full (%d bytes)", media_id, total_size)
        else:
            LOG.debug("serving %s %s", media_id, byte_range.content_range)
        return read_range(self.resolve_path(media_id), byte_range, self._media_type)

    async def serve(self, media_id: str, range_header: str | None = None) -> MediaSlice:
        return await to_thread.run_sync(partial(self.serve_sync, media_id, range_header))
