"""Tests for Range header parsing and ranged file reads."""

from __future__ import annotations

import pytest
from mediacache import ByteRange, MediaLibrary, parse_range, read_range
from mediacache.errors import InvalidRangeError, MediaNotFoundError, StorageError

MAX_CHUNK = 1_048_576


class TestParseRange:
    def test_absent_header_means_full_object(self):
        assert parse_range(None, 1000) is None
        assert parse_range("", 1000) is None

    def test_simple_slice(self):
        assert parse_range("bytes=100-199", 1000) == ByteRange(100, 199, 1000)

    def test_open_ended_runs_to_end(self):
        assert parse_range("bytes=900-", 1000) == ByteRange(900, 999, 1000)

    def test_open_ended_is_clamped_to_one_chunk(self):
        byte_range = parse_range("bytes=0-", 5_000_000)
        assert byte_range is not None
        assert byte_range.end == 1_048_575
        assert byte_range.length == MAX_CHUNK

    def test_explicit_long_range_is_clamped(self):
        byte_range = parse_range("bytes=10-4999999", 5_000_000, max_chunk=100)
        assert byte_range == ByteRange(10, 109, 5_000_000)

    def test_end_past_object_is_clamped_to_last_byte(self):
        assert parse_range("bytes=500-5000", 1000) == ByteRange(500, 999, 1000)

    def test_whitespace_and_case_tolerated(self):
        assert parse_range(" Bytes = 1 - 2 ", 10) == ByteRange(1, 2, 10)

    @pytest.mark.parametrize(
        "header",
        [
            "bytes=abc-",
            "bytes=-500",
            "bytes=0-1,4-5",
            "items=0-10",
            "bytes=5",
            "0-10",
        ],
    )
    def test_malformed_headers_rejected(self, header):
        with pytest.raises(InvalidRangeError) as exc_info:
            parse_range(header, 1000)
        assert exc_info.value.total_size == 1000

    def test_start_beyond_object_rejected(self):
        with pytest.raises(InvalidRangeError, match="beyond end"):
            parse_range("bytes=1000-", 1000)

    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidRangeError, match="precedes"):
            parse_range("bytes=200-100", 1000)

    def test_empty_object_cannot_be_ranged(self):
        with pytest.raises(InvalidRangeError):
            parse_range("bytes=0-", 0)


class TestByteRange:
    def test_headers_values(self):
        byte_range = ByteRange(100, 199, 1000)
        assert byte_range.length == 100
        assert byte_range.content_range == "bytes 100-199/1000"

    @pytest.mark.parametrize(("start", "end", "total"), [(-1, 5, 10), (5, 4, 10), (0, 10, 10)])
    def test_invariant_enforced(self, start, end, total):
        with pytest.raises(ValueError, match="invalid byte range"):
            ByteRange(start, end, total)


class TestReadRange:
    def test_full_read(self, tmp_path):
        path = tmp_path / "full.mp3"
        path.write_bytes(b"x" * 1000)

        media_slice = read_range(path, None)

        assert media_slice.status_code == 200
        assert media_slice.body == b"x" * 1000
        assert media_slice.headers["Content-Length"] == "1000"
        assert media_slice.headers["Content-Type"] == "audio/mpeg"

    def test_slice_read(self, tmp_path):
        content = bytes(range(256)) * 4
        path = tmp_path / "slice.mp3"
        path.write_bytes(content)

        media_slice = read_range(path, parse_range("bytes=100-199", len(content)))

        assert media_slice.status_code == 206
        assert media_slice.body == content[100:200]
        assert len(media_slice.body) == 100
        assert media_slice.headers["Content-Range"] == "bytes 100-199/1024"
        assert media_slice.headers["Accept-Ranges"] == "bytes"
        assert media_slice.headers["Content-Length"] == "100"

    def test_clamped_read_returns_exactly_one_chunk(self, tmp_path):
        path = tmp_path / "large.mp3"
        path.write_bytes(b"\x01" * 2_500_000)

        media_slice = read_range(path, parse_range("bytes=0-", 2_500_000))

        assert len(media_slice.body) == MAX_CHUNK
        assert media_slice.headers["Content-Range"] == "bytes 0-1048575/2500000"

    def test_last_byte(self, tmp_path):
        path = tmp_path / "tail.mp3"
        path.write_bytes(b"abcdef")

        media_slice = read_range(path, parse_range("bytes=5-", 6))

        assert media_slice.body == b"f"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MediaNotFoundError):
            read_range(tmp_path / "absent.mp3", None)
        with pytest.raises(MediaNotFoundError):
            read_range(tmp_path / "absent.mp3", ByteRange(0, 1, 10))

    def test_short_read_is_storage_error(self, tmp_path):
        """A file shrinking under a read surfaces as a storage failure."""
        path = tmp_path / "shrunk.mp3"
        path.write_bytes(b"abc")

        with pytest.raises(StorageError, match="short read"):
            read_range(path, ByteRange(0, 9, 10))


class TestMediaLibrary:
    def test_serve_full(self, media_dir, media_bytes):
        library = MediaLibrary(media_dir)
        media_slice = library.serve_sync("song.mp3")
        assert media_slice.status_code == 200
        assert media_slice.body == media_bytes

    def test_serve_range_uses_configured_chunk(self, media_dir, media_bytes):
        library = MediaLibrary(media_dir, max_chunk_size=64, media_type="audio/ogg")
        media_slice = library.serve_sync("song.mp3", "bytes=10-")
        assert media_slice.status_code == 206
        assert media_slice.body == media_bytes[10:74]
        assert media_slice.headers["Content-Type"] == "audio/ogg"

    def test_missing_object_with_and_without_range(self, media_dir):
        library = MediaLibrary(media_dir)
        with pytest.raises(MediaNotFoundError):
            library.serve_sync("absent.mp3")
        with pytest.raises(MediaNotFoundError):
            library.serve_sync("absent.mp3", "bytes=0-10")

    @pytest.mark.parametrize("media_id", ["", "../secret", "a/b.mp3", ".hidden", "a\\b"])
    def test_unsafe_identifiers_are_not_found(self, media_dir, media_id):
        with pytest.raises(MediaNotFoundError):
            MediaLibrary(media_dir).resolve_path(media_id)

    def test_directories_are_not_media(self, media_dir):
        (media_dir / "albums").mkdir()
        with pytest.raises(MediaNotFoundError):
            MediaLibrary(media_dir).size("albums")

    @pytest.mark.anyio
    async def test_async_serve(self, media_dir, media_bytes):
        media_slice = await MediaLibrary(media_dir).serve("song.mp3", "bytes=0-9")
        assert media_slice.body == media_bytes[:10]
