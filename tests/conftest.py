from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import pytest
from mediacache import ResponseStore, Settings
from mediacache.errors import UpstreamError

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from mediacache import RequestDescriptor


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class StubDispatch:
    """Upstream stand-in that replays ``outcomes`` in order.

    Exceptions in ``outcomes`` are raised instead of returned.
    """

    def __init__(self, *outcomes: Any):
        self._outcomes = list(outcomes)
        self.calls: list[RequestDescriptor] = []

    async def __call__(self, descriptor: RequestDescriptor) -> Any:
        self.calls.append(descriptor)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def stub_dispatch() -> type[StubDispatch]:
    return StubDispatch


@pytest.fixture
def upstream_failure() -> UpstreamError:
    return UpstreamError("upstream GET https://api.example.com/ failed: 503")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def media_bytes() -> bytes:
    return bytes(range(256)) * 4


@pytest.fixture
def media_dir(settings: Settings, media_bytes: bytes) -> Path:
    assert settings.media_dir is not None
    settings.media_dir.mkdir(parents=True, exist_ok=True)
    (settings.media_dir / "song.mp3").write_bytes(media_bytes)
    return settings.media_dir


@pytest.fixture
def store(tmp_path: Path) -> Generator[ResponseStore]:
    response_store = ResponseStore(tmp_path / "store")
    response_store.open()
    yield response_store
    response_store.close()


@pytest.fixture
def env_vars() -> Generator[dict[str, str]]:
    """Set configuration environment variables for the duration of a test."""
    values = {
        "MEDIACACHE_DATA_DIR": "/srv/mediacache",
        "MEDIACACHE_MAX_CHUNK_SIZE": "4096",
        "MEDIACACHE_MEDIA_TYPE": "audio/ogg",
        "RAPIDAPI_KEY": "test-key",
        "RAPIDAPI_HOST": "api.example.com",
    }

    original_values = {}
    for key, value in values.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value

    yield values

    for key, original_value in original_values.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value
