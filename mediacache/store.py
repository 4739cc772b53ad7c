from __future__ import annotations

import logging
import sqlite3
from functools import partial
from typing import TYPE_CHECKING, Any

from anyio import to_thread
from diskcache import Cache

from .errors import StorageError

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

LOG = logging.getLogger("mediacache.store")

MISSING: Any = object()


async def _run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(partial(func, *args, **kwargs))


class ResponseStore:
    """Durable fingerprint -> payload mapping backed by :mod:`diskcache`.

    Entries never expire. ``put`` is a single-key atomic write that is
    committed before it returns.
    """

    def __init__(self, directory: Path):
        self._directory = directory
        self._cache: Cache | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def open(self) -> None:
        if self._cache is not None:
            return
        try:
            self._cache = Cache(str(self._directory), eviction_policy="none")
        except (OSError, sqlite3.Error) as error:
            msg = f"cannot open response store at {self._directory}"
            raise StorageError(msg) from error
        LOG.info("response store opened at %s (%d entries)", self._directory, len(self))

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _require(self) -> Cache:
        if self._cache is None:
            message = "response store not opened"
            raise RuntimeError(message)
        return self._cache

    def get_sync(self, key: str) -> Any:
        cache = self._require()
        try:
            return cache.get(key, default=MISSING, retry=True)
        except (OSError, sqlite3.Error) as error:
            msg = f"response store read failed for {key}"
            raise StorageError(msg) from error

    def put_sync(self, key: str, payload: Any) -> None:
        cache = self._require()
        try:
            cache.set(key, payload, retry=True)
        except (OSError, sqlite3.Error) as error:
            msg = f"response store write failed for {key}"
            raise StorageError(msg) from error

    async def get(self, key: str) -> Any:
        """Return the payload stored under ``key`` or :data:`MISSING`."""
        return await _run_sync(self.get_sync, key)

    async def put(self, key: str, payload: Any) -> None:
        await _run_sync(self.put_sync, key, payload)

    def __contains__(self, key: object) -> bool:
        return key in self._require()

    def __len__(self) -> int:
        return len(self._require())
