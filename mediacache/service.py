from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .cache import ResponseCache, UpstreamDispatcher
from .ranges import MediaLibrary
from .settings import Settings, ensure_directories, load_settings_from_env
from .store import ResponseStore

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .cache import Dispatch
    from .models import RequestDescriptor
    from .ranges import MediaSlice

LOG = logging.getLogger("mediacache.service")


class MediaCacheService:
    """Process-wide context shared by the media and cache routes.

    Built once at startup from :class:`Settings`; owns the response store,
    the upstream HTTP client and the media library.
    """

    def __init__(self, settings: Settings, dispatch: Dispatch | None = None):
        assert settings.media_dir is not None
        self._settings = settings
        self.store = ResponseStore(settings.store_path)
        self.cache = ResponseCache(self.store)
        self.library = MediaLibrary(
            settings.media_dir,
            max_chunk_size=settings.max_chunk_size,
            media_type=settings.media_type,
        )
        self._dispatcher: UpstreamDispatcher | None = None
        if dispatch is None:
            self._dispatcher = UpstreamDispatcher(
                headers=settings.upstream_headers,
                timeout=settings.upstream_timeout,
            )
            dispatch = self._dispatcher
        self._dispatch = dispatch

    @property
    def settings(self) -> Settings:
        return self._settings

    async def startup(self) -> None:
        ensure_directories(self._settings)
        self.store.open()
        if self._dispatcher is not None:
            await self._dispatcher.startup()
        LOG.info(
            "mediacache ready (media=%s, store=%s, upstream auth=%s)",
            self._settings.media_dir,
            self._settings.store_path,
            "configured" if self._settings.upstream_headers else "none",
        )

    async def shutdown(self) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.shutdown()
        self.store.close()

    async def resolve(self, payload: RequestDescriptor | Mapping[str, Any]) -> Any:
        return await self.cache.resolve(payload, self._dispatch)

    async def serve_media(self, media_id: str, range_header: str | None) -> MediaSlice:
        return await self.library.serve(media_id, range_header)

    @classmethod
    def from_env(cls) -> MediaCacheService:
        """Create a service configured from environment variables."""
        return cls(load_settings_from_env())
