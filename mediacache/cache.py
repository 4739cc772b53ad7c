from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from .errors import UpstreamError
from .metrics import CACHE_LOOKUPS, UPSTREAM_FAILURES
from .models import RequestDescriptor
from .store import MISSING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from .store import ResponseStore

    Dispatch = Callable[[RequestDescriptor], Awaitable[Any]]

LOG = logging.getLogger("mediacache.cache")


class ResponseCache:
    """Memoizes upstream calls in a persistent store keyed by fingerprint.

    A stored payload is served forever. Failed dispatches are never written,
    and concurrent misses for the same fingerprint may each reach upstream.
    """

    def __init__(self, store: ResponseStore):
        self._store = store

    async def resolve(
        self,
        descriptor: RequestDescriptor | Mapping[str, Any],
        dispatch: Dispatch,
    ) -> Any:
        descriptor = RequestDescriptor.from_payload(descriptor)
        key = descriptor.fingerprint()

        cached = await self._store.get(key)
        if cached is not MISSING:
            CACHE_LOOKUPS.labels(outcome="hit").inc()
            LOG.info("cache hit: %s %s (%s)", descriptor.method, descriptor.url, key[:12])
            return cached

        CACHE_LOOKUPS.labels(outcome="miss").inc()
        LOG.info("cache miss: %s %s (%s)", descriptor.method, descriptor.url, key[:12])
        try:
            payload = await dispatch(descriptor)
        except Exception:
            UPSTREAM_FAILURES.inc()
            LOG.warning("upstream dispatch failed for %s %s", descriptor.method, descriptor.url)
            raise

        await self._store.put(key, payload)
        LOG.debug("stored payload under %s", key)
        return payload


class UpstreamDispatcher:
    """Sends a :class:`RequestDescriptor` upstream with httpx."""

    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def startup(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, descriptor: RequestDescriptor) -> Any:
        if self._client is None:
            message = "upstream dispatcher not initialised"
            raise RuntimeError(message)

        headers = httpx.Headers(descriptor.headers or {})
        headers.update(self._headers)
        content: dict[str, Any] = {}
        if descriptor.body is not None:
            content["json"] = descriptor.body

        try:
            response = await self._client.request(
                descriptor.method,
                str(descriptor.url),
                headers=headers,
                **content,
            )
            response.raise_for_status()
        except httpx.HTTPError as error:
            msg = f"upstream {descriptor.method} {descriptor.url} failed: {error}"
            raise UpstreamError(msg) from error

        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text
