from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import make_asgi_app

from .errors import (
    DescriptorValidationError,
    InvalidRangeError,
    MediaNotFoundError,
    StorageError,
    UpstreamError,
)
from .metrics import MEDIA_BYTES, MEDIA_RESPONSES
from .service import MediaCacheService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

LOG = logging.getLogger("mediacache.app")


def _service(request: Request) -> MediaCacheService:
    return request.app.state.service


async def _validation_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, DescriptorValidationError)
    LOG.warning("validation error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"errors": exc.errors})


async def _range_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, InvalidRangeError)
    LOG.warning("range not satisfiable on %s: %s", request.url.path, exc)
    MEDIA_RESPONSES.labels(status="416").inc()
    return PlainTextResponse(
        "Requested range not satisfiable",
        status_code=416,
        headers={"Content-Range": f"bytes */{exc.total_size}"},
    )


async def _not_found(request: Request, exc: Exception) -> Response:
    LOG.debug("not found: %s", exc)
    MEDIA_RESPONSES.labels(status="404").inc()
    return PlainTextResponse("Media not found", status_code=404)


async def _storage_error(request: Request, exc: Exception) -> Response:
    LOG.error("storage failure on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def _upstream_error(request: Request, exc: Exception) -> Response:
    LOG.error("upstream failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Upstream request failed"})


def create_app(service: MediaCacheService | None = None) -> FastAPI:
    """Create the media and request cache ASGI application."""
    if service is None:
        service = MediaCacheService.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await service.startup()
        try:
            yield
        finally:
            await service.shutdown()

    app = FastAPI(title="mediacache", lifespan=lifespan)
    app.state.service = service

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/songs/{media_id}", include_in_schema=False)
    @app.get("/media/{media_id}")
    async def media(media_id: str, request: Request) -> Response:
        media_slice = await _service(request).serve_media(
            media_id, request.headers.get("range")
        )
        MEDIA_RESPONSES.labels(status=str(media_slice.status_code)).inc()
        MEDIA_BYTES.inc(len(media_slice.body))
        return Response(
            content=media_slice.body,
            status_code=media_slice.status_code,
            headers=media_slice.headers,
        )

    @app.post("/cache-request")
    async def cache_request(request: Request) -> Response:
        try:
            payload = await request.json()
        except ValueError as error:
            raise DescriptorValidationError(
                [
                    {
                        "loc": ["body"],
                        "msg": "request body is not valid JSON",
                        "type": "json_invalid",
                    }
                ]
            ) from error
        result = await _service(request).resolve(payload)
        return JSONResponse(content=result)

    app.add_exception_handler(DescriptorValidationError, _validation_error)
    app.add_exception_handler(InvalidRangeError, _range_error)
    app.add_exception_handler(MediaNotFoundError, _not_found)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(UpstreamError, _upstream_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )
    app.mount("/metrics", make_asgi_app())

    return app


app = create_app()
