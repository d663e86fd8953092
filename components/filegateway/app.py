from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from components.blobstorageadapter import BlobReaderPort, make_adapter
from components.metadataclient import MetadataClient
from components.ratelimiter import Policy, RateLimiterMiddleware
from components.sourceresolver import SourceResolver, UrlFetcher

from .cors import OriginAllowListMiddleware
from .observability import RequestContextMiddleware, logger
from .pipeline import DownloadPipeline
from .routers import download
from .settings import APP_NAME, GatewaySettings, get_settings


def create_app(
    settings: Optional[GatewaySettings] = None,
    *,
    blob_reader: Optional[BlobReaderPort] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    owns_client = http_client is None
    http = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(settings.fetch_timeout_seconds),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )

    if blob_reader is None:
        blob_reader, adapter_name = make_adapter(settings)
    else:
        adapter_name = blob_reader.__class__.__name__

    resolver = SourceResolver(
        metadata=MetadataClient(http, settings.metadata_url, timeout=settings.metadata_timeout_seconds),
        blobs=blob_reader,
        fetcher=UrlFetcher(http, timeout=settings.fetch_timeout_seconds, max_bytes=settings.fetch_max_bytes),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "startup env=%s metadata=%s blobs=%s port=%s",
            settings.environment, settings.metadata_url, adapter_name, settings.port,
        )
        try:
            yield
        finally:
            if owns_client:
                await http.aclose()

    app = FastAPI(title=APP_NAME, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.pipeline = DownloadPipeline(resolver, max_transform_bytes=settings.fetch_max_bytes)

    # last added runs first: RequestContext -> RateLimiter -> CORS -> routes
    app.add_middleware(
        OriginAllowListMiddleware,
        domains=settings.cors_allowed_domains,
        hosts=settings.cors_allowed_hosts,
    )
    app.add_middleware(
        RateLimiterMiddleware,
        policies=[Policy(name="global", limit=settings.rate_limit_per_minute, window_seconds=60)],
    )
    app.add_middleware(RequestContextMiddleware)

    # Routers
    app.include_router(download.router)

    return app

app = create_app()
