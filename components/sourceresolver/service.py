from __future__ import annotations

import logging
from typing import Dict, Optional

from opentelemetry import trace

from components.blobstorageadapter import BlobReaderPort, BlobRef
from components.bytesource import ByteSource
from components.metadataclient import MetadataClient

from .contracts import (
    FileReference,
    ReferenceKind,
    ResolvedSource,
    display_name_from_block,
    display_name_from_url,
    normalize_absolute_url,
)
from .errors import InvalidMetadata, InvalidReference, NotFound
from .fetcher import UrlFetcher

log = logging.getLogger("sourceresolver")
tracer = trace.get_tracer("sourceresolver")


class SourceResolver:
    """
    Turns a FileReference into a ByteSource.

    id  -> metadata lookup -> object-store stream (lazy, not buffered)
    url -> validated GET   -> in-memory buffer
    """

    def __init__(self, metadata: MetadataClient, blobs: BlobReaderPort, fetcher: UrlFetcher):
        self.metadata = metadata
        self.blobs = blobs
        self.fetcher = fetcher

    async def resolve(self, reference: FileReference, forwarded_headers: Optional[Dict[str, str]] = None) -> ResolvedSource:
        if reference.kind is ReferenceKind.ID:
            return await self._resolve_id(reference, forwarded_headers or {})
        return await self._resolve_url(reference)

    async def _resolve_id(self, reference: FileReference, forwarded_headers: Dict[str, str]) -> ResolvedSource:
        if not reference.value:
            raise InvalidReference("missing id")

        with tracer.start_as_current_span("resolve.id") as span:
            span.set_attribute("resolve.block_id", reference.value)
            meta = await self.metadata.lookup(reference.value, forwarded_headers)
            if meta is None:
                raise NotFound(f"no block found for id {reference.value}")
            if not meta.has_storage:
                log.error("resolve.id invalid_metadata id=%s bucket=%s key=%s",
                          reference.value, meta.storage_bucket, meta.storage_key)
                raise InvalidMetadata(f"block {reference.value} has no storage location")

            opened = await self.blobs.open_stream(BlobRef(bucket=meta.storage_bucket, key=meta.storage_key))
            log.info("resolve.id ok id=%s bucket=%s key=%s size=%s",
                     reference.value, meta.storage_bucket, meta.storage_key, opened.meta.size)
            return ResolvedSource(
                reference=reference,
                source=ByteSource.from_stream(opened.chunks, size=opened.meta.size),
                display_name=display_name_from_block(meta),
                metadata=meta,
            )

    async def _resolve_url(self, reference: FileReference) -> ResolvedSource:
        url = normalize_absolute_url(reference.value)
        if url is None:
            raise InvalidReference("url must be absolute (http, https or protocol-relative)")

        with tracer.start_as_current_span("resolve.url") as span:
            span.set_attribute("resolve.url", url)
            data = await self.fetcher.fetch(url)
            return ResolvedSource(
                reference=reference,
                source=ByteSource.from_buffer(data),
                display_name=display_name_from_url(url),
            )
