from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import httpx
from opentelemetry import trace

from .contracts import BLOCK_QUERY, BlockMetadata
from .errors import MetadataServiceError

log = logging.getLogger("metadataclient")
tracer = trace.get_tracer("metadataclient")


class MetadataClient:
    """
    Translates a block id into storage coordinates with one GraphQL call.

    A GraphQL `errors` array is terminal (MetadataServiceError); a null block
    is a soft miss and returns None. No retries.
    """

    def __init__(self, http: httpx.AsyncClient, endpoint: str, timeout: Optional[float] = None):
        self.http = http
        self.endpoint = endpoint
        self.timeout = timeout

    async def lookup(self, block_id: str, forwarded_headers: Optional[Dict[str, str]] = None) -> Optional[BlockMetadata]:
        t0 = time.time()
        payload = {"query": BLOCK_QUERY, "variables": {"_id": block_id}}
        with tracer.start_as_current_span("metadata.lookup") as span:
            span.set_attribute("metadata.block_id", block_id)
            try:
                resp = await self.http.post(
                    self.endpoint,
                    json=payload,
                    headers=dict(forwarded_headers or {}),
                    timeout=self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT,
                )
            except httpx.HTTPError as e:
                log.warning("metadata.lookup unreachable id=%s endpoint=%s err=%s", block_id, self.endpoint, e)
                raise MetadataServiceError(f"metadata service unreachable: {e.__class__.__name__}") from e

            try:
                body = resp.json()
            except ValueError as e:
                log.warning("metadata.lookup bad_json id=%s status=%s", block_id, resp.status_code)
                raise MetadataServiceError(f"metadata service returned invalid JSON (status {resp.status_code})") from e
            if not isinstance(body, dict):
                raise MetadataServiceError("metadata service returned an unexpected payload")

            errors = body.get("errors")
            if errors:
                err = MetadataServiceError.from_graphql(errors if isinstance(errors, list) else [errors])
                log.warning("metadata.lookup errors id=%s count=%s msg=%s", block_id, len(err.messages), err)
                raise err
            if resp.is_error:
                log.warning("metadata.lookup http_error id=%s status=%s", block_id, resp.status_code)
                raise MetadataServiceError(f"metadata service responded with status {resp.status_code}")

            block = (body.get("data") or {}).get("block")
            dur_ms = int((time.time() - t0) * 1000)
            if not block:
                log.info("metadata.lookup miss id=%s dur_ms=%s", block_id, dur_ms)
                return None

            meta = BlockMetadata.from_block(block)
            log.info("metadata.lookup ok id=%s type=%s has_storage=%s dur_ms=%s", block_id, meta.type, meta.has_storage, dur_ms)
            return meta
