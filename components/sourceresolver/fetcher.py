from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from .errors import FetchFailed, FetchTooLarge

log = logging.getLogger("sourceresolver.fetcher")

DEFAULT_MAX_BYTES = 50 * 1024 * 1024


class UrlFetcher:
    """Single-attempt GET of an external resource into memory, capped at `max_bytes`."""

    def __init__(self, http: httpx.AsyncClient, timeout: Optional[float] = None, max_bytes: int = DEFAULT_MAX_BYTES):
        self.http = http
        self.timeout = timeout
        self.max_bytes = max_bytes

    async def fetch(self, url: str) -> bytes:
        t0 = time.time()
        buf = bytearray()
        try:
            async with self.http.stream(
                "GET",
                url,
                follow_redirects=True,
                timeout=self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT,
            ) as resp:
                if not resp.is_success:
                    log.warning("fetch.failed url=%s status=%s", url, resp.status_code)
                    raise FetchFailed(f"upstream responded with status {resp.status_code}")

                declared = resp.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self.max_bytes:
                    log.warning("fetch.too_large url=%s declared=%s cap=%s", url, declared, self.max_bytes)
                    raise FetchTooLarge(f"resource larger than {self.max_bytes} bytes")

                async for chunk in resp.aiter_bytes():
                    buf.extend(chunk)
                    if len(buf) > self.max_bytes:
                        log.warning("fetch.too_large url=%s read=%s cap=%s", url, len(buf), self.max_bytes)
                        raise FetchTooLarge(f"resource larger than {self.max_bytes} bytes")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.warning("fetch.failed url=%s err=%s", url, e.__class__.__name__)
            raise FetchFailed(f"fetch failed: {e.__class__.__name__}") from e

        log.info("fetch.ok url=%s bytes=%s dur_ms=%s", url, len(buf), int((time.time() - t0) * 1000))
        return bytes(buf)
