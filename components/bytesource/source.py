from __future__ import annotations

from typing import AsyncIterator, List, Optional

DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteSourceClosed(Exception):
    """Raised when reading from a source after aclose()."""


class ByteSource:
    """
    Request-scoped incremental reader over either a lazy chunk stream
    (object store) or a fully materialized buffer (URL fetch).

    peek() never consumes: chunks pulled to satisfy it are replayed first
    by the next iteration, so sniffing and transforming can share one pass.
    """

    def __init__(self, chunks: AsyncIterator[bytes], *, buffered: bool = False, size: Optional[int] = None):
        self._chunks = chunks
        self._head: List[bytes] = []
        self._head_len = 0
        self._exhausted = False
        self._closed = False
        self.buffered = buffered
        self.size = size

    @classmethod
    def from_stream(cls, chunks: AsyncIterator[bytes], size: Optional[int] = None) -> "ByteSource":
        return cls(chunks, buffered=False, size=size)

    @classmethod
    def from_buffer(cls, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> "ByteSource":
        async def _chunks():
            for start in range(0, len(data), chunk_size):
                yield data[start:start + chunk_size]

        return cls(_chunks(), buffered=True, size=len(data))

    @property
    def closed(self) -> bool:
        return self._closed

    async def _next_chunk(self) -> Optional[bytes]:
        if self._closed:
            raise ByteSourceClosed("byte source already closed")
        if self._exhausted:
            return None
        try:
            while True:
                chunk = await self._chunks.__anext__()
                if chunk:
                    return bytes(chunk)
        except StopAsyncIteration:
            self._exhausted = True
            return None

    async def peek(self, n: int) -> bytes:
        while self._head_len < n:
            chunk = await self._next_chunk()
            if chunk is None:
                break
            self._head.append(chunk)
            self._head_len += len(chunk)
        return b"".join(self._head)[:n]

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        while self._head:
            chunk = self._head.pop(0)
            self._head_len -= len(chunk)
            yield chunk
        while True:
            chunk = await self._next_chunk()
            if chunk is None:
                return
            yield chunk

    async def read_all(self) -> bytes:
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._head.clear()
        self._head_len = 0
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "ByteSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
