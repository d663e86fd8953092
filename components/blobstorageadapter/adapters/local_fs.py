
from __future__ import annotations
import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, BinaryIO

from ..contracts import BlobMeta, BlobRef, OpenedBlob
from ..errors import BlobNotFound, BlobValidation
from ..ports import BlobReaderPort

def _safe_join(root: Path, *parts: str) -> Path:
    p = root
    for part in parts:
        # basic traversal guard
        part = part.strip("/\\")
        if ".." in part.replace("\\", "/").split("/"):
            raise BlobValidation("invalid key (traversal detected)")
        p = p / part
    return p.resolve()

class LocalFSBlobAdapter(BlobReaderPort):
    """Serves <root>/<bucket>/<key>; for local development and tests."""

    def __init__(self, root_dir: str, chunk_size: int = 64 * 1024):
        self.root = Path(root_dir).resolve()
        self.chunk_size = chunk_size
        self.adapter = "localfs"

    def _path_for(self, ref: BlobRef) -> Path:
        return _safe_join(self.root, ref.bucket, ref.key)

    async def open_stream(self, ref: BlobRef) -> OpenedBlob:
        path = self._path_for(ref)
        if not path.is_file():
            raise BlobNotFound("blob not found")

        fh = await asyncio.to_thread(open, path, "rb")
        size = await asyncio.to_thread(lambda: os.fstat(fh.fileno()).st_size)
        return OpenedBlob(ref=ref, meta=BlobMeta(size=size), chunks=self._iter_file(fh))

    async def _iter_file(self, fh: BinaryIO) -> AsyncIterator[bytes]:
        try:
            while True:
                data = await asyncio.to_thread(fh.read, self.chunk_size)
                if not data:
                    break
                yield data
        finally:
            fh.close()
