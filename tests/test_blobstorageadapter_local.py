import tempfile
from pathlib import Path

import pytest

from components.blobstorageadapter.adapters.local_fs import LocalFSBlobAdapter
from components.blobstorageadapter.contracts import BlobRef
from components.blobstorageadapter.errors import BlobNotFound, BlobValidation


@pytest.mark.asyncio
async def test_open_stream_localfs():
    with tempfile.TemporaryDirectory() as tmp:
        data = b"hello world" * 100
        path = Path(tmp) / "files" / "folder" / "hello.bin"
        path.parent.mkdir(parents=True)
        path.write_bytes(data)

        adapter = LocalFSBlobAdapter(tmp, chunk_size=128)
        opened = await adapter.open_stream(BlobRef(bucket="files", key="folder/hello.bin"))
        assert opened.meta.size == len(data)

        got = b""
        async for chunk in opened.chunks:
            assert len(chunk) <= 128
            got += chunk
        assert got == data


@pytest.mark.asyncio
async def test_missing_blob_localfs():
    with tempfile.TemporaryDirectory() as tmp:
        adapter = LocalFSBlobAdapter(tmp)
        with pytest.raises(BlobNotFound):
            await adapter.open_stream(BlobRef(bucket="files", key="nope.bin"))


@pytest.mark.asyncio
async def test_traversal_is_rejected():
    with tempfile.TemporaryDirectory() as tmp:
        adapter = LocalFSBlobAdapter(tmp)
        with pytest.raises(BlobValidation):
            await adapter.open_stream(BlobRef(bucket="files", key="../../etc/passwd"))
