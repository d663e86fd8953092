import httpx
import pytest

from components.blobstorageadapter import BlobMeta, BlobNotFound, BlobReaderPort, OpenedBlob
from components.metadataclient import BlockMetadata
from components.sourceresolver import (
    FetchFailed,
    FetchTooLarge,
    FileReference,
    InvalidMetadata,
    InvalidReference,
    NotFound,
    SourceResolver,
    UrlFetcher,
    display_name_from_url,
    normalize_absolute_url,
)


class FakeMetadata:
    def __init__(self, blocks):
        self.blocks = blocks
        self.calls = []

    async def lookup(self, block_id, forwarded_headers=None):
        self.calls.append((block_id, forwarded_headers))
        return self.blocks.get(block_id)


class MemoryBlobs(BlobReaderPort):
    def __init__(self, objects):
        self.objects = objects

    async def open_stream(self, ref):
        data = self.objects.get((ref.bucket, ref.key))
        if data is None:
            raise BlobNotFound(f"{ref.bucket}/{ref.key}")

        async def chunks():
            yield data

        return OpenedBlob(ref=ref, meta=BlobMeta(size=len(data)), chunks=chunks())


def _fetcher(handler, max_bytes=1024):
    return UrlFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)), max_bytes=max_bytes)


def _unreachable(request):
    raise AssertionError(f"unexpected fetch of {request.url}")


def _resolver(blocks=None, objects=None, handler=_unreachable, max_bytes=1024):
    metadata = FakeMetadata(blocks or {})
    return SourceResolver(metadata, MemoryBlobs(objects or {}), _fetcher(handler, max_bytes)), metadata


# ---- url helpers ----

@pytest.mark.parametrize("raw,expected", [
    ("https://example.com/a.png", "https://example.com/a.png"),
    ("HTTP://example.com", "HTTP://example.com"),
    ("//cdn.example.com/x.jpg", "https://cdn.example.com/x.jpg"),
    ("ftp://x", None),
    ("example.com/a.png", None),
    ("/relative/path", None),
    ("", None),
])
def test_normalize_absolute_url(raw, expected):
    assert normalize_absolute_url(raw) == expected


def test_display_name_from_url():
    assert display_name_from_url("https://h/images/my%20cat.png?x=1") == "my cat.png"
    assert display_name_from_url("https://h/") == "download"


# ---- id path ----

@pytest.mark.asyncio
async def test_resolve_id_streams_blob():
    meta = BlockMetadata(id="b1", display_name="cat.png", storage_bucket="files", storage_key="k/cat.png")
    resolver, metadata = _resolver({"b1": meta}, {("files", "k/cat.png"): b"payload"})
    resolved = await resolver.resolve(FileReference.by_id(" b1 "), {"cookie": "sid=1"})
    assert metadata.calls == [("b1", {"cookie": "sid=1"})]
    assert resolved.display_name == "cat.png"
    assert resolved.source.buffered is False
    assert await resolved.source.read_all() == b"payload"


@pytest.mark.asyncio
async def test_resolve_id_falls_back_to_key_basename():
    meta = BlockMetadata(id="b1", storage_bucket="files", storage_key="deep/path/report.pdf")
    resolver, _ = _resolver({"b1": meta}, {("files", "deep/path/report.pdf"): b"%PDF"})
    resolved = await resolver.resolve(FileReference.by_id("b1"))
    assert resolved.display_name == "report.pdf"


@pytest.mark.asyncio
async def test_resolve_id_errors():
    no_storage = BlockMetadata(id="b2", display_name="x.png")
    resolver, metadata = _resolver({"b2": no_storage})

    with pytest.raises(InvalidReference):
        await resolver.resolve(FileReference.by_id(""))
    assert metadata.calls == []

    with pytest.raises(NotFound):
        await resolver.resolve(FileReference.by_id("unknown"))

    with pytest.raises(InvalidMetadata):
        await resolver.resolve(FileReference.by_id("b2"))


@pytest.mark.asyncio
async def test_resolve_id_missing_object():
    meta = BlockMetadata(id="b1", storage_bucket="files", storage_key="gone")
    resolver, _ = _resolver({"b1": meta})
    with pytest.raises(BlobNotFound):
        await resolver.resolve(FileReference.by_id("b1"))


# ---- url path ----

@pytest.mark.asyncio
async def test_resolve_url_buffers_body():
    def handler(request):
        assert str(request.url) == "https://files.test/pics/dog.jpg"
        return httpx.Response(200, content=b"\xff\xd8\xffdata")

    resolver, _ = _resolver(handler=handler)
    resolved = await resolver.resolve(FileReference.by_url("//files.test/pics/dog.jpg"))
    assert resolved.display_name == "dog.jpg"
    assert resolved.source.buffered is True
    assert await resolved.source.read_all() == b"\xff\xd8\xffdata"


@pytest.mark.asyncio
async def test_resolve_url_rejects_non_absolute_without_fetching():
    resolver, _ = _resolver()
    for bad in ("ftp://x", "not a url", ""):
        with pytest.raises(InvalidReference):
            await resolver.resolve(FileReference.by_url(bad))


@pytest.mark.asyncio
async def test_resolve_url_upstream_failures():
    def not_found(request):
        return httpx.Response(404, text="nope")

    resolver, _ = _resolver(handler=not_found)
    with pytest.raises(FetchFailed):
        await resolver.resolve(FileReference.by_url("https://files.test/missing"))

    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    resolver, _ = _resolver(handler=refused)
    with pytest.raises(FetchFailed):
        await resolver.resolve(FileReference.by_url("https://files.test/down"))


@pytest.mark.asyncio
async def test_resolve_url_too_large():
    def big(request):
        return httpx.Response(200, content=b"x" * 2048)

    resolver, _ = _resolver(handler=big, max_bytes=1024)
    with pytest.raises(FetchTooLarge):
        await resolver.resolve(FileReference.by_url("https://files.test/big"))
