import asyncio
import logging

import pytest

from components.blobstorageadapter import BlobNotFound, BlobValidation
from components.bytesource import ByteSource
from components.metadataclient import MetadataServiceError
from components.responseemitter import (
    TransformedOutput,
    content_disposition,
    emit,
    error_response,
    sanitize_filename,
    status_for,
)
from components.sourceresolver import FetchFailed, FetchTooLarge, InvalidMetadata, InvalidReference, NotFound
from components.transformstage import ImageDecodeError, ImageTooLarge


@pytest.mark.parametrize("exc,status", [
    (InvalidReference("x"), 404),
    (NotFound("x"), 400),
    (InvalidMetadata("x"), 500),
    (MetadataServiceError("x"), 400),
    (FetchFailed("x"), 404),
    (FetchTooLarge("x"), 413),
    (BlobNotFound("x"), 404),
    (BlobValidation("x"), 404),
    (ImageTooLarge("x"), 413),
    (ImageDecodeError("x"), 400),
    (RuntimeError("x"), 400),
])
def test_status_for(exc, status):
    assert status_for(exc) == status


def test_error_response_body():
    r = error_response(NotFound("no block found for id 42"))
    assert r.status_code == 400
    assert r.body == b"no block found for id 42"

    r = error_response(KeyError("internal detail"))
    assert r.body == b"could not process the requested file"


def test_filename_sanitizing():
    assert sanitize_filename('a"b\\c\r\n.png') == "abc.png"
    assert sanitize_filename("dir/name.png") == "dir_name.png"
    assert sanitize_filename("") == "download"
    assert sanitize_filename(None) == "download"


def test_content_disposition_ascii_and_unicode():
    assert content_disposition("cat.png") == 'filename="cat.png"'
    header = content_disposition("猫.png")
    assert header.startswith('filename="_.png"')
    assert "filename*=UTF-8''%E7%8C%AB.png" in header


async def _chunks(parts, fail_at=None):
    for i, p in enumerate(parts):
        if i == fail_at:
            raise ImageDecodeError("broken")
        yield p


@pytest.mark.asyncio
async def test_emit_streams_with_headers():
    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=_chunks([b"ab", b"cd"]), mime="image/jpeg", filename="cat.png")
    resp = await emit(out, source)
    assert resp.status_code == 200
    assert resp.media_type == "image/jpeg"
    assert resp.headers["content-disposition"] == 'filename="cat.png"'

    body = b"".join([c async for c in resp.body_iterator])
    assert body == b"abcd"
    assert source.closed


@pytest.mark.asyncio
async def test_emit_without_mime_omits_content_type():
    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=_chunks([b"??"]), mime="", filename="blob")
    resp = await emit(out, source)
    assert resp.media_type is None
    assert "content-type" not in resp.headers


@pytest.mark.asyncio
async def test_emit_failure_before_first_byte_becomes_status():
    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=_chunks([b"ab"], fail_at=0), mime="image/jpeg", filename="cat.png")
    resp = await emit(out, source)
    assert resp.status_code == 400
    assert resp.body == b"broken"
    assert source.closed


@pytest.mark.asyncio
async def test_emit_empty_body():
    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=_chunks([]), mime="application/pdf", filename="empty.pdf")
    resp = await emit(out, source)
    assert resp.status_code == 200
    assert b"".join([c async for c in resp.body_iterator]) == b""
    assert source.closed


@pytest.mark.asyncio
async def test_failure_after_headers_drops_stream_and_closes_source(caplog):
    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=_chunks([b"ab", b"cd"], fail_at=1), mime="image/jpeg", filename="cat.png")
    resp = await emit(out, source)
    assert resp.status_code == 200

    received = []
    with caplog.at_level(logging.INFO, logger="responseemitter"):
        with pytest.raises(ImageDecodeError):
            async for chunk in resp.body_iterator:
                received.append(chunk)

    assert received == [b"ab"]
    assert source.closed
    assert any("stream.error" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_cancel_before_first_byte_closes_source():
    async def cancelled():
        raise asyncio.CancelledError()
        yield b""

    source = ByteSource.from_buffer(b"")
    out = TransformedOutput(chunks=cancelled(), mime="image/jpeg", filename="cat.png")
    with pytest.raises(asyncio.CancelledError):
        await emit(out, source)
    assert source.closed
