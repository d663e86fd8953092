from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional, Tuple, Type
from urllib.parse import quote

from fastapi import Response
from fastapi.responses import PlainTextResponse, StreamingResponse

from components.blobstorageadapter import BlobNotFound, BlobValidation
from components.bytesource import ByteSource
from components.metadataclient import MetadataServiceError
from components.sourceresolver import (
    DEFAULT_DOWNLOAD_NAME,
    FetchFailed,
    FetchTooLarge,
    InvalidMetadata,
    InvalidReference,
    NotFound,
)
from components.transformstage import ImageTooLarge, TransformError

log = logging.getLogger("responseemitter")

_UNSAFE_FILENAME_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f"\\]')

# Checked in order; subclasses before their bases.
_ERROR_STATUS: Tuple[Tuple[Type[BaseException], int], ...] = (
    (InvalidReference, 404),
    (FetchTooLarge, 413),
    (FetchFailed, 404),
    (BlobNotFound, 404),
    (BlobValidation, 404),
    (NotFound, 400),
    (MetadataServiceError, 400),
    (InvalidMetadata, 500),
    (ImageTooLarge, 413),
    (TransformError, 400),
)

# Errors the caller can cause; anything else is logged with a traceback.
_CLIENT_ERRORS = (InvalidReference, FetchFailed, BlobNotFound, BlobValidation, NotFound, TransformError)


@dataclass(frozen=True)
class TransformedOutput:
    chunks: AsyncIterator[bytes]
    mime: str
    filename: str


def sanitize_filename(name: Optional[str]) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", name or "").replace("/", "_").strip()
    return cleaned or DEFAULT_DOWNLOAD_NAME


def content_disposition(name: Optional[str]) -> str:
    safe = sanitize_filename(name)
    try:
        safe.encode("latin-1")
    except UnicodeEncodeError:
        fallback = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"filename=\"{fallback}\"; filename*=UTF-8''{quote(safe, safe='')}"
    return f'filename="{safe}"'


def status_for(exc: BaseException) -> int:
    for kind, status in _ERROR_STATUS:
        if isinstance(exc, kind):
            return status
    return 400


def error_response(exc: BaseException, context: str = "") -> Response:
    """Convert a failure detected before the first body byte into status + short text."""
    status = status_for(exc)
    known = any(isinstance(exc, kind) for kind, _ in _ERROR_STATUS)
    message = str(exc) if known and str(exc) else "could not process the requested file"
    if isinstance(exc, _CLIENT_ERRORS):
        log.warning("emit.error status=%s kind=%s ctx=%s msg=%s", status, exc.__class__.__name__, context, exc)
    else:
        log.error("emit.error status=%s kind=%s ctx=%s", status, exc.__class__.__name__, context, exc_info=exc)
    return PlainTextResponse(message, status_code=status)


async def _relay(first: bytes, rest: AsyncIterator[bytes], source: ByteSource, filename: str) -> AsyncIterator[bytes]:
    sent = 0
    try:
        if first:
            yield first
            sent += len(first)
        async for chunk in rest:
            yield chunk
            sent += len(chunk)
        log.info("stream.done file=%s bytes=%s", filename, sent)
    except asyncio.CancelledError:
        log.info("stream.cancelled file=%s bytes=%s", filename, sent)
        raise
    except Exception:
        # headers are already out; the only option left is to drop the connection
        log.exception("stream.error file=%s bytes=%s", filename, sent)
        raise
    finally:
        aclose = getattr(rest, "aclose", None)
        if aclose is not None:
            await aclose()
        await source.aclose()


async def emit(output: TransformedOutput, source: ByteSource, context: str = "") -> Response:
    """
    Start the response for `output`.

    The first chunk is pulled before any header is committed, so resolve,
    decode and encode failures still turn into a proper error status.
    """
    try:
        first = await output.chunks.__anext__()
    except StopAsyncIteration:
        first = b""
    except Exception as e:
        await source.aclose()
        return error_response(e, context)
    except BaseException:
        # cancelled before headers: nobody else will release the source
        await source.aclose()
        raise

    headers: Dict[str, str] = {"Content-Disposition": content_disposition(output.filename)}
    return StreamingResponse(
        _relay(first, output.chunks, source, output.filename),
        status_code=200,
        media_type=output.mime or None,
        headers=headers,
    )
