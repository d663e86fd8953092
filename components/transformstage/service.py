from __future__ import annotations

import asyncio
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Type

import pyvips
from opentelemetry import trace

from components.bytesource import ByteSource
from components.typesniffer import SniffedType

from .contracts import OUTPUT_MIME, SUPPORTED_INPUT_MIMES, OutputFormat, TransformParams, TransformPlan
from .errors import ImageDecodeError, ImageProcessingError, ImageTooLarge, TransformError

log = logging.getLogger("transformstage")
tracer = trace.get_tracer("transformstage")

# operations run once per request against a one-shot source; nothing worth caching
pyvips.cache_set_max(0)

DEFAULT_MAX_INPUT_BYTES = 50 * 1024 * 1024
# encoded chunks allowed to wait for the client before libvips is paused
OUTPUT_QUEUE_DEPTH = 8
FLATTEN_BACKGROUND = 255

JPEG_QUALITY = 80
WEBP_QUALITY = 80
PNG_QUALITY = 80

_SAVE_SUFFIX: Dict[OutputFormat, str] = {
    OutputFormat.JPEG: ".jpg",
    OutputFormat.WEBP: ".webp",
    OutputFormat.PNG: ".png",
}

_SAVE_OPTIONS: Dict[OutputFormat, Dict[str, Any]] = {
    OutputFormat.JPEG: {"Q": JPEG_QUALITY},
    OutputFormat.WEBP: {"Q": WEBP_QUALITY},
    OutputFormat.PNG: {"interlace": True, "palette": True, "Q": PNG_QUALITY},
}

# Loader option: a short read is an error, not grey padding.
_LOAD_OPTIONS = "fail_on=truncated"

# libvips workers block on the event loop for input; keep them off the default
# pool that object-store reads use.
_executor = ThreadPoolExecutor(max_workers=max(2, os.cpu_count() or 2), thread_name_prefix="vips")


def plan(sniffed: SniffedType, params: TransformParams) -> TransformPlan:
    """Map (detected mime, requested format) to the final response type."""
    if sniffed.mime in SUPPORTED_INPUT_MIMES:
        return TransformPlan(
            apply=True,
            final_mime=OUTPUT_MIME[params.output_format],
            output_format=params.output_format,
            bounding_box=params.bounding_box,
        )
    return TransformPlan(apply=False, final_mime=sniffed.mime)


def _prepare(image: pyvips.Image, output_format: OutputFormat) -> pyvips.Image:
    if image.interpretation not in ("srgb", "b-w"):
        image = image.colourspace("srgb")
    if output_format is OutputFormat.JPEG and image.hasalpha():
        image = image.flatten(background=[FLATTEN_BACKGROUND] * (image.bands - 1))
    return image


class _VipsBridge:
    """
    Connects libvips' blocking source/target callbacks to the event loop.

    libvips runs on a worker thread and pulls input through `read`, which
    waits for the next ByteSource chunk on the loop. Encoded output is pushed
    through `write` into an asyncio queue; at most OUTPUT_QUEUE_DEPTH chunks
    may be pending before the worker blocks.

    Exceptions cannot cross the libvips callbacks, so a failing read is
    recorded in `error`, reported to libvips as end of input, and re-raised
    once libvips gives up.
    """

    def __init__(self, source: ByteSource, loop: asyncio.AbstractEventLoop, max_input_bytes: int):
        self.loop = loop
        self.max_input_bytes = max_input_bytes
        self.chunks: "asyncio.Queue[bytes]" = asyncio.Queue()
        self.cancelled = threading.Event()
        self.error: Optional[BaseException] = None
        self.bytes_in = 0
        self.bytes_out = 0
        self._slots = threading.Semaphore(OUTPUT_QUEUE_DEPTH)
        self._input = source.__aiter__()
        self._pending = b""

    async def _pull(self, size: int) -> bytes:
        if not self._pending:
            try:
                self._pending = await self._input.__anext__()
            except StopAsyncIteration:
                return b""
        data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def read(self, size: int) -> bytes:
        if self.cancelled.is_set() or self.error is not None:
            return b""
        try:
            data = asyncio.run_coroutine_threadsafe(self._pull(size), self.loop).result()
        except Exception as e:
            self.error = e
            return b""
        self.bytes_in += len(data)
        if self.bytes_in > self.max_input_bytes:
            self.error = ImageTooLarge(f"image larger than {self.max_input_bytes} bytes")
            return b""
        return data

    def write(self, chunk) -> int:
        while not self._slots.acquire(timeout=0.1):
            if self.cancelled.is_set():
                return -1
        if self.cancelled.is_set():
            return -1
        data = bytes(chunk)
        self.bytes_out += len(data)
        self.loop.call_soon_threadsafe(self.chunks.put_nowait, data)
        return len(data)

    def taken(self) -> None:
        self._slots.release()

    def _failure(self, kind: Type[TransformError], stage: str, e: pyvips.Error) -> BaseException:
        if self.error is not None:
            return self.error
        if self.cancelled.is_set():
            return ImageProcessingError("transform cancelled")
        detail = (getattr(e, "detail", None) or getattr(e, "message", None) or str(e)).strip()
        return kind(f"cannot {stage} image: {detail}")

    def run(self, transform_plan: TransformPlan) -> Tuple[int, int]:
        """Worker-thread body: load, fit, encode. Returns the output size."""
        output_format = transform_plan.output_format or OutputFormat.JPEG
        source = pyvips.SourceCustom()
        source.on_read(self.read)
        target = pyvips.TargetCustom()
        target.on_write(self.write)

        try:
            if transform_plan.bounding_box:
                width, height = transform_plan.bounding_box
                # size="down": shrink to fit the box, never enlarge
                image = pyvips.Image.thumbnail_source(
                    source, width, height=height, size="down", option_string=_LOAD_OPTIONS,
                )
            else:
                image = pyvips.Image.new_from_source(source, _LOAD_OPTIONS, access="sequential")
        except pyvips.Error as e:
            raise self._failure(ImageDecodeError, "decode", e)

        try:
            image = _prepare(image, output_format)
            image.write_to_target(target, _SAVE_SUFFIX[output_format], **_SAVE_OPTIONS[output_format])
        except pyvips.Error as e:
            raise self._failure(ImageProcessingError, "transcode", e)
        if self.error is not None:
            # libvips can finish without the bytes it was refused
            raise self.error
        return image.width, image.height


async def _transcode(transform_plan: TransformPlan, source: ByteSource, max_input_bytes: int) -> AsyncIterator[bytes]:
    # Input is pulled by libvips as it decodes and output is relayed as it is
    # encoded. JPEG and PNG decode sequentially; formats whose loaders need
    # random access are read into memory by libvips, bounded by max_input_bytes.
    loop = asyncio.get_running_loop()
    bridge = _VipsBridge(source, loop, max_input_bytes)
    span = tracer.start_span("transform.transcode")
    span.set_attribute("transform.format", transform_plan.final_mime)
    span.set_attribute("transform.buffered", source.buffered)
    worker = loop.run_in_executor(_executor, bridge.run, transform_plan)
    getter: Optional[asyncio.Future] = None
    try:
        while True:
            if not bridge.chunks.empty():
                chunk = bridge.chunks.get_nowait()
                bridge.taken()
                yield chunk
                continue
            if worker.done():
                break
            getter = asyncio.ensure_future(bridge.chunks.get())
            await asyncio.wait({getter, worker}, return_when=asyncio.FIRST_COMPLETED)
            if getter.done():
                bridge.taken()
                yield getter.result()
            else:
                getter.cancel()
            getter = None

        width, height = await worker
        log.info(
            "transform.done fmt=%s out=%sx%s box=%s bytes_in=%s bytes_out=%s",
            transform_plan.output_format.value if transform_plan.output_format else "-",
            width, height, transform_plan.bounding_box, bridge.bytes_in, bridge.bytes_out,
        )
    finally:
        bridge.cancelled.set()
        if getter is not None:
            getter.cancel()
        if not worker.done():
            # the worker may be mid-read on this source; let it observe the cancel first
            await asyncio.wait({worker})
        if not worker.cancelled() and worker.exception() is not None:
            span.record_exception(worker.exception())
        span.end()


async def _passthrough(source: ByteSource) -> AsyncIterator[bytes]:
    async for chunk in source:
        yield chunk


def transform(
    transform_plan: TransformPlan,
    source: ByteSource,
    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES,
) -> AsyncIterator[bytes]:
    """Return the response body chunks: transcoded when the plan applies, untouched otherwise."""
    if not transform_plan.apply:
        return _passthrough(source)
    return _transcode(transform_plan, source, max_input_bytes)
