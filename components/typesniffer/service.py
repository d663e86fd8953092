from __future__ import annotations

import logging
from typing import Optional

from components.bytesource import ByteSource

from .contracts import SniffConfidence, SniffedType
from .signatures import SNIFF_WINDOW, match_signature

log = logging.getLogger("typesniffer")

SVG_MIME = "image/svg"


def sniff_bytes(head: bytes, display_name: Optional[str] = None) -> SniffedType:
    """
    Classify content from its leading bytes.

    Magic bytes win over the filename, which is untrusted. The `.svg`
    extension is only consulted when no signature matched, since SVG is
    XML text and has no reliable signature of its own.
    """
    mime = match_signature(head)
    if mime:
        return SniffedType(mime=mime, confidence=SniffConfidence.SNIFFED)
    if display_name and display_name.lower().endswith(".svg"):
        return SniffedType(mime=SVG_MIME, confidence=SniffConfidence.EXTENSION_FALLBACK)
    return SniffedType()


async def sniff(source: ByteSource, display_name: Optional[str] = None) -> SniffedType:
    head = await source.peek(SNIFF_WINDOW)
    sniffed = sniff_bytes(head, display_name)
    log.debug("sniff mime=%s confidence=%s window=%s", sniffed.mime or "-", sniffed.confidence.value, len(head))
    return sniffed
