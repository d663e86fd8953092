from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import Response

from components.responseemitter import TransformedOutput, emit, error_response
from components.sourceresolver import FileReference, SourceResolver
from components.transformstage import DEFAULT_MAX_INPUT_BYTES, TransformParams, plan, transform
from components.typesniffer import sniff

log = logging.getLogger("filegateway.pipeline")


class DownloadPipeline:
    """
    resolve -> sniff -> plan -> transform -> emit, strictly in that order.

    Both entry points run through here; only the ByteSource differs
    (object-store stream vs. fetched buffer).
    """

    def __init__(self, resolver: SourceResolver, max_transform_bytes: int = DEFAULT_MAX_INPUT_BYTES):
        self.resolver = resolver
        self.max_transform_bytes = max_transform_bytes

    async def run(
        self,
        reference: FileReference,
        params: TransformParams,
        forwarded_headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        context = f"{reference.kind.value}={reference.value}"
        try:
            resolved = await self.resolver.resolve(reference, forwarded_headers)
        except Exception as e:
            return error_response(e, context)

        source = resolved.source
        try:
            sniffed = await sniff(source, resolved.display_name)
        except Exception as e:
            await source.aclose()
            return error_response(e, context)
        except BaseException:
            await source.aclose()
            raise

        decision = plan(sniffed, params)
        log.info(
            "pipeline.plan %s mime=%s confidence=%s apply=%s final=%s box=%s buffered=%s",
            context, sniffed.mime or "-", sniffed.confidence.value, decision.apply,
            decision.final_mime or "-", decision.bounding_box, source.buffered,
        )
        output = TransformedOutput(
            chunks=transform(decision, source, self.max_transform_bytes),
            mime=decision.final_mime,
            filename=resolved.display_name,
        )
        return await emit(output, source, context)
