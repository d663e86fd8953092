
from __future__ import annotations
import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..contracts import BlobMeta, BlobRef, OpenedBlob
from ..errors import BlobNotFound, BlobUpstream
from ..ports import BlobReaderPort

log = logging.getLogger("blobstorage.s3")

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NotFound", "404"}

class S3BlobAdapter(BlobReaderPort):
    def __init__(self, region: Optional[str] = None, endpoint_url: Optional[str] = None,
                 force_path_style: bool = False, access_key_id: Optional[str] = None,
                 secret_access_key: Optional[str] = None, client: Any = None,
                 chunk_size: int = 64 * 1024):
        self.s3 = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=BotoConfig(s3={"addressing_style": "path" if force_path_style else "auto"})
        )
        self.chunk_size = chunk_size
        self.adapter = "s3"

    async def open_stream(self, ref: BlobRef) -> OpenedBlob:
        try:
            obj = await asyncio.to_thread(self.s3.get_object, Bucket=ref.bucket, Key=ref.key)
        except ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            code = e.response.get("Error", {}).get("Code")
            if status == 404 or code in _NOT_FOUND_CODES:
                raise BlobNotFound(f"blob not found: {ref.bucket}/{ref.key}")
            raise BlobUpstream(str(e))
        except BotoCoreError as e:
            raise BlobUpstream(str(e))

        meta = BlobMeta(size=obj.get("ContentLength"))
        log.info("blob.open ok bucket=%s key=%s size=%s", ref.bucket, ref.key, meta.size)
        return OpenedBlob(ref=ref, meta=meta, chunks=self._iter_body(ref, obj["Body"]))

    async def _iter_body(self, ref: BlobRef, body) -> AsyncIterator[bytes]:
        # body is closed on exhaustion, error and early close (client went away)
        try:
            while True:
                try:
                    data = await asyncio.to_thread(body.read, self.chunk_size)
                except Exception as e:
                    raise BlobUpstream(f"read failed for {ref.bucket}/{ref.key}: {e}") from e
                if not data:
                    break
                yield data
        finally:
            body.close()
