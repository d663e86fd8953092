import io

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from components.blobstorageadapter import BlobNotFound, BlobRef, BlobUpstream, S3BlobAdapter


def _stubbed():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )
    return client, Stubber(client)


@pytest.mark.asyncio
async def test_open_stream_reads_body_in_chunks():
    data = b"0123456789" * 50
    client, stubber = _stubbed()
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(data), len(data)), "ContentLength": len(data), "ContentType": "image/png"},
        {"Bucket": "files", "Key": "a/cat.png"},
    )
    with stubber:
        adapter = S3BlobAdapter(client=client, chunk_size=100)
        opened = await adapter.open_stream(BlobRef(bucket="files", key="a/cat.png"))
        assert opened.meta.size == len(data)
        chunks = [c async for c in opened.chunks]
    assert len(chunks) == 5
    assert b"".join(chunks) == data
    stubber.assert_no_pending_responses()


@pytest.mark.asyncio
async def test_no_such_key_is_not_found():
    client, stubber = _stubbed()
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    with stubber:
        adapter = S3BlobAdapter(client=client)
        with pytest.raises(BlobNotFound):
            await adapter.open_stream(BlobRef(bucket="files", key="missing"))


@pytest.mark.asyncio
async def test_other_client_errors_are_upstream():
    client, stubber = _stubbed()
    stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
    with stubber:
        adapter = S3BlobAdapter(client=client)
        with pytest.raises(BlobUpstream):
            await adapter.open_stream(BlobRef(bucket="files", key="secret"))
