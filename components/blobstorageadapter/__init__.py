from __future__ import annotations
from .contracts import BlobMeta, BlobRef, OpenedBlob
from .errors import BlobError, BlobNotFound, BlobUpstream, BlobValidation
from .ports import BlobReaderPort
from .adapters.local_fs import LocalFSBlobAdapter
from .adapters.s3 import S3BlobAdapter

def make_adapter(cfg):
    """Build the reader selected by `cfg.blob_adapter` ("s3" | "localfs")."""
    kind = cfg.blob_adapter.lower()
    if kind == "localfs":
        return LocalFSBlobAdapter(cfg.blob_local_root), "localfs"
    elif kind == "s3":
        return S3BlobAdapter(
            region=cfg.aws_region,
            endpoint_url=cfg.s3_endpoint_url,
            force_path_style=cfg.s3_force_path_style,
            access_key_id=cfg.aws_access_key_id,
            secret_access_key=cfg.aws_secret_access_key,
        ), "s3"
    else:
        raise RuntimeError(f"Unknown blob_adapter: {cfg.blob_adapter}")
