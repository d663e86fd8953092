from .local_fs import LocalFSBlobAdapter
from .s3 import S3BlobAdapter

__all__ = ["LocalFSBlobAdapter", "S3BlobAdapter"]
