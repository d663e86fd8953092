from .contracts import BLOCK_QUERY, FORWARDED_HEADERS, BlockMetadata, pick_forwarded_headers
from .errors import MetadataServiceError
from .service import MetadataClient

__all__ = [
    "BLOCK_QUERY",
    "FORWARDED_HEADERS",
    "BlockMetadata",
    "MetadataClient",
    "MetadataServiceError",
    "pick_forwarded_headers",
]
