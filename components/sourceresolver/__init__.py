from .contracts import (
    DEFAULT_DOWNLOAD_NAME,
    FileReference,
    ReferenceKind,
    ResolvedSource,
    display_name_from_block,
    display_name_from_url,
    normalize_absolute_url,
)
from .errors import FetchFailed, FetchTooLarge, InvalidMetadata, InvalidReference, NotFound, ResolveError
from .fetcher import UrlFetcher
from .service import SourceResolver

__all__ = [
    "DEFAULT_DOWNLOAD_NAME",
    "FileReference",
    "ReferenceKind",
    "ResolvedSource",
    "display_name_from_block",
    "display_name_from_url",
    "normalize_absolute_url",
    "FetchFailed",
    "FetchTooLarge",
    "InvalidMetadata",
    "InvalidReference",
    "NotFound",
    "ResolveError",
    "UrlFetcher",
    "SourceResolver",
]
