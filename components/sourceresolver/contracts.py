from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict

from components.bytesource import ByteSource
from components.metadataclient import BlockMetadata

DEFAULT_DOWNLOAD_NAME = "download"

# protocol-relative ("//host/...") or http(s)-qualified, with a host
_ABSOLUTE_URL = re.compile(r"^(?:(?P<scheme>https?):)?//(?P<host>[^/?#\s]+)[^\s]*$", re.IGNORECASE)


class ReferenceKind(str, Enum):
    ID = "id"
    URL = "url"


class FileReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    value: str

    @classmethod
    def by_id(cls, block_id: Optional[str]) -> "FileReference":
        return cls(kind=ReferenceKind.ID, value=(block_id or "").strip())

    @classmethod
    def by_url(cls, url: Optional[str]) -> "FileReference":
        return cls(kind=ReferenceKind.URL, value=(url or "").strip())


def normalize_absolute_url(raw: Optional[str]) -> Optional[str]:
    """Return a fetchable absolute URL, or None when `raw` is not one."""
    if not raw:
        return None
    m = _ABSOLUTE_URL.match(raw)
    if not m:
        return None
    if m.group("scheme") is None:
        return "https:" + raw
    return raw


def display_name_from_url(url: str) -> str:
    name = PurePosixPath(unquote(urlsplit(url).path)).name
    return name or DEFAULT_DOWNLOAD_NAME


def display_name_from_block(meta: BlockMetadata) -> str:
    if meta.display_name:
        return meta.display_name
    if meta.storage_key:
        return PurePosixPath(meta.storage_key).name or DEFAULT_DOWNLOAD_NAME
    return DEFAULT_DOWNLOAD_NAME


@dataclass
class ResolvedSource:
    reference: FileReference
    source: ByteSource
    display_name: str
    metadata: Optional[BlockMetadata] = None
