"""
Metadata Client contracts.

The backend exposes blocks over GraphQL; a file block carries its display
name and object-store coordinates in `properties`:

    {"_id": "...", "type": "file",
     "properties": {"name": "cat.png", "s3": {"Bucket": "...", "Key": "..."}}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

# Request headers passed through to the backend untouched (auth + analytics).
FORWARDED_HEADERS = ("cookie", "user-agent", "referer")

BLOCK_QUERY = """
query block($_id: ObjectID!) {
  block(_id: $_id) {
    _id
    type
    properties
  }
}
"""


class BlockMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: Optional[str] = None
    display_name: Optional[str] = None
    storage_bucket: Optional[str] = None
    storage_key: Optional[str] = None

    @property
    def has_storage(self) -> bool:
        return bool(self.storage_bucket) and bool(self.storage_key)

    @classmethod
    def from_block(cls, block: Dict[str, Any]) -> "BlockMetadata":
        properties = block.get("properties") or {}
        if not isinstance(properties, dict):
            properties = {}
        locator = properties.get("s3") or {}
        if not isinstance(locator, dict):
            locator = {}
        name = properties.get("name")
        return cls(
            id=str(block.get("_id") or ""),
            type=block.get("type"),
            display_name=name if isinstance(name, str) else None,
            storage_bucket=locator.get("Bucket") or None,
            storage_key=locator.get("Key") or None,
        )


def pick_forwarded_headers(headers: Any) -> Dict[str, str]:
    """Select the pass-through headers from any mapping of request headers."""
    picked: Dict[str, str] = {}
    for name in FORWARDED_HEADERS:
        value = headers.get(name)
        if value:
            picked[name] = value
    return picked
