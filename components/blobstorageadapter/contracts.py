
from __future__ import annotations
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from pydantic import BaseModel, ConfigDict, constr

# ---------- Common Models ----------

class BlobRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: constr(strip_whitespace=True, min_length=1)
    key: constr(strip_whitespace=True, min_length=1)

class BlobMeta(BaseModel):
    size: Optional[int] = None

@dataclass
class OpenedBlob:
    """An object whose read has started; `chunks` must be fully consumed or closed."""
    ref: BlobRef
    meta: BlobMeta
    chunks: AsyncIterator[bytes]
