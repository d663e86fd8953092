from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SniffConfidence(str, Enum):
    SNIFFED = "sniffed"
    EXTENSION_FALLBACK = "extension_fallback"
    NONE = "none"


class SniffedType(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime: str = ""
    confidence: SniffConfidence = SniffConfidence.NONE

    @property
    def known(self) -> bool:
        return bool(self.mime)
