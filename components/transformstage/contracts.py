from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PositiveInt


class OutputFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"


OUTPUT_MIME: Dict[OutputFormat, str] = {
    OutputFormat.JPEG: "image/jpeg",
    OutputFormat.PNG: "image/png",
    OutputFormat.WEBP: "image/webp",
}

# Raster inputs the transform applies to; SVG is detected elsewhere but never rasterized here.
SUPPORTED_INPUT_MIMES: FrozenSet[str] = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/tiff",
})


def _parse_dimension(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _parse_format(value: Optional[str]) -> OutputFormat:
    try:
        return OutputFormat((value or "").strip().lower())
    except ValueError:
        return OutputFormat.JPEG


class TransformParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_width: Optional[PositiveInt] = None
    max_height: Optional[PositiveInt] = None
    output_format: OutputFormat = OutputFormat.JPEG

    @classmethod
    def from_query(cls, w: Optional[str] = None, h: Optional[str] = None, f: Optional[str] = None) -> "TransformParams":
        """Lenient parse: anything unusable falls back to the default."""
        return cls(max_width=_parse_dimension(w), max_height=_parse_dimension(h), output_format=_parse_format(f))

    @property
    def bounding_box(self) -> Optional[Tuple[int, int]]:
        if self.max_width is None and self.max_height is None:
            return None
        width = self.max_width or self.max_height
        height = self.max_height or self.max_width
        return width, height


class TransformPlan(BaseModel):
    """Decision taken once per request: whether to transcode and what the client receives."""
    model_config = ConfigDict(frozen=True)

    apply: bool
    final_mime: str = ""
    output_format: Optional[OutputFormat] = None
    bounding_box: Optional[Tuple[int, int]] = None
