from .contracts import OUTPUT_MIME, SUPPORTED_INPUT_MIMES, OutputFormat, TransformParams, TransformPlan
from .errors import ImageDecodeError, ImageProcessingError, ImageTooLarge, TransformError
from .service import DEFAULT_MAX_INPUT_BYTES, JPEG_QUALITY, PNG_QUALITY, WEBP_QUALITY, plan, transform

__all__ = [
    "OUTPUT_MIME",
    "SUPPORTED_INPUT_MIMES",
    "OutputFormat",
    "TransformParams",
    "TransformPlan",
    "TransformError",
    "ImageDecodeError",
    "ImageProcessingError",
    "ImageTooLarge",
    "DEFAULT_MAX_INPUT_BYTES",
    "JPEG_QUALITY",
    "PNG_QUALITY",
    "WEBP_QUALITY",
    "plan",
    "transform",
]
