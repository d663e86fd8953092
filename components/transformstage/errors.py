from __future__ import annotations


class TransformError(Exception):
    """Base class for transform stage errors."""


class ImageDecodeError(TransformError):
    """Input could not be identified or its header could not be read."""


class ImageProcessingError(TransformError):
    """Decoding pixels, resizing or encoding failed after the header was read."""


class ImageTooLarge(TransformError):
    pass
