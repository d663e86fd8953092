from .service import (
    TransformedOutput,
    content_disposition,
    emit,
    error_response,
    sanitize_filename,
    status_for,
)

__all__ = [
    "TransformedOutput",
    "content_disposition",
    "emit",
    "error_response",
    "sanitize_filename",
    "status_for",
]
