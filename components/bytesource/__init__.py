from .source import DEFAULT_CHUNK_SIZE, ByteSource, ByteSourceClosed

__all__ = ["ByteSource", "ByteSourceClosed", "DEFAULT_CHUNK_SIZE"]
