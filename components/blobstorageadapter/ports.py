
from __future__ import annotations
from abc import ABC, abstractmethod

from .contracts import BlobRef, OpenedBlob

class BlobReaderPort(ABC):
    @abstractmethod
    async def open_stream(self, ref: BlobRef) -> OpenedBlob:
        """Start reading `ref`. Missing objects and backend faults raise before any chunk is produced."""
