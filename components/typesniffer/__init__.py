from .contracts import SniffConfidence, SniffedType
from .service import SVG_MIME, sniff, sniff_bytes
from .signatures import SNIFF_WINDOW

__all__ = ["SniffConfidence", "SniffedType", "SVG_MIME", "SNIFF_WINDOW", "sniff", "sniff_bytes"]
