from __future__ import annotations

from typing import Optional, Tuple

# file-type style sample size: enough for every container header below
SNIFF_WINDOW = 4100

# (offset, magic, mime); first match wins, so longer/more specific first
MAGIC_SIGNATURES: Tuple[Tuple[int, bytes, str], ...] = (
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
    (0, b"8BPS", "image/vnd.adobe.photoshop"),
    (0, b"\x00\x00\x01\x00", "image/x-icon"),
    (0, b"%PDF", "application/pdf"),
    (0, b"PK\x03\x04", "application/zip"),
    (0, b"\x1f\x8b\x08", "application/gzip"),
    (0, b"BZh", "application/x-bzip2"),
    (0, b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (0, b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (0, b"SQLite format 3\x00", "application/x-sqlite3"),
    (0, b"ID3", "audio/mpeg"),
    (0, b"OggS", "audio/ogg"),
    (0, b"fLaC", "audio/x-flac"),
    (0, b"wOFF", "font/woff"),
    (0, b"wOF2", "font/woff2"),
    (0, b"BM", "image/bmp"),
)

_RIFF_FORMS = {
    b"WEBP": "image/webp",
    b"WAVE": "audio/vnd.wave",
    b"AVI ": "video/vnd.avi",
}

_FTYP_BRANDS = {
    b"avif": "image/avif",
    b"avis": "image/avif",
    b"heic": "image/heic",
    b"heix": "image/heic",
    b"heim": "image/heic",
    b"heis": "image/heic",
    b"hevc": "image/heic-sequence",
    b"hevx": "image/heic-sequence",
    b"mif1": "image/heif",
    b"msf1": "image/heif-sequence",
    b"qt  ": "video/quicktime",
}

_EBML = b"\x1a\x45\xdf\xa3"

_MP3_SYNC = frozenset({0xFB, 0xFA, 0xF3, 0xF2, 0xE3, 0xE2})


def match_signature(head: bytes) -> Optional[str]:
    """Return the MIME type identified by the leading bytes, or None."""
    if len(head) >= 12 and head[:4] == b"RIFF":
        return _RIFF_FORMS.get(head[8:12])

    if len(head) >= 12 and head[4:8] == b"ftyp":
        return _FTYP_BRANDS.get(head[8:12], "video/mp4")

    if head.startswith(_EBML):
        # doctype string sits in the EBML header
        if b"webm" in head[:64]:
            return "video/webm"
        return "video/x-matroska"

    for offset, magic, mime in MAGIC_SIGNATURES:
        if head[offset:offset + len(magic)] == magic:
            return mime

    # bare MPEG layer III frame sync (MPEG-1/2/2.5, with or without CRC)
    if len(head) >= 2 and head[0] == 0xFF and head[1] in _MP3_SYNC:
        return "audio/mpeg"

    return None
