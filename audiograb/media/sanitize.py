"""Filesystem-safe names for output files."""

import re

# Latin letters and digits, Arabic, CJK unified ideographs (+ extension A),
# whitespace, underscore and hyphen survive. Everything else is dropped.
_UNSAFE = re.compile(r"[^a-zA-Z0-9\u0600-\u06FF\u4e00-\u9fff\u3400-\u4dbf\s_-]")
_WHITESPACE = re.compile(r"\s+")

# UTF-8 bytes, not characters. File names are capped at 255 bytes and the
# job suffix plus yt-dlp's temporary ".webm.part" name still have to fit.
MAX_NAME_BYTES = 200


def _truncate_utf8(text: str, max_bytes: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    # Drop any partial multi-byte character left at the cut
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def sanitize_filename(title: str, default: str = "audio") -> str:
    """Map an arbitrary title to something safe to use as a file name.

    Returns ``default`` when nothing usable is left.
    """
    if not title:
        return default
    cleaned = _UNSAFE.sub("", title)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _truncate_utf8(cleaned, MAX_NAME_BYTES).rstrip()
    return cleaned or default
