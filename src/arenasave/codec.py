"""Transport encoding for save text.

Records are stored either as plain JSON or as gzip-compressed JSON wrapped in
base64 so the transport stays valid text for any key/value backend. Decoding
auto-detects which of the two forms it was handed.
"""
from __future__ import annotations

import base64
import binascii
import enum
import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class DecodeOutcome(enum.Enum):
    PLAIN = "plain"
    COMPRESSED = "compressed"
    UNRECOVERABLE = "unrecoverable"


@dataclass(frozen=True)
class DecodeResult:
    """Result of a decode attempt.

    ``text`` is the decoded JSON text, or the untouched transport when the
    outcome is UNRECOVERABLE. ``data`` holds the parsed structure when one was
    obtained.
    """

    outcome: DecodeOutcome
    text: str
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is not DecodeOutcome.UNRECOVERABLE


def compress(text: str) -> str:
    if not text:
        return ""
    raw = gzip.compress(text.encode("utf-8"), compresslevel=6)
    return base64.b64encode(raw).decode("ascii")


def decompress(transport: str) -> Optional[str]:
    """Return the decompressed text or None if ``transport`` is not a compressed payload."""
    if not transport:
        return None
    try:
        raw = base64.b64decode(transport.encode("ascii"), validate=True)
    except (UnicodeEncodeError, binascii.Error):
        return None
    if raw[:2] != GZIP_MAGIC:
        return None
    try:
        return gzip.decompress(raw).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as exc:
        logger.debug("Decompression failed: %s", exc)
        return None


def _parse(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False, None


def encode(text: str, compress_payload: bool) -> str:
    """Encode record text for storage; pass-through unless ``compress_payload``."""
    if not compress_payload:
        return text
    return compress(text)


def decode_transport(transport: str) -> DecodeResult:
    """Decode ``transport`` trying plain JSON first, then the compressed form.

    Never raises.
    """
    parsed, data = _parse(transport)
    if parsed:
        return DecodeResult(DecodeOutcome.PLAIN, transport, data)

    text = decompress(transport)
    if text is not None:
        parsed, data = _parse(text)
        if parsed:
            return DecodeResult(DecodeOutcome.COMPRESSED, text, data)

    return DecodeResult(DecodeOutcome.UNRECOVERABLE, transport)


def decode(transport: str) -> str:
    """Return the JSON text inside ``transport``, or ``transport`` itself if undecodable."""
    return decode_transport(transport).text


def size_kb(text: Optional[str]) -> float:
    if not text:
        return 0.0
    return round(len(text.encode("utf-8")) / 1024, 2)


def compression_ratio(original: Optional[str], compressed: Optional[str]) -> float:
    if not original or not compressed:
        return 0.0
    return len(compressed) / len(original)
