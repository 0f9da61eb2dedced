"""Base64 transport encoding for synthesized audio payloads."""

from __future__ import annotations

import base64
import binascii
import re

_WHITESPACE = re.compile(r"[\t\n\f\r ]+")


class DecodingError(ValueError):
    """Raised when an audio payload is not valid base64."""


def decode_audio_payload(payload: str) -> bytes:
    """Decode a base64 payload into raw bytes.

    ASCII whitespace is ignored and missing ``=`` padding is restored, which is
    what browser clients producing the payload with ``btoa`` expect. Any other
    character outside the alphabet is rejected instead of being skipped.
    """

    if not isinstance(payload, str):
        raise DecodingError(f"Audio payload must be text, got {type(payload).__name__}")

    cleaned = _WHITESPACE.sub("", payload)
    remainder = len(cleaned) % 4
    if remainder == 1:
        raise DecodingError("Invalid base64 length")
    if remainder:
        cleaned += "=" * (4 - remainder)

    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodingError(f"Invalid base64 audio payload: {exc}") from exc


def encode_audio_payload(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


__all__ = ["DecodingError", "decode_audio_payload", "encode_audio_payload"]
