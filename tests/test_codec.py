from __future__ import annotations

import base64

import pytest

from radiocms.services.codec import DecodingError, decode_audio_payload, encode_audio_payload


@pytest.mark.parametrize(
    "data",
    [b"", b"\x00", b"ID3\x04\x00", bytes(range(256)), b"\xff\xfb\x90\x64" * 1024],
)
def test_decode_returns_the_encoded_bytes(data: bytes) -> None:
    assert decode_audio_payload(encode_audio_payload(data)) == data


def test_decode_ignores_whitespace_and_missing_padding() -> None:
    encoded = base64.b64encode(b"fake mp3 frame").decode("ascii").rstrip("=")
    wrapped = "\n".join(encoded[i : i + 4] for i in range(0, len(encoded), 4))

    assert decode_audio_payload(f"  {wrapped}\r\n") == b"fake mp3 frame"


@pytest.mark.parametrize("payload", ["abcde", "not*base64!", "ab$d", "A"])
def test_decode_rejects_malformed_input(payload: str) -> None:
    with pytest.raises(DecodingError):
        decode_audio_payload(payload)


def test_decode_rejects_non_text() -> None:
    with pytest.raises(DecodingError):
        decode_audio_payload(b"SUQz")  # type: ignore[arg-type]
