from __future__ import annotations

import base64

import pytest

from github_gateway.encoding import decode, encode
from github_gateway.exceptions import EncodingError


@pytest.mark.parametrize(
    "text",
    ["", "Hello, world!", "naïve café", "日本語のテキスト", "emoji 🚀\nsecond line\n", "tab\tand\r\nCRLF"],
)
def test_encode_decode_round_trip(text: str) -> None:
    wire = encode(text)
    assert decode(wire) == text


def test_encode_matches_standard_base64_of_utf8() -> None:
    assert encode("Hello, world!") == "SGVsbG8sIHdvcmxkIQ=="
    assert encode("é") == base64.b64encode("é".encode("utf-8")).decode("ascii")


def test_decode_ignores_github_line_wrapping() -> None:
    text = "x" * 200
    wire = encode(text)
    wrapped = "\n".join(wire[i : i + 60] for i in range(0, len(wire), 60)) + "\n"
    assert decode(wrapped) == text


def test_encode_rejects_non_text() -> None:
    with pytest.raises(EncodingError):
        encode(b"bytes")  # type: ignore[arg-type]
    with pytest.raises(EncodingError):
        encode(None)  # type: ignore[arg-type]


def test_encode_rejects_lone_surrogate() -> None:
    with pytest.raises(EncodingError):
        encode("broken \ud800 text")


def test_decode_rejects_malformed_base64() -> None:
    with pytest.raises(EncodingError):
        decode("not*base64!")
    with pytest.raises(EncodingError):
        decode("abc")


def test_decode_rejects_non_utf8_payload() -> None:
    wire = base64.b64encode(b"\xff\xfe\xfd").decode("ascii")
    with pytest.raises(EncodingError):
        decode(wire)


def test_encoding_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        decode("%%%")
