"""Base64 helpers for GitHub file content.

The Contents API only accepts base64 payloads. Text is encoded as UTF-8 first
so multi-byte characters survive the round trip.
"""

from __future__ import annotations

import base64
import binascii

from .exceptions import EncodingError


def encode(text: str) -> str:
    """Return the base64 wire form of ``text``."""

    if not isinstance(text, str):
        raise EncodingError(f"Expected str, got {type(text).__name__}")
    try:
        raw = text.encode("utf-8")
    except UnicodeEncodeError as exc:
        # Lone surrogates cannot be represented in UTF-8.
        raise EncodingError(f"Text is not valid Unicode: {exc.reason}") from exc
    return base64.b64encode(raw).decode("ascii")


def decode(wire: str) -> str:
    """Return the text carried by a base64 ``wire`` string.

    GitHub wraps base64 content at 60 columns, so embedded newlines are
    ignored before strict decoding.
    """

    if not isinstance(wire, str):
        raise EncodingError(f"Expected str, got {type(wire).__name__}")
    compact = "".join(wire.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError(f"Malformed base64 payload: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodingError(f"Decoded payload is not UTF-8: {exc.reason}") from exc


__all__ = ["decode", "encode"]
