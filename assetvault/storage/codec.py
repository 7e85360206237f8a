"""Text transcoding for backends with a JSON-only transport."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from assetvault.errors import BackendError


def encode_content(data: bytes) -> str:
    """Encode raw bytes as base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode_content(encoded: str) -> bytes:
    """Decode base64 text, tolerating the line wrapping hosting APIs add."""
    try:
        return base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BackendError(f"Malformed base64 content: {exc}") from exc


def interpret(data: bytes) -> Any:
    """Best-effort structured view of stored bytes.

    JSON documents come back parsed, other UTF-8 content as text, and
    anything else as the raw bytes.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return data
    try:
        return json.loads(text)
    except ValueError:
        return text


def serialize(content: Any) -> bytes:
    """Turn caller content into bytes: str as UTF-8, dict/list as indented JSON."""
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode("utf-8")
    return json.dumps(content, indent=2).encode("utf-8")
