"""Trapper protocol codec.

Frame layout, identical for requests and replies::

    offset 0..3   b"ZBXD"   magic
    offset 4      0x01      protocol version
    offset 5..12  payload length, unsigned 64-bit little-endian
    offset 13..   UTF-8 JSON payload
"""

from __future__ import annotations

import json
import struct
from typing import Any

from .errors import EncodingFailed, InvalidHeader, InvalidResponse
from .models import MetricBatch, ServerResponse

HEADER = b"ZBXD\x01"
LENGTH_SIZE = 8
HEADER_SIZE = len(HEADER) + LENGTH_SIZE

_LENGTH = struct.Struct("<Q")


def encode_payload(batch: MetricBatch) -> bytes:
    try:
        text = json.dumps(batch.to_dict(), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodingFailed(f"Metric value not representable as JSON: {e}") from e
    return text.encode("utf-8")


def frame(payload: bytes) -> bytes:
    return HEADER + _LENGTH.pack(len(payload)) + payload


def encode(batch: MetricBatch) -> bytes:
    return frame(encode_payload(batch))


def _check_header(data: bytes) -> None:
    if len(data) < HEADER_SIZE:
        raise InvalidHeader(f"Frame too short: {len(data)} bytes, need at least {HEADER_SIZE}")
    if data[: len(HEADER)] != HEADER:
        raise InvalidHeader(f"Invalid data header: {bytes(data[: len(HEADER)])!r}")


def declared_length(data: bytes) -> int:
    _check_header(data)
    return _LENGTH.unpack_from(data, len(HEADER))[0]


def decode(data: bytes, bounded: bool = False) -> bytes:
    """Validate the envelope and return the payload.

    By default everything after the 13-byte header is returned and the length
    field is not consulted; the transport reads until the peer closes, so the
    buffer is taken to hold exactly one frame. With ``bounded=True`` the payload
    is cut to the declared length instead.
    """
    _check_header(data)
    if not bounded:
        return bytes(data[HEADER_SIZE:])

    length = declared_length(data)
    available = len(data) - HEADER_SIZE
    if available < length:
        raise InvalidHeader(f"Declared length {length} exceeds the {available} payload bytes received")
    return bytes(data[HEADER_SIZE : HEADER_SIZE + length])


def parse_response(payload: bytes) -> ServerResponse:
    try:
        body: Any = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidResponse(f"Invalid JSON from server: {e}: {payload!r}") from e

    if not isinstance(body, dict) or "response" not in body:
        raise InvalidResponse(f"Unexpected response body: {payload!r}")
    return ServerResponse(response=str(body["response"]), info=str(body.get("info", "")))
