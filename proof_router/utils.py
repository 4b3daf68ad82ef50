"""
Utility functions for the proof router.
"""
import re
import struct

from .exceptions import InvalidRequestId

REQUEST_ID_BYTES = 32
_REQUEST_ID_RE = re.compile(r"^0x[0-9a-fA-F]{%d}$" % (REQUEST_ID_BYTES * 2))


def to_hex(data: bytes) -> str:
    """
    Encode bytes as a 0x-prefixed lowercase hex string.

    Args:
        data: Bytes to encode

    Returns:
        Hex string such as "0xdeadbeef"
    """
    return "0x" + bytes(data).hex()


def from_hex(value: str) -> bytes:
    """
    Decode a hex string with or without 0x prefix.

    Args:
        value: Hex string

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the value is not a string of hex digit pairs
    """
    if not isinstance(value, str):
        raise ValueError(f"expected a hex string, got {type(value).__name__}")
    digits = value[2:] if value[:2] in ("0x", "0X") else value
    # bytes.fromhex tolerates whitespace, persisted fields must not contain any
    if not re.fullmatch(r"[0-9a-fA-F]*", digits):
        raise ValueError(f"non-hex characters in {value[:18]!r}")
    return bytes.fromhex(digits)


def normalize_request_id(request_id: str) -> str:
    """
    Validate a request id and return it lowercased.

    Raises:
        InvalidRequestId: If the id is not 0x followed by 64 hex digits
    """
    candidate = request_id.strip() if isinstance(request_id, str) else ""
    if not _REQUEST_ID_RE.match(candidate):
        raise InvalidRequestId(f"Invalid request id: {request_id!r}")
    return candidate.lower()


def encode_byte_vector(data: bytes) -> bytes:
    """Encode bytes as a u64 little-endian length followed by the bytes."""
    return struct.pack("<Q", len(data)) + bytes(data)


def short_hex(data: bytes, limit: int = 8) -> str:
    """Abbreviated hex for log lines."""
    encoded = bytes(data).hex()
    if len(encoded) <= limit * 2:
        return "0x" + encoded
    return f"0x{encoded[:limit * 2]}... ({len(data)} bytes)"
