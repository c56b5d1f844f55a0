"""
Byte-level helpers: 0x-hex and base64 text forms, plus the ULEB128 lengths
BCS puts in front of every sequence and enum variant.
"""

from __future__ import annotations

import base64
import binascii
from typing import Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]

# BCS lengths and variant tags never exceed u32::MAX
ULEB128_MAX = 0xFFFFFFFF
_ULEB128_MAX_LEN = 5


def _strip_0x(s: str) -> str:
    return s[2:] if s[:2] in ("0x", "0X") else s


def to_hex(b: BytesLike, prefix: bool = True) -> str:
    digits = bytes(b).hex()
    return "0x" + digits if prefix else digits


def from_hex(s: str) -> bytes:
    """Parse hex with or without a 0x prefix. Odd digit counts are an error."""
    if not isinstance(s, str):
        raise TypeError(f"expected a hex string, got {type(s).__name__}")
    digits = _strip_0x(s)
    if len(digits) % 2:
        raise ValueError(f"hex string has an odd number of digits: {s!r}")
    try:
        return bytes.fromhex(digits)
    except ValueError as e:
        raise ValueError(f"not a hex string: {s!r}") from e


def ensure_bytes(data: Union[BytesLike, str]) -> bytes:
    """Raw bytes as-is; a str is read as hex."""
    if isinstance(data, str):
        return from_hex(data)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"cannot interpret {type(data).__name__} as bytes")


def to_b64(b: BytesLike) -> str:
    return base64.b64encode(bytes(b)).decode("ascii")


def from_b64(s: str) -> bytes:
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"not a base64 string: {e}") from e


def uleb128_encode(n: int) -> bytes:
    """
    Little-endian base-128: seven value bits per byte, high bit set on every
    byte except the last. 127 -> 7f, 128 -> 80 01, 300 -> ac 02.
    """
    if not 0 <= n <= ULEB128_MAX:
        raise ValueError(f"uleb128 value out of range: {n}")
    groups = [n & 0x7F]
    n >>= 7
    while n:
        groups[-1] |= 0x80
        groups.append(n & 0x7F)
        n >>= 7
    return bytes(groups)


def uleb128_decode(b: BytesLike, *, offset: int = 0) -> Tuple[int, int]:
    """
    Read one ULEB128 value at `offset`; returns (value, bytes consumed).

    Only the canonical encoding of each value is accepted: a trailing zero
    group, more than five bytes or a value above u32::MAX is rejected.
    """
    data = bytes(b[offset:offset + _ULEB128_MAX_LEN])
    value = 0
    for i, byte in enumerate(data):
        value |= (byte & 0x7F) << (7 * i)
        if byte & 0x80:
            continue
        if i and not byte:
            raise ValueError("non-canonical uleb128 encoding")
        if value > ULEB128_MAX:
            raise ValueError("uleb128 value exceeds u32 range")
        return value, i + 1
    if len(data) == _ULEB128_MAX_LEN:
        raise ValueError("uleb128 too long")
    raise ValueError("truncated uleb128")


__all__ = [
    "BytesLike",
    "ULEB128_MAX",
    "ensure_bytes",
    "to_hex",
    "from_hex",
    "to_b64",
    "from_b64",
    "uleb128_encode",
    "uleb128_decode",
]
