"""
BCS (Binary Canonical Serialization) writer/reader.

Encoding rules
--------------
- Fixed width unsigned integers (u8, u16, u32, u64, u128, u256), little-endian.
- bool as a single byte 0x00 / 0x01 (anything else is rejected on decode).
- Sequences, byte vectors and UTF-8 strings are prefixed by their length as
  ULEB128 (capped at u32::MAX).
- Enum variants are prefixed by their index as ULEB128.
- Option<T> is 0x00 (None) or 0x01 followed by T.
- Fixed size arrays (addresses, object ids) are written raw, no prefix.

There is exactly one accepted encoding per value: readers reject truncated
input, out-of-range booleans, non-minimal ULEB128 and trailing bytes.

API
---
- BcsWriter: write_* methods, chainable; .to_bytes()
- BcsReader: read_* methods; .finish() asserts the input was consumed
- BcsEncodeError / BcsDecodeError
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, TypeVar

from ..errors import BcsError
from ..utils.bytes import BytesLike, uleb128_decode, uleb128_encode

T = TypeVar("T")


class BcsEncodeError(BcsError):
    pass


class BcsDecodeError(BcsError):
    pass


_UINT_WIDTHS = {8: 1, 16: 2, 32: 4, 64: 8, 128: 16, 256: 32}


def _check_uint(value: int, bits: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BcsEncodeError(f"u{bits} expects int, got {type(value).__name__}")
    if value < 0 or value >= (1 << bits):
        raise BcsEncodeError(f"value {value} out of range for u{bits}")
    return value


class BcsWriter:
    __slots__ = ("_buf",)

    def __init__(self) -> None:
        self._buf = bytearray()

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    # --- primitives ---------------------------------------------------------------

    def write_uint(self, value: int, bits: int) -> "BcsWriter":
        if bits not in _UINT_WIDTHS:
            raise BcsEncodeError(f"unsupported integer width u{bits}")
        _check_uint(value, bits)
        self._buf += value.to_bytes(_UINT_WIDTHS[bits], "little")
        return self

    def write_u8(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 8)

    def write_u16(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 16)

    def write_u32(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 32)

    def write_u64(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 64)

    def write_u128(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 128)

    def write_u256(self, value: int) -> "BcsWriter":
        return self.write_uint(value, 256)

    def write_bool(self, value: bool) -> "BcsWriter":
        if not isinstance(value, bool):
            raise BcsEncodeError(f"bool expects bool, got {type(value).__name__}")
        self._buf.append(1 if value else 0)
        return self

    def write_uleb128(self, value: int) -> "BcsWriter":
        try:
            self._buf += uleb128_encode(value)
        except ValueError as e:
            raise BcsEncodeError(str(e)) from e
        return self

    def write_fixed_bytes(self, data: BytesLike, length: int) -> "BcsWriter":
        raw = bytes(data)
        if len(raw) != length:
            raise BcsEncodeError(f"expected {length} bytes, got {len(raw)}")
        self._buf += raw
        return self

    def write_bytes(self, data: BytesLike) -> "BcsWriter":
        raw = bytes(data)
        self.write_uleb128(len(raw))
        self._buf += raw
        return self

    def write_str(self, s: str) -> "BcsWriter":
        return self.write_bytes(s.encode("utf-8"))

    # --- composites ---------------------------------------------------------------

    def write_variant(self, index: int) -> "BcsWriter":
        return self.write_uleb128(index)

    def write_seq(self, items: Sequence[T], write_item: Callable[["BcsWriter", T], object]) -> "BcsWriter":
        self.write_uleb128(len(items))
        for item in items:
            write_item(self, item)
        return self

    def write_option(
        self, value: Optional[T], write_item: Callable[["BcsWriter", T], object]
    ) -> "BcsWriter":
        if value is None:
            self._buf.append(0)
        else:
            self._buf.append(1)
            write_item(self, value)
        return self


class BcsReader:
    __slots__ = ("b", "i", "n")

    def __init__(self, data: BytesLike):
        self.b = bytes(data)
        self.i = 0
        self.n = len(self.b)

    @property
    def remaining(self) -> int:
        return self.n - self.i

    def read(self, n: int) -> bytes:
        if n < 0 or self.i + n > self.n:
            raise BcsDecodeError("truncated input")
        s = self.b[self.i : self.i + n]
        self.i += n
        return s

    def finish(self) -> None:
        if self.i != self.n:
            raise BcsDecodeError(f"{self.n - self.i} trailing bytes after value")

    # --- primitives ---------------------------------------------------------------

    def read_uint(self, bits: int) -> int:
        width = _UINT_WIDTHS.get(bits)
        if width is None:
            raise BcsDecodeError(f"unsupported integer width u{bits}")
        return int.from_bytes(self.read(width), "little")

    def read_u8(self) -> int:
        return self.read_uint(8)

    def read_u16(self) -> int:
        return self.read_uint(16)

    def read_u32(self) -> int:
        return self.read_uint(32)

    def read_u64(self) -> int:
        return self.read_uint(64)

    def read_u128(self) -> int:
        return self.read_uint(128)

    def read_u256(self) -> int:
        return self.read_uint(256)

    def read_bool(self) -> bool:
        v = self.read(1)[0]
        if v > 1:
            raise BcsDecodeError(f"invalid bool byte 0x{v:02x}")
        return v == 1

    def read_uleb128(self) -> int:
        try:
            value, used = uleb128_decode(self.b, offset=self.i)
        except ValueError as e:
            raise BcsDecodeError(str(e)) from e
        self.i += used
        return value

    def read_fixed_bytes(self, length: int) -> bytes:
        return self.read(length)

    def read_bytes(self) -> bytes:
        return self.read(self.read_uleb128())

    def read_str(self) -> str:
        raw = self.read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BcsDecodeError(f"invalid utf-8 string: {e}") from e

    # --- composites ---------------------------------------------------------------

    def read_variant(self, count: int, what: str = "enum") -> int:
        idx = self.read_uleb128()
        if idx >= count:
            raise BcsDecodeError(f"unknown {what} variant {idx}")
        return idx

    def read_seq(self, read_item: Callable[["BcsReader"], T]) -> List[T]:
        length = self.read_uleb128()
        # every element takes at least one byte
        if length > self.remaining:
            raise BcsDecodeError(f"sequence length {length} exceeds remaining input")
        return [read_item(self) for _ in range(length)]

    def read_option(self, read_item: Callable[["BcsReader"], T]) -> Optional[T]:
        tag = self.read(1)[0]
        if tag == 0:
            return None
        if tag == 1:
            return read_item(self)
        raise BcsDecodeError(f"invalid option tag 0x{tag:02x}")


def decode_all(data: BytesLike, read_value: Callable[[BcsReader], T]) -> T:
    """Decode exactly one value from `data`, rejecting trailing bytes."""
    r = BcsReader(data)
    value = read_value(r)
    r.finish()
    return value


__all__ = [
    "BcsEncodeError",
    "BcsDecodeError",
    "BcsWriter",
    "BcsReader",
    "decode_all",
]
