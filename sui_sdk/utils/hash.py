from __future__ import annotations

import hashlib

import base58

from .bytes import BytesLike, ensure_bytes, to_hex

DIGEST_LENGTH = 32


def blake2b_256(data: BytesLike) -> bytes:
    """Return the 32-byte BLAKE2b digest of *data*."""
    h = hashlib.blake2b(digest_size=DIGEST_LENGTH)
    h.update(ensure_bytes(data))
    return h.digest()


def blake2b_256_hex(data: BytesLike, *, prefix: bool = True) -> str:
    return to_hex(blake2b_256(data), prefix=prefix)


class Blake2b256:
    """Streaming BLAKE2b-256 hasher."""

    __slots__ = ("_h",)

    def __init__(self) -> None:
        self._h = hashlib.blake2b(digest_size=DIGEST_LENGTH)

    def update(self, data: BytesLike) -> "Blake2b256":
        self._h.update(ensure_bytes(data))
        return self

    def digest(self) -> bytes:
        return self._h.digest()

    def hexdigest(self, *, prefix: bool = True) -> str:
        return to_hex(self._h.digest(), prefix=prefix)


# --- Base58 (digest rendering) -------------------------------------------------


def digest_to_base58(digest: BytesLike) -> str:
    raw = bytes(digest)
    if len(raw) != DIGEST_LENGTH:
        raise ValueError(f"digest must be {DIGEST_LENGTH} bytes, got {len(raw)}")
    return base58.b58encode(raw).decode("ascii")


def digest_from_base58(s: str) -> bytes:
    try:
        raw = base58.b58decode(s)
    except ValueError as e:
        raise ValueError(f"invalid base58 digest {s!r}: {e}") from e
    if len(raw) != DIGEST_LENGTH:
        raise ValueError(f"digest must decode to {DIGEST_LENGTH} bytes, got {len(raw)}")
    return raw


__all__ = [
    "DIGEST_LENGTH",
    "blake2b_256",
    "blake2b_256_hex",
    "Blake2b256",
    "digest_to_base58",
    "digest_from_base58",
]
