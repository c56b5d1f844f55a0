"""
SLIP-0010 Ed25519 key derivation and derivation paths.

Ed25519 under SLIP-0010 supports hardened children only:

    master:  I = HMAC-SHA512(key=b"ed25519 seed", msg=seed)
    child:   I = HMAC-SHA512(key=chain_code, msg=0x00 || k_par || ser32(i + 2^31))
    k = I[:32], chain_code = I[32:]

Accounts live under m/44'/784'/{account}'/{change}'/{address_index}'.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Iterable, Tuple

from ..errors import InvalidDerivationPath

HARDENED_OFFSET = 0x80000000
PURPOSE = 44
COIN_TYPE = 784

_ED25519_CURVE_KEY = b"ed25519 seed"
_SEGMENT_RE = re.compile(r"^(\d+)(['hH]?)$")


@dataclass(slots=True, frozen=True)
class DerivationPath:
    account: int = 0
    change: int = 0
    address_index: int = 0

    def __post_init__(self) -> None:
        for name in ("account", "change", "address_index"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v < HARDENED_OFFSET:
                raise InvalidDerivationPath(
                    str(v), f"{name} must be an integer in [0, 2^31), got {v!r}"
                )

    @staticmethod
    def parse(path: str) -> "DerivationPath":
        """Parse "m/44'/784'/a'/c'/i'". Every segment must be hardened."""
        if not isinstance(path, str):
            raise InvalidDerivationPath(
                repr(path), f"expected a path string, got {type(path).__name__}"
            )
        parts = path.strip().split("/")
        if not parts or parts[0] != "m":
            raise InvalidDerivationPath(path, "must start with 'm'")
        segments = parts[1:]
        if len(segments) != 5:
            raise InvalidDerivationPath(path, f"expected 5 segments, got {len(segments)}")
        values = []
        for seg in segments:
            m = _SEGMENT_RE.match(seg)
            if not m:
                raise InvalidDerivationPath(path, f"malformed segment {seg!r}")
            if not m.group(2):
                raise InvalidDerivationPath(path, f"segment {seg!r} is not hardened")
            value = int(m.group(1))
            if value >= HARDENED_OFFSET:
                raise InvalidDerivationPath(path, f"index {value} is >= 2^31")
            values.append(value)
        if values[0] != PURPOSE or values[1] != COIN_TYPE:
            raise InvalidDerivationPath(path, f"must be rooted at m/{PURPOSE}'/{COIN_TYPE}'")
        return DerivationPath(values[2], values[3], values[4])

    @property
    def indices(self) -> Tuple[int, ...]:
        """Hardened child indices, in derivation order."""
        return tuple(
            i + HARDENED_OFFSET
            for i in (PURPOSE, COIN_TYPE, self.account, self.change, self.address_index)
        )

    def __str__(self) -> str:
        return f"m/{PURPOSE}'/{COIN_TYPE}'/{self.account}'/{self.change}'/{self.address_index}'"


DEFAULT_PATH = DerivationPath(0, 0, 0)


def master_key(seed: bytes) -> Tuple[bytes, bytes]:
    """Return (private_key, chain_code) for the SLIP-0010 Ed25519 master node."""
    if not 16 <= len(seed) <= 64:
        raise ValueError("seed must be between 16 and 64 bytes")
    i = hmac.new(_ED25519_CURVE_KEY, seed, hashlib.sha512).digest()
    return i[:32], i[32:]


def child_key(key: bytes, chain_code: bytes, index: int) -> Tuple[bytes, bytes]:
    """Hardened child derivation. `index` must already include the hardened offset."""
    if not HARDENED_OFFSET <= index <= 0xFFFFFFFF:
        raise ValueError("Ed25519 derivation supports hardened indices only")
    data = b"\x00" + key + index.to_bytes(4, "big")
    i = hmac.new(chain_code, data, hashlib.sha512).digest()
    return i[:32], i[32:]


def derive_ed25519_private_key(seed: bytes, indices: Iterable[int]) -> bytes:
    """Walk `indices` (hardened) from the master node and return the 32-byte private key."""
    key, chain = master_key(seed)
    for index in indices:
        key, chain = child_key(key, chain, index)
    return key


__all__ = [
    "HARDENED_OFFSET",
    "DerivationPath",
    "DEFAULT_PATH",
    "master_key",
    "child_key",
    "derive_ed25519_private_key",
]
