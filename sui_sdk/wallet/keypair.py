"""
sui_sdk.wallet.keypair
======================

Ed25519 key pairs, serialized signatures and address derivation.

- Keys come from `cryptography`'s Ed25519 implementation. The private key is
  held inside the KeyPair and never exported, printed or serialized.
- Ed25519 is deterministic: the same key and message always give the same
  signature.
- A serialized signature is `flag || signature(64) || public_key(32)` where
  flag 0x00 identifies Ed25519; it is base64-encoded on the RPC wire.
- An address is `blake2b-256(flag || public_key)` rendered as 0x-hex.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ..errors import InvalidDerivationPath
from ..utils.bytes import BytesLike, from_b64, to_b64, to_hex
from ..utils.hash import blake2b_256
from .derivation import DEFAULT_PATH, DerivationPath, derive_ed25519_private_key
from .mnemonic import generate_mnemonic, mnemonic_to_seed

ED25519_FLAG = 0x00
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
SERIALIZED_SIGNATURE_LENGTH = 1 + SIGNATURE_LENGTH + PUBLIC_KEY_LENGTH

__all__ = [
    "ED25519_FLAG",
    "KeyPair",
    "Signature",
    "address_from_public_key",
    "sign",
    "verify",
    "derive_keypair",
    "generate_keypair",
]


def address_from_public_key(public_key: BytesLike) -> str:
    pk = bytes(public_key)
    if len(pk) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"Ed25519 public key must be {PUBLIC_KEY_LENGTH} bytes")
    return to_hex(blake2b_256(bytes([ED25519_FLAG]) + pk))


@dataclass(slots=True, frozen=True)
class Signature:
    """A serialized user signature: scheme flag, raw signature and signer public key."""

    signature: bytes
    public_key: bytes
    flag: int = ED25519_FLAG

    def __post_init__(self) -> None:
        if self.flag != ED25519_FLAG:
            raise ValueError(f"unsupported signature scheme flag 0x{self.flag:02x}")
        if len(self.signature) != SIGNATURE_LENGTH:
            raise ValueError(f"signature must be {SIGNATURE_LENGTH} bytes")
        if len(self.public_key) != PUBLIC_KEY_LENGTH:
            raise ValueError(f"public key must be {PUBLIC_KEY_LENGTH} bytes")

    @property
    def signer(self) -> str:
        """Address of the signing key."""
        return address_from_public_key(self.public_key)

    def to_bytes(self) -> bytes:
        return bytes([self.flag]) + self.signature + self.public_key

    @staticmethod
    def from_bytes(raw: BytesLike) -> "Signature":
        b = bytes(raw)
        if len(b) != SERIALIZED_SIGNATURE_LENGTH:
            raise ValueError(
                f"serialized signature must be {SERIALIZED_SIGNATURE_LENGTH} bytes, got {len(b)}"
            )
        return Signature(flag=b[0], signature=b[1:65], public_key=b[65:])

    def to_b64(self) -> str:
        return to_b64(self.to_bytes())

    @staticmethod
    def from_b64(s: str) -> "Signature":
        return Signature.from_bytes(from_b64(s))


class KeyPair:
    """
    Ed25519 signing key plus its public key and address.

    Immutable and safe to share between tasks. Equality compares public keys.
    """

    __slots__ = ("_sk", "_pk")

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._sk = private_key
        self._pk = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @classmethod
    def from_private_bytes(cls, raw: bytes) -> "KeyPair":
        if len(raw) != 32:
            raise ValueError("Ed25519 private key must be 32 bytes")
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(raw)))

    @property
    def public_key(self) -> bytes:
        return self._pk

    @property
    def public_key_hex(self) -> str:
        return to_hex(self._pk)

    @property
    def public_key_b64(self) -> str:
        return to_b64(self._pk)

    @property
    def address(self) -> str:
        return address_from_public_key(self._pk)

    def sign(self, message: BytesLike) -> Signature:
        return Signature(signature=self._sk.sign(bytes(message)), public_key=self._pk)

    def verify(self, message: BytesLike, signature: Union[Signature, bytes]) -> bool:
        return verify(self._pk, message, signature)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPair):
            return NotImplemented
        return hmac.compare_digest(self._pk, other._pk)

    def __hash__(self) -> int:
        return hash(self._pk)

    def __repr__(self) -> str:
        return f"KeyPair(address={self.address})"

    def __reduce__(self):  # pragma: no cover - guard
        raise TypeError("KeyPair cannot be pickled")


def sign(keypair: KeyPair, digest: BytesLike) -> Signature:
    return keypair.sign(digest)


def verify(public_key: BytesLike, digest: BytesLike, signature: Union[Signature, BytesLike]) -> bool:
    """
    Check `signature` over `digest` against `public_key`.

    `signature` may be a Signature, its 97-byte serialization or a raw 64-byte
    signature. Returns False for any mismatch or malformed input; never raises.
    """
    try:
        pk = bytes(public_key)
        if isinstance(signature, Signature):
            if not hmac.compare_digest(signature.public_key, pk):
                return False
            raw_sig = signature.signature
        else:
            raw = bytes(signature)
            if len(raw) == SERIALIZED_SIGNATURE_LENGTH:
                parsed = Signature.from_bytes(raw)
                if not hmac.compare_digest(parsed.public_key, pk):
                    return False
                raw_sig = parsed.signature
            else:
                raw_sig = raw
        Ed25519PublicKey.from_public_bytes(pk).verify(raw_sig, bytes(digest))
        return True
    except (InvalidSignature, ValueError, TypeError):
        return False


def derive_keypair(
    mnemonic: str,
    path: Union[DerivationPath, str] = DEFAULT_PATH,
    passphrase: str = "",
) -> KeyPair:
    """
    Deterministically derive the key pair at `path` from `mnemonic`.

    Raises InvalidMnemonic or InvalidDerivationPath.
    """
    if isinstance(path, str):
        path = DerivationPath.parse(path)
    elif not isinstance(path, DerivationPath):
        raise InvalidDerivationPath(
            repr(path), f"expected a path string or DerivationPath, got {type(path).__name__}"
        )
    seed = mnemonic_to_seed(mnemonic, passphrase)
    return KeyPair.from_private_bytes(derive_ed25519_private_key(seed, path.indices))


def generate_keypair(
    num_words: int = 24,
    path: Union[DerivationPath, str] = DEFAULT_PATH,
    passphrase: str = "",
) -> Tuple[KeyPair, str]:
    """Create a fresh mnemonic and return (key pair at `path`, mnemonic)."""
    phrase = generate_mnemonic(num_words)
    return derive_keypair(phrase, path, passphrase), phrase
