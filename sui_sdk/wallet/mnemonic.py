"""
Mnemonic helpers (BIP-39) -> 64-byte seed.

Design notes
------------
- Generation and checksum use the `mnemonic` (Trezor) package with the English
  word list. Entropy comes from the OS CSPRNG (`secrets`), so two calls never
  share entropy.

- Seed derivation is standard BIP-39:
    PBKDF2-HMAC-SHA512(
        password = NFKD(mnemonic),
        salt     = b"mnemonic" + NFKD(passphrase),
        iter     = 2048,
        dkLen    = 64
    )  -> 64-byte seed

  The seed feeds SLIP-0010 Ed25519 derivation (see `derivation.py`), so a
  phrase restored here yields the same addresses as any other BIP-39/SLIP-0010
  wallet.
"""

from __future__ import annotations

import secrets
import unicodedata

from mnemonic import Mnemonic

from ..errors import InvalidMnemonic

# word count -> entropy bits
_STRENGTHS = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}

_WORDLIST = Mnemonic("english")


# ---------- Public API ----------


def generate_mnemonic(num_words: int = 24) -> str:
    """Create a new BIP-39 English mnemonic (12, 15, 18, 21 or 24 words)."""
    if num_words not in _STRENGTHS:
        raise ValueError(f"num_words must be one of {sorted(_STRENGTHS)}")
    entropy = secrets.token_bytes(_STRENGTHS[num_words] // 8)
    return _WORDLIST.to_mnemonic(entropy)


def normalize_mnemonic(phrase: str) -> str:
    """NFKD-normalize, lowercase and collapse whitespace."""
    words = unicodedata.normalize("NFKD", phrase).lower().split()
    return " ".join(words)


def validate_mnemonic(phrase: str) -> bool:
    """True when every word is in the list, the count is valid and the checksum matches."""
    words = normalize_mnemonic(phrase).split()
    if len(words) not in _STRENGTHS:
        return False
    return bool(_WORDLIST.check(" ".join(words)))


def check_mnemonic(phrase: str) -> str:
    """Return the normalized phrase or raise InvalidMnemonic."""
    words = normalize_mnemonic(phrase).split()
    if len(words) not in _STRENGTHS:
        raise InvalidMnemonic(f"expected 12/15/18/21/24 words, got {len(words)}")
    unknown = [w for w in words if w not in _WORDLIST.wordlist]
    if unknown:
        raise InvalidMnemonic(f"{len(unknown)} word(s) not in the English word list")
    if not _WORDLIST.check(" ".join(words)):
        raise InvalidMnemonic("checksum mismatch")
    return " ".join(words)


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """
    Validate `phrase` and convert it to the 64-byte BIP-39 seed.

    Raises InvalidMnemonic if validation fails.
    """
    return Mnemonic.to_seed(check_mnemonic(phrase), passphrase=passphrase)


__all__ = [
    "generate_mnemonic",
    "normalize_mnemonic",
    "validate_mnemonic",
    "check_mnemonic",
    "mnemonic_to_seed",
]
