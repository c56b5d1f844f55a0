"""
sui_sdk.wallet
==============

Convenience exports for wallet helpers:

- Mnemonic utilities (generate/validate, BIP-39 seed derivation).
- SLIP-0010 Ed25519 derivation paths.
- Ed25519 key pairs, signatures and addresses.
- In-memory Wallet holding derived key pairs.
"""

from .derivation import (DEFAULT_PATH, DerivationPath,
                         derive_ed25519_private_key)
from .keypair import (KeyPair, Signature, address_from_public_key,
                      derive_keypair, generate_keypair, sign, verify)
from .mnemonic import generate_mnemonic, mnemonic_to_seed, validate_mnemonic
from .wallet import Wallet

__all__ = [
    # mnemonic
    "generate_mnemonic",
    "mnemonic_to_seed",
    "validate_mnemonic",
    # derivation
    "DerivationPath",
    "DEFAULT_PATH",
    "derive_ed25519_private_key",
    # keys
    "KeyPair",
    "Signature",
    "address_from_public_key",
    "derive_keypair",
    "generate_keypair",
    "sign",
    "verify",
    # wallet
    "Wallet",
]
