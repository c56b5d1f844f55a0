"""
An in-memory wallet: one mnemonic and the key pairs derived from it.

The wallet is an ordinary object; create as many as you need. Nothing is
persisted.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from ..types.core import normalize_address
from .derivation import DEFAULT_PATH, DerivationPath
from .keypair import KeyPair, derive_keypair
from .mnemonic import check_mnemonic, generate_mnemonic

log = logging.getLogger(__name__)


class Wallet:
    __slots__ = ("_mnemonic", "_passphrase", "_keys")

    def __init__(self, mnemonic: str, passphrase: str = "") -> None:
        self._mnemonic = check_mnemonic(mnemonic)
        self._passphrase = passphrase
        self._keys: Dict[DerivationPath, KeyPair] = {}

    @classmethod
    def generate(cls, num_words: int = 24, passphrase: str = "") -> "Wallet":
        return cls(generate_mnemonic(num_words), passphrase)

    @property
    def mnemonic(self) -> str:
        return self._mnemonic

    def derive(self, path: Union[DerivationPath, str] = DEFAULT_PATH) -> KeyPair:
        """Derive (or return the cached) key pair at `path`."""
        if isinstance(path, str):
            path = DerivationPath.parse(path)
        kp = self._keys.get(path)
        if kp is None:
            kp = derive_keypair(self._mnemonic, path, self._passphrase)
            self._keys[path] = kp
            log.debug("derived %s at %s", kp.address, path)
        return kp

    def derive_account(self, account: int = 0, change: int = 0, address_index: int = 0) -> KeyPair:
        return self.derive(DerivationPath(account, change, address_index))

    def keypair_for(self, address: str) -> Optional[KeyPair]:
        """The derived key pair controlling `address`, or None."""
        target = normalize_address(address)
        for kp in self._keys.values():
            if kp.address == target:
                return kp
        return None

    def addresses(self) -> List[str]:
        return [kp.address for kp in self._keys.values()]

    def __repr__(self) -> str:
        return f"Wallet(keys={len(self._keys)})"


__all__ = ["Wallet"]
