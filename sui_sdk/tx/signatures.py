"""
Signature collection for one transaction.

A transaction needs a signature from its sender and, when gas is sponsored,
from the gas owner too. `SignatureCollector` accumulates signatures over a
single signing digest, rejects anything that does not verify or comes from an
unexpected key, and builds an immutable SignedTransaction once every required
signer is present. Signature order follows the required signer order
(sender first, then sponsor), independent of arrival order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from ..errors import (IncompleteSignatures, InvalidTransaction,
                      InvalidTransactionReason)
from ..types.core import normalize_address
from ..wallet.keypair import KeyPair, Signature, verify
from .data import TransactionData
from .encode import SignedTransaction, signing_digest, transaction_digest

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SignerPolicy:
    """Addresses whose signatures a transaction requires, in signature order."""

    required: Tuple[str, ...]

    @staticmethod
    def for_transaction(tx_data: TransactionData) -> "SignerPolicy":
        required = [tx_data.sender]
        if tx_data.is_sponsored:
            required.append(tx_data.gas_data.owner)
        return SignerPolicy(tuple(required))

    @staticmethod
    def of(addresses: Iterable[str]) -> "SignerPolicy":
        seen = []
        for a in addresses:
            n = normalize_address(a)
            if n not in seen:
                seen.append(n)
        return SignerPolicy(tuple(seen))


class SignatureCollector:
    def __init__(self, tx_data: TransactionData, policy: Optional[SignerPolicy] = None) -> None:
        self.tx_data = tx_data
        self.policy = policy or SignerPolicy.for_transaction(tx_data)
        self.digest = signing_digest(tx_data)
        self._sigs: Dict[str, Signature] = {}

    @property
    def present(self) -> Tuple[str, ...]:
        return tuple(a for a in self.policy.required if a in self._sigs)

    @property
    def missing(self) -> Tuple[str, ...]:
        return tuple(a for a in self.policy.required if a not in self._sigs)

    @property
    def complete(self) -> bool:
        return not self.missing

    def add(self, signature: Signature) -> "SignatureCollector":
        """Add a signature; raise InvalidTransaction if it is unexpected or does not verify."""
        signer = signature.signer
        if signer not in self.policy.required:
            raise InvalidTransaction(
                InvalidTransactionReason.UNEXPECTED_SIGNER,
                f"{signer} is not a required signer",
            )
        if not verify(signature.public_key, self.digest, signature):
            raise InvalidTransaction(
                InvalidTransactionReason.INVALID_SIGNATURE,
                f"signature from {signer} does not verify",
            )
        self._sigs[signer] = signature
        log.debug("signature from %s (%d/%d)", signer, len(self._sigs), len(self.policy.required))
        return self

    def sign_with(self, keypair: KeyPair) -> "SignatureCollector":
        return self.add(keypair.sign(self.digest))

    def build(self) -> SignedTransaction:
        if self.missing:
            raise IncompleteSignatures(
                required=self.policy.required,
                present=self.present,
                digest=transaction_digest(self.tx_data),
            )
        return SignedTransaction(
            self.tx_data, tuple(self._sigs[a] for a in self.policy.required)
        )


def sign_transaction(tx_data: TransactionData, signers: Iterable[KeyPair]) -> SignedTransaction:
    """Sign `tx_data` with every key in `signers` and return the SignedTransaction."""
    collector = SignatureCollector(tx_data)
    for kp in signers:
        collector.sign_with(kp)
    return collector.build()


__all__ = ["SignerPolicy", "SignatureCollector", "sign_transaction"]
