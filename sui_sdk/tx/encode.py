"""
sui_sdk.tx.encode
=================

Signing and digest rules for transactions.

This module provides:
- `INTENT` → the 3-byte intent prefix (scope TransactionData, version 0, app 0)
- `signing_digest(tx)` → blake2b-256(intent || bcs(tx)), the bytes a key signs
- `transaction_digest(tx)` → base58(blake2b-256(b"TransactionData::" || bcs(tx)))
- `SignedTransaction` → tx data plus an immutable tuple of signatures, with a
  BCS form of a one-element vector of `[IntentMessage{intent, data}, signatures]`
  and the RPC payload

Design notes
------------
* The signing digest and the transaction digest are different hashes of the
  same bytes: the first is domain-separated by the intent so a signature can
  never be replayed as some other message type; the second identifies the
  transaction at the node and is the idempotency key for resubmission.
* `TransactionData` may be passed as the dataclass or as its BCS bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from ..bcs.codec import BcsDecodeError, BcsReader, BcsWriter, decode_all
from ..utils.bytes import BytesLike, to_b64
from ..utils.hash import blake2b_256, digest_to_base58
from ..wallet.keypair import Signature
from .data import TX_DIGEST_PREFIX, TransactionData

INTENT_SCOPE_TRANSACTION_DATA = 0
INTENT_VERSION_V0 = 0
INTENT_APP_ID_SUI = 0
INTENT = bytes([INTENT_SCOPE_TRANSACTION_DATA, INTENT_VERSION_V0, INTENT_APP_ID_SUI])

TxLike = Union[TransactionData, BytesLike]


def _tx_bytes(tx: TxLike) -> bytes:
    if isinstance(tx, TransactionData):
        return tx.to_bytes()
    return bytes(tx)


def intent_message(tx: TxLike) -> bytes:
    """BCS of IntentMessage{intent, data}."""
    return INTENT + _tx_bytes(tx)


def signing_digest(tx: TxLike) -> bytes:
    """32-byte digest that signers sign."""
    return blake2b_256(intent_message(tx))


def transaction_digest(tx: TxLike) -> str:
    """Base58 transaction digest (the node-side idempotency key)."""
    return digest_to_base58(blake2b_256(TX_DIGEST_PREFIX + _tx_bytes(tx)))


def rpc_payload(tx_bytes: BytesLike, signatures: Sequence[Signature]) -> Tuple[str, List[str]]:
    """(base64 tx bytes, [base64 serialized signatures]) as the RPC expects them."""
    return to_b64(tx_bytes), [s.to_b64() for s in signatures]


@dataclass(slots=True, frozen=True)
class SignedTransaction:
    tx_data: TransactionData
    signatures: Tuple[Signature, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "signatures", tuple(self.signatures))

    @property
    def tx_bytes(self) -> bytes:
        return self.tx_data.to_bytes()

    @property
    def digest(self) -> str:
        return transaction_digest(self.tx_data)

    @property
    def signers(self) -> Tuple[str, ...]:
        return tuple(s.signer for s in self.signatures)

    def to_bytes(self) -> bytes:
        w = BcsWriter()
        # SenderSignedData is a vector holding exactly one signed transaction
        w.write_uleb128(1)
        w.write_fixed_bytes(INTENT, len(INTENT))
        self.tx_data.write(w)
        w.write_seq(self.signatures, lambda ww, s: ww.write_bytes(s.to_bytes()))
        return w.to_bytes()

    @staticmethod
    def read(r: BcsReader) -> "SignedTransaction":
        count = r.read_uleb128()
        if count != 1:
            raise BcsDecodeError(f"expected exactly one signed transaction, got {count}")
        intent = r.read_fixed_bytes(len(INTENT))
        if intent != INTENT:
            raise BcsDecodeError(f"unexpected intent {intent.hex()}")
        tx_data = TransactionData.read(r)
        sigs = r.read_seq(_read_signature)
        return SignedTransaction(tx_data, tuple(sigs))

    @staticmethod
    def from_bytes(data: BytesLike) -> "SignedTransaction":
        return decode_all(data, SignedTransaction.read)

    def to_rpc_params(self) -> Tuple[str, List[str]]:
        return rpc_payload(self.tx_bytes, self.signatures)


def _read_signature(r: BcsReader) -> Signature:
    raw = r.read_bytes()
    try:
        return Signature.from_bytes(raw)
    except ValueError as e:
        raise BcsDecodeError(f"malformed signature: {e}") from e


__all__ = [
    "INTENT",
    "intent_message",
    "signing_digest",
    "transaction_digest",
    "rpc_payload",
    "SignedTransaction",
]
