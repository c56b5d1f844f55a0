"""
sui_sdk.tx
==========

Transaction data model, builder, signing and submission.

- :mod:`sui_sdk.tx.data`: TransactionData and its BCS codec
- :mod:`sui_sdk.tx.build`: TransactionBuilder (programmable transactions)
- :mod:`sui_sdk.tx.encode`: intent, signing digest, transaction digest
- :mod:`sui_sdk.tx.signatures`: signature collection for sender and sponsor
- :mod:`sui_sdk.tx.send`: submit, confirm, refresh-on-stale
"""

from .build import TransactionBuilder, parse_target
from .data import (GAS_COIN, Argument, GasData, MakeMoveVec, MergeCoins,
                   MoveCall, OwnedObjectArg, ProgrammableTransaction, Publish,
                   PureArg, SplitCoins, TransactionData, TransferObjects)
from .encode import (INTENT, SignedTransaction, intent_message, signing_digest,
                     transaction_digest)
from .send import ExecutionResult, Submitter, TransactionAttempt, TxState
from .signatures import SignatureCollector, SignerPolicy, sign_transaction

__all__ = [
    # data
    "Argument",
    "GAS_COIN",
    "PureArg",
    "OwnedObjectArg",
    "MoveCall",
    "TransferObjects",
    "SplitCoins",
    "MergeCoins",
    "Publish",
    "MakeMoveVec",
    "ProgrammableTransaction",
    "GasData",
    "TransactionData",
    # build
    "TransactionBuilder",
    "parse_target",
    # encode
    "INTENT",
    "intent_message",
    "signing_digest",
    "transaction_digest",
    "SignedTransaction",
    # signatures
    "SignerPolicy",
    "SignatureCollector",
    "sign_transaction",
    # send
    "TxState",
    "TransactionAttempt",
    "ExecutionResult",
    "Submitter",
]
