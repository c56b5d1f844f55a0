"""
Sui SDK for Python
Convenience exports for the most common client APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import SDKConfig  # noqa: F401
from .errors import (  # noqa: F401
    ConfirmationTimeout,
    IncompleteSignatures,
    InsufficientGas,
    InvalidDerivationPath,
    InvalidMnemonic,
    InvalidTransaction,
    NetworkError,
    ObjectDeleted,
    ObjectNotFound,
    Outcome,
    RpcError,
    SubmissionRejected,
    SuiSdkError,
)

# RPC
from .rpc.http import AsyncRpcClient  # noqa: F401
from .rpc.facade import NodeApi, SuiRpcFacade  # noqa: F401

# Wallet
from .wallet.mnemonic import generate_mnemonic, mnemonic_to_seed, validate_mnemonic  # noqa: F401
from .wallet.derivation import DerivationPath  # noqa: F401
from .wallet.keypair import KeyPair, Signature, derive_keypair, sign, verify  # noqa: F401
from .wallet.wallet import Wallet  # noqa: F401

# Types
from .types.core import ObjectRef, SharedObjectRef, ExecutionEffects  # noqa: F401

# Tx helpers
from .tx.build import TransactionBuilder  # noqa: F401
from .tx.data import GAS_COIN, TransactionData  # noqa: F401
from .tx.encode import SignedTransaction, signing_digest, transaction_digest  # noqa: F401
from .tx.signatures import SignatureCollector, sign_transaction  # noqa: F401
from .tx.send import ExecutionResult, Submitter, TxState  # noqa: F401

# Objects
from .objects.resolver import ObjectResolver  # noqa: F401

# High-level client
from .client import SuiClient  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "SDKConfig",
    "SuiSdkError", "Outcome",
    "InvalidMnemonic", "InvalidDerivationPath", "InvalidTransaction", "IncompleteSignatures",
    "ObjectNotFound", "ObjectDeleted", "InsufficientGas",
    "SubmissionRejected", "ConfirmationTimeout", "NetworkError", "RpcError",
    # RPC
    "AsyncRpcClient", "NodeApi", "SuiRpcFacade",
    # Wallet
    "generate_mnemonic", "mnemonic_to_seed", "validate_mnemonic",
    "DerivationPath", "KeyPair", "Signature", "derive_keypair", "sign", "verify",
    "Wallet",
    # Types
    "ObjectRef", "SharedObjectRef", "ExecutionEffects",
    # Tx
    "TransactionBuilder", "GAS_COIN", "TransactionData",
    "SignedTransaction", "signing_digest", "transaction_digest",
    "SignatureCollector", "sign_transaction",
    "ExecutionResult", "Submitter", "TxState",
    # Objects
    "ObjectResolver",
    # Client
    "SuiClient",
]
