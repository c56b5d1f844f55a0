"""
Typed error classes for the Python SDK.

Every failure path raises a subclass of `SuiSdkError`, so callers can catch a
specific failure mode or the base class. Each error has an `outcome`:

  - Outcome.NOT_EXECUTED: the transaction definitely did not take effect
    (validation errors, rejections, failures before anything reached the node).
  - Outcome.UNKNOWN: the node may or may not have executed it; reconcile with
    the carried `digest` (e.g. `Submitter.wait_for_effects(digest)`).

Validation errors (InvalidMnemonic, InvalidDerivationPath, InvalidTransaction,
IncompleteSignatures) are caller bugs and are never retried by the SDK.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional, Tuple

__all__ = [
    "Outcome",
    "SuiSdkError",
    "InvalidMnemonic",
    "InvalidDerivationPath",
    "ObjectNotFound",
    "ObjectDeleted",
    "InsufficientGas",
    "InvalidTransactionReason",
    "InvalidTransaction",
    "IncompleteSignatures",
    "RejectionReason",
    "SubmissionRejected",
    "ConfirmationTimeout",
    "NetworkError",
    "BcsError",
    "RpcError",
    "JsonRpcCode",
    "classify_rejection",
]


class Outcome(str, Enum):
    NOT_EXECUTED = "not_executed"
    UNKNOWN = "unknown"


class SuiSdkError(Exception):
    """Base class for all SDK errors."""

    outcome: Outcome = Outcome.NOT_EXECUTED


# --- Key material ---------------------------------------------------------------


@dataclass(slots=True, eq=False)
class InvalidMnemonic(SuiSdkError):
    """Word list or checksum validation failed."""

    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"InvalidMnemonic: {self.message}"


@dataclass(slots=True, eq=False)
class InvalidDerivationPath(SuiSdkError):
    path: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"InvalidDerivationPath {self.path!r}: {self.message}"


# --- Object state ---------------------------------------------------------------


@dataclass(slots=True, eq=False)
class ObjectNotFound(SuiSdkError):
    object_id: str
    version: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        at = f" at version {self.version}" if self.version is not None else ""
        return f"ObjectNotFound: {self.object_id}{at}"


@dataclass(slots=True, eq=False)
class ObjectDeleted(SuiSdkError):
    object_id: str
    version: Optional[int] = None
    digest: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        at = f" (tombstone version {self.version})" if self.version is not None else ""
        return f"ObjectDeleted: {self.object_id}{at}"


@dataclass(slots=True, eq=False)
class InsufficientGas(SuiSdkError):
    """No coin owned by `owner` can cover `budget`."""

    owner: str
    budget: int
    best_balance: Optional[int] = None
    candidates: int = 0

    def __str__(self) -> str:  # pragma: no cover - trivial
        best = f", largest balance {self.best_balance}" if self.best_balance is not None else ""
        return (
            f"InsufficientGas: owner={self.owner} budget={self.budget} "
            f"({self.candidates} coins{best})"
        )


# --- Transaction construction ---------------------------------------------------


class InvalidTransactionReason(str, Enum):
    ZERO_SENDER = "zero_sender"
    MISSING_GAS = "missing_gas"
    NON_POSITIVE_GAS_BUDGET = "non_positive_gas_budget"
    INVALID_GAS_PRICE = "invalid_gas_price"
    EXPIRATION_NOT_IN_FUTURE = "expiration_not_in_future"
    EMPTY_TRANSACTION = "empty_transaction"
    ARGUMENT_COUNT_MISMATCH = "argument_count_mismatch"
    ARGUMENT_TYPE_MISMATCH = "argument_type_mismatch"
    TYPE_ARGUMENT_COUNT_MISMATCH = "type_argument_count_mismatch"
    SHARED_OBJECT_IN_VECTOR = "shared_object_in_vector"
    GAS_OBJECT_IN_INPUTS = "gas_object_in_inputs"
    TOO_MANY_INPUTS = "too_many_inputs"
    INVALID_TARGET = "invalid_target"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_SIGNATURE = "invalid_signature"
    UNEXPECTED_SIGNER = "unexpected_signer"


@dataclass(slots=True, eq=False)
class InvalidTransaction(SuiSdkError):
    reason: InvalidTransactionReason
    detail: str = ""

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f": {self.detail}" if self.detail else ""
        return f"InvalidTransaction[{self.reason.value}]{suffix}"


@dataclass(slots=True, eq=False)
class IncompleteSignatures(SuiSdkError):
    required: Tuple[str, ...]
    present: Tuple[str, ...]
    digest: Optional[str] = None

    @property
    def missing(self) -> Tuple[str, ...]:
        return tuple(a for a in self.required if a not in self.present)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return (
            f"IncompleteSignatures: {len(self.present)}/{len(self.required)} signed, "
            f"missing {', '.join(self.missing)}"
        )


# --- Submission -----------------------------------------------------------------


class RejectionReason(str, Enum):
    STALE_OBJECT_VERSION = "stale_object_version"
    OBJECT_LOCKED = "object_locked"
    OBJECT_NOT_FOUND = "object_not_found"
    INSUFFICIENT_GAS = "insufficient_gas"
    INVALID_SIGNATURE = "invalid_signature"
    OTHER = "other"


@dataclass(slots=True, eq=False)
class SubmissionRejected(SuiSdkError):
    """The node refused the transaction at submission time (terminal)."""

    reason: RejectionReason
    message: str
    digest: Optional[str] = None
    code: Optional[int] = None

    @property
    def is_stale(self) -> bool:
        return self.reason is RejectionReason.STALE_OBJECT_VERSION

    def __str__(self) -> str:  # pragma: no cover - trivial
        tx = f" tx={self.digest}" if self.digest else ""
        return f"SubmissionRejected[{self.reason.value}]{tx}: {self.message}"


@dataclass(slots=True, eq=False)
class ConfirmationTimeout(SuiSdkError):
    """
    No effects arrived within the confirmation window.

    The transaction was accepted and may still finalize: poll again by digest.
    """

    digest: str
    waited_s: float
    attempts: int = 1
    outcome: Outcome = Outcome.UNKNOWN

    def __str__(self) -> str:  # pragma: no cover - trivial
        return (
            f"ConfirmationTimeout: tx={self.digest} no effects after "
            f"{self.waited_s:.2f}s ({self.attempts} window(s))"
        )


@dataclass(slots=True, eq=False)
class NetworkError(SuiSdkError):
    """Transient transport failure (connection, timeout, 5xx)."""

    message: str
    digest: Optional[str] = None
    outcome: Outcome = Outcome.UNKNOWN
    attempts: int = 1
    method: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"NetworkError: {self.message}"]
        if self.method:
            parts.append(f"method={self.method}")
        if self.digest:
            parts.append(f"tx={self.digest}")
        parts.append(f"outcome={self.outcome.value} attempts={self.attempts}")
        return " ".join(parts)


class BcsError(SuiSdkError, ValueError):
    """Canonical (BCS) encoding or decoding failed."""


# --- JSON-RPC -------------------------------------------------------------------


class JsonRpcCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000
    TRANSACTION_EXECUTION_ERROR = -32002


_KNOWN_CODES = frozenset(c.value for c in JsonRpcCode)


@dataclass(slots=True, eq=False)
class RpcError(SuiSdkError):
    """The node answered with a JSON-RPC error object."""

    method: Optional[str]
    code: int
    message: str
    data: Optional[Any] = None
    request_id: Optional[Any] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        extra = {"id": self.request_id, "http": self.http_status, "data": self.data}
        tail = "".join(f" {k}={v!r}" for k, v in extra.items() if v is not None)
        return f"{self.method or 'rpc'} failed ({self.code}): {self.message}{tail}"

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        return JsonRpcCode(self.code) if self.code in _KNOWN_CODES else None

    @classmethod
    def from_response(
        cls,
        error: Any,
        *,
        method: Optional[str] = None,
        request_id: Optional[Any] = None,
        http_status: Optional[int] = None,
    ) -> "RpcError":
        """Build from the `error` member of a response; tolerates non-object errors."""
        if not isinstance(error, dict):
            error = {"message": str(error)}
        return cls(
            method=method,
            code=int(error.get("code", JsonRpcCode.SERVER_ERROR)),
            message=str(error.get("message", "unknown JSON-RPC error")),
            data=error.get("data"),
            request_id=request_id,
            http_status=http_status,
        )


# Node error strings that identify why a submission was refused. Order matters:
# the first matching pattern wins.
_REJECTION_PATTERNS: Tuple[Tuple[RejectionReason, "re.Pattern[str]"], ...] = (
    (
        RejectionReason.STALE_OBJECT_VERSION,
        re.compile(
            r"ObjectVersionUnavailableForConsumption|not available for consumption"
            r"|stale object|version mismatch|object version .* is not the latest",
            re.IGNORECASE,
        ),
    ),
    (
        RejectionReason.OBJECT_LOCKED,
        re.compile(r"ObjectLockConflict|already locked|equivocat", re.IGNORECASE),
    ),
    (
        RejectionReason.INSUFFICIENT_GAS,
        re.compile(r"InsufficientGas|GasBalanceTooLow|gas budget .* too low", re.IGNORECASE),
    ),
    (
        RejectionReason.INVALID_SIGNATURE,
        re.compile(r"signature", re.IGNORECASE),
    ),
    (
        RejectionReason.OBJECT_NOT_FOUND,
        re.compile(r"ObjectNotFound|Could not find the referenced object|deleted", re.IGNORECASE),
    ),
)


def classify_rejection(message: str) -> RejectionReason:
    """Map a node rejection message to a RejectionReason."""
    for reason, pattern in _REJECTION_PATTERNS:
        if pattern.search(message or ""):
            return reason
    return RejectionReason.OTHER
