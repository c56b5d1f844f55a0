"""
Core ledger types for the Python SDK.

Dataclasses here are the typed view of JSON-RPC payloads. Binary fields are
kept in the network's display form (0x-hex addresses/ids, base58 digests) and
each model offers `from_rpc_dict()` (and `to_rpc_dict()` where the SDK sends
the value back).

Nothing here performs network I/O; these are just types and converters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar

from ..utils.bytes import from_hex, to_hex
from ..utils.hash import digest_from_base58

# --- Addresses ---------------------------------------------------------------

ADDRESS_LENGTH = 32
ZERO_ADDRESS = "0x" + "00" * ADDRESS_LENGTH

_ADDR_RE = re.compile(r"^0[xX][0-9a-fA-F]{1,64}$")


def is_address_like(s: Any) -> bool:
    return isinstance(s, str) and bool(_ADDR_RE.match(s))


def normalize_address(addr: str) -> str:
    """
    Canonical address/object id rendering: '0x' + 64 lowercase hex chars.

    Short forms such as '0x2' are left-padded with zeros.
    """
    if not is_address_like(addr):
        raise ValueError(f"invalid address {addr!r}")
    return "0x" + addr[2:].lower().rjust(ADDRESS_LENGTH * 2, "0")


def address_to_bytes(addr: str) -> bytes:
    return from_hex(normalize_address(addr))


def address_from_bytes(raw: bytes) -> str:
    if len(raw) != ADDRESS_LENGTH:
        raise ValueError(f"address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return to_hex(raw)


def short_address(addr: str) -> str:
    """'0x000...02' -> '0x2' (display form used in type strings)."""
    body = normalize_address(addr)[2:].lstrip("0")
    return "0x" + (body or "0")


# --- Object references -------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ObjectRef:
    object_id: str
    version: int
    digest: str  # base58

    def __post_init__(self) -> None:
        object.__setattr__(self, "object_id", normalize_address(self.object_id))
        if self.version < 0 or self.version >= 1 << 64:
            raise ValueError(f"object version out of u64 range: {self.version}")
        digest_from_base58(self.digest)

    @property
    def digest_bytes(self) -> bytes:
        return digest_from_base58(self.digest)

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {"objectId": self.object_id, "version": str(self.version), "digest": self.digest}

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "ObjectRef":
        return ObjectRef(
            object_id=d["objectId"],
            version=int(d["version"]),
            digest=d["digest"],
        )


@dataclass(slots=True, frozen=True)
class SharedObjectRef:
    """A shared object as passed to a transaction (no digest, no current version)."""

    object_id: str
    initial_shared_version: int
    mutable: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "object_id", normalize_address(self.object_id))


class OwnerKind(str, Enum):
    ADDRESS = "AddressOwner"
    OBJECT = "ObjectOwner"
    SHARED = "Shared"
    IMMUTABLE = "Immutable"


@dataclass(slots=True, frozen=True)
class Owner:
    kind: OwnerKind
    address: Optional[str] = None
    initial_shared_version: Optional[int] = None

    @staticmethod
    def address_owner(addr: str) -> "Owner":
        return Owner(OwnerKind.ADDRESS, address=normalize_address(addr))

    @staticmethod
    def object_owner(object_id: str) -> "Owner":
        return Owner(OwnerKind.OBJECT, address=normalize_address(object_id))

    @staticmethod
    def shared(initial_shared_version: int) -> "Owner":
        return Owner(OwnerKind.SHARED, initial_shared_version=int(initial_shared_version))

    @staticmethod
    def immutable() -> "Owner":
        return Owner(OwnerKind.IMMUTABLE)

    @property
    def is_shared(self) -> bool:
        return self.kind is OwnerKind.SHARED

    def to_rpc(self) -> Any:
        if self.kind is OwnerKind.IMMUTABLE:
            return "Immutable"
        if self.kind is OwnerKind.SHARED:
            return {"Shared": {"initial_shared_version": self.initial_shared_version}}
        return {self.kind.value: self.address}

    @staticmethod
    def from_rpc(v: Any) -> "Owner":
        if v == "Immutable":
            return Owner.immutable()
        if isinstance(v, Mapping) and len(v) == 1:
            (key, val), = v.items()
            if key == "AddressOwner":
                return Owner.address_owner(val)
            if key == "ObjectOwner":
                return Owner.object_owner(val)
            if key == "Shared":
                return Owner.shared(int(val["initial_shared_version"]))
        raise ValueError(f"unrecognized owner shape: {v!r}")


@dataclass(slots=True, frozen=True)
class ObjectInfo:
    ref: ObjectRef
    owner: Optional[Owner] = None
    type: Optional[str] = None
    content: Optional[Dict[str, Any]] = None

    @property
    def object_id(self) -> str:
        return self.ref.object_id

    @property
    def version(self) -> int:
        return self.ref.version

    @property
    def fields(self) -> Dict[str, Any]:
        if not self.content:
            return {}
        return dict(self.content.get("fields") or {})

    @property
    def balance(self) -> Optional[int]:
        """Coin balance when the object is a coin with visible content."""
        bal = self.fields.get("balance")
        return int(bal) if bal is not None else None

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "ObjectInfo":
        owner = d.get("owner")
        return ObjectInfo(
            ref=ObjectRef.from_rpc_dict(d),
            owner=Owner.from_rpc(owner) if owner is not None else None,
            type=d.get("type"),
            content=d.get("content"),
        )


# --- Effects -----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class GasCostSummary:
    computation_cost: int = 0
    storage_cost: int = 0
    storage_rebate: int = 0
    non_refundable_storage_fee: int = 0

    @property
    def net(self) -> int:
        return self.computation_cost + self.storage_cost - self.storage_rebate

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "GasCostSummary":
        return GasCostSummary(
            computation_cost=int(d.get("computationCost", 0)),
            storage_cost=int(d.get("storageCost", 0)),
            storage_rebate=int(d.get("storageRebate", 0)),
            non_refundable_storage_fee=int(d.get("nonRefundableStorageFee", 0)),
        )

    def to_rpc_dict(self) -> Dict[str, str]:
        return {
            "computationCost": str(self.computation_cost),
            "storageCost": str(self.storage_cost),
            "storageRebate": str(self.storage_rebate),
            "nonRefundableStorageFee": str(self.non_refundable_storage_fee),
        }


@dataclass(slots=True, frozen=True)
class OwnedObjectRef:
    owner: Owner
    reference: ObjectRef

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "OwnedObjectRef":
        return OwnedObjectRef(
            owner=Owner.from_rpc(d["owner"]),
            reference=ObjectRef.from_rpc_dict(d["reference"]),
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {"owner": self.owner.to_rpc(), "reference": self.reference.to_rpc_dict()}


@dataclass(slots=True, frozen=True)
class ExecutionEffects:
    transaction_digest: str
    success: bool
    error: Optional[str] = None
    executed_epoch: int = 0
    gas_used: GasCostSummary = field(default_factory=GasCostSummary)
    gas_object: Optional[OwnedObjectRef] = None
    created: Tuple[OwnedObjectRef, ...] = ()
    mutated: Tuple[OwnedObjectRef, ...] = ()
    unwrapped: Tuple[OwnedObjectRef, ...] = ()
    deleted: Tuple[ObjectRef, ...] = ()
    wrapped: Tuple[ObjectRef, ...] = ()
    dependencies: Tuple[str, ...] = ()

    def new_ref(self, object_id: str) -> Optional[ObjectRef]:
        """Latest reference for `object_id` written by this transaction, if any."""
        oid = normalize_address(object_id)
        for o in (*self.mutated, *self.created, *self.unwrapped):
            if o.reference.object_id == oid:
                return o.reference
        return None

    @staticmethod
    def from_rpc_dict(d: Mapping[str, Any]) -> "ExecutionEffects":
        status = d.get("status") or {}

        def owned(key: str) -> Tuple[OwnedObjectRef, ...]:
            return tuple(OwnedObjectRef.from_rpc_dict(x) for x in d.get(key) or ())

        def refs(key: str) -> Tuple[ObjectRef, ...]:
            return tuple(ObjectRef.from_rpc_dict(x) for x in d.get(key) or ())

        gas_obj = d.get("gasObject")
        return ExecutionEffects(
            transaction_digest=d["transactionDigest"],
            success=status.get("status") == "success",
            error=status.get("error"),
            executed_epoch=int(d.get("executedEpoch", 0)),
            gas_used=GasCostSummary.from_rpc_dict(d.get("gasUsed") or {}),
            gas_object=OwnedObjectRef.from_rpc_dict(gas_obj) if gas_obj else None,
            created=owned("created"),
            mutated=owned("mutated"),
            unwrapped=owned("unwrapped"),
            deleted=refs("deleted"),
            wrapped=refs("wrapped"),
            dependencies=tuple(d.get("dependencies") or ()),
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {"status": "success" if self.success else "failure"}
        if self.error is not None:
            status["error"] = self.error
        out: Dict[str, Any] = {
            "messageVersion": "v1",
            "status": status,
            "executedEpoch": str(self.executed_epoch),
            "gasUsed": self.gas_used.to_rpc_dict(),
            "transactionDigest": self.transaction_digest,
            "created": [o.to_rpc_dict() for o in self.created],
            "mutated": [o.to_rpc_dict() for o in self.mutated],
            "unwrapped": [o.to_rpc_dict() for o in self.unwrapped],
            "deleted": [r.to_rpc_dict() for r in self.deleted],
            "wrapped": [r.to_rpc_dict() for r in self.wrapped],
            "dependencies": list(self.dependencies),
        }
        if self.gas_object is not None:
            out["gasObject"] = self.gas_object.to_rpc_dict()
        return out


@dataclass(slots=True, frozen=True)
class SubmissionReceipt:
    """What the node returns on submission: the digest and, when available, effects."""

    digest: str
    effects: Optional[ExecutionEffects] = None


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    data: Tuple[T, ...]
    next_cursor: Optional[str] = None
    has_next_page: bool = False


__all__ = [
    "ADDRESS_LENGTH",
    "ZERO_ADDRESS",
    "is_address_like",
    "normalize_address",
    "address_to_bytes",
    "address_from_bytes",
    "short_address",
    "ObjectRef",
    "SharedObjectRef",
    "OwnerKind",
    "Owner",
    "ObjectInfo",
    "GasCostSummary",
    "OwnedObjectRef",
    "ExecutionEffects",
    "SubmissionReceipt",
    "Page",
]
