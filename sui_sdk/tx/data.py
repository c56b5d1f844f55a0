"""
Transaction data model and its canonical (BCS) encoding.

Layout (variant indexes in brackets)
------------------------------------
TransactionData       V1[0] { kind, sender, gas_data, expiration }
TransactionKind       ProgrammableTransaction[0] { inputs, commands }
CallArg               Pure[0](bytes) | Object[1](ObjectArg)
ObjectArg             ImmOrOwnedObject[0](ObjectRef)
                      | SharedObject[1] { id, initial_shared_version, mutable }
Command               MoveCall[0] | TransferObjects[1] | SplitCoins[2]
                      | MergeCoins[3] | Publish[4] | MakeMoveVec[5]
Argument              GasCoin[0] | Input[1](u16) | Result[2](u16)
                      | NestedResult[3](u16, u16)
TransactionExpiration None[0] | Epoch[1](u64)
ObjectRef             (id: 32 bytes, version: u64, digest: vector<u8> of 32)
GasData               { payment: vector<ObjectRef>, owner, price: u64, budget: u64 }

Every model is a frozen dataclass of tuples, so a TransactionData never
changes after it is built; `to_bytes()` is deterministic and
`TransactionData.from_bytes(tx.to_bytes()) == tx`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Tuple, Union

from ..bcs.codec import BcsDecodeError, BcsReader, BcsWriter, decode_all
from ..types.core import (ObjectRef, SharedObjectRef, address_from_bytes,
                          address_to_bytes, normalize_address)
from ..types.move import TypeTag, read_type_tag, write_type_tag
from ..utils.bytes import BytesLike
from ..utils.hash import blake2b_256, digest_to_base58

TX_DIGEST_PREFIX = b"TransactionData::"
MAX_U16 = 0xFFFF


# --- Arguments ---------------------------------------------------------------

_ARG_VARIANTS = ("GasCoin", "Input", "Result", "NestedResult")


def _is_u16(v: Optional[int]) -> bool:
    return isinstance(v, int) and 0 <= v <= MAX_U16


@dataclass(slots=True, frozen=True)
class Argument:
    kind: str
    index: Optional[int] = None
    result_index: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind not in _ARG_VARIANTS:
            raise ValueError(f"unknown argument kind {self.kind!r}")
        if self.kind != "GasCoin" and not _is_u16(self.index):
            raise ValueError(f"{self.kind} argument needs a u16 index, got {self.index!r}")
        if self.kind == "NestedResult" and not _is_u16(self.result_index):
            raise ValueError(f"NestedResult needs a u16 result index, got {self.result_index!r}")

    @staticmethod
    def gas_coin() -> "Argument":
        return Argument("GasCoin")

    @staticmethod
    def input(index: int) -> "Argument":
        return Argument("Input", index)

    @staticmethod
    def result(index: int) -> "Argument":
        return Argument("Result", index)

    @staticmethod
    def nested_result(index: int, result_index: int) -> "Argument":
        return Argument("NestedResult", index, result_index)

    def __getitem__(self, i: int) -> "Argument":
        """`builder.split_coins(...)[0]` -> NestedResult(cmd, 0)."""
        if self.kind != "Result":
            raise TypeError("only Result arguments can be indexed")
        return Argument.nested_result(self.index, i)


GAS_COIN = Argument.gas_coin()


def _write_argument(w: BcsWriter, a: Argument) -> None:
    w.write_variant(_ARG_VARIANTS.index(a.kind))
    if a.kind != "GasCoin":
        w.write_u16(a.index)
    if a.kind == "NestedResult":
        w.write_u16(a.result_index)


def _read_argument(r: BcsReader) -> Argument:
    kind = _ARG_VARIANTS[r.read_variant(len(_ARG_VARIANTS), "Argument")]
    if kind == "GasCoin":
        return GAS_COIN
    index = r.read_u16()
    if kind == "NestedResult":
        return Argument(kind, index, r.read_u16())
    return Argument(kind, index)


# --- Inputs ------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class PureArg:
    """BCS bytes of a pure value."""

    value: bytes


@dataclass(slots=True, frozen=True)
class OwnedObjectArg:
    """An owned or immutable object passed by reference (ImmOrOwnedObject)."""

    ref: ObjectRef

    @property
    def object_id(self) -> str:
        return self.ref.object_id


CallArg = Union[PureArg, OwnedObjectArg, SharedObjectRef]


def write_object_ref(w: BcsWriter, ref: ObjectRef) -> None:
    w.write_fixed_bytes(address_to_bytes(ref.object_id), 32)
    w.write_u64(ref.version)
    w.write_bytes(ref.digest_bytes)


def read_object_ref(r: BcsReader) -> ObjectRef:
    object_id = address_from_bytes(r.read_fixed_bytes(32))
    version = r.read_u64()
    digest = r.read_bytes()
    if len(digest) != 32:
        raise BcsDecodeError(f"object digest must be 32 bytes, got {len(digest)}")
    return ObjectRef(object_id, version, digest_to_base58(digest))


def _write_call_arg(w: BcsWriter, arg: CallArg) -> None:
    if isinstance(arg, PureArg):
        w.write_variant(0).write_bytes(arg.value)
    elif isinstance(arg, OwnedObjectArg):
        w.write_variant(1).write_variant(0)
        write_object_ref(w, arg.ref)
    elif isinstance(arg, SharedObjectRef):
        w.write_variant(1).write_variant(1)
        w.write_fixed_bytes(address_to_bytes(arg.object_id), 32)
        w.write_u64(arg.initial_shared_version)
        w.write_bool(arg.mutable)
    else:
        raise TypeError(f"not a call argument: {arg!r}")


def _read_call_arg(r: BcsReader) -> CallArg:
    if r.read_variant(2, "CallArg") == 0:
        return PureArg(r.read_bytes())
    if r.read_variant(2, "ObjectArg") == 0:
        return OwnedObjectArg(read_object_ref(r))
    object_id = address_from_bytes(r.read_fixed_bytes(32))
    version = r.read_u64()
    return SharedObjectRef(object_id, version, r.read_bool())


# --- Commands ----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class MoveCall:
    package: str
    module: str
    function: str
    type_arguments: Tuple[TypeTag, ...] = ()
    arguments: Tuple[Argument, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "package", normalize_address(self.package))

    @property
    def target(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"


@dataclass(slots=True, frozen=True)
class TransferObjects:
    objects: Tuple[Argument, ...]
    address: Argument


@dataclass(slots=True, frozen=True)
class SplitCoins:
    coin: Argument
    amounts: Tuple[Argument, ...]


@dataclass(slots=True, frozen=True)
class MergeCoins:
    destination: Argument
    sources: Tuple[Argument, ...]


@dataclass(slots=True, frozen=True)
class Publish:
    modules: Tuple[bytes, ...]
    dependencies: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "dependencies", tuple(normalize_address(d) for d in self.dependencies)
        )


@dataclass(slots=True, frozen=True)
class MakeMoveVec:
    type_tag: Optional[TypeTag]
    elements: Tuple[Argument, ...]


Command = Union[MoveCall, TransferObjects, SplitCoins, MergeCoins, Publish, MakeMoveVec]
_COMMAND_TYPES = (MoveCall, TransferObjects, SplitCoins, MergeCoins, Publish, MakeMoveVec)


def _write_command(w: BcsWriter, c: Command) -> None:
    w.write_variant(_COMMAND_TYPES.index(type(c)))
    if isinstance(c, MoveCall):
        w.write_fixed_bytes(address_to_bytes(c.package), 32)
        w.write_str(c.module)
        w.write_str(c.function)
        w.write_seq(c.type_arguments, write_type_tag)
        w.write_seq(c.arguments, _write_argument)
    elif isinstance(c, TransferObjects):
        w.write_seq(c.objects, _write_argument)
        _write_argument(w, c.address)
    elif isinstance(c, SplitCoins):
        _write_argument(w, c.coin)
        w.write_seq(c.amounts, _write_argument)
    elif isinstance(c, MergeCoins):
        _write_argument(w, c.destination)
        w.write_seq(c.sources, _write_argument)
    elif isinstance(c, Publish):
        w.write_seq(c.modules, BcsWriter.write_bytes)
        w.write_seq(
            c.dependencies, lambda ww, d: ww.write_fixed_bytes(address_to_bytes(d), 32)
        )
    else:
        w.write_option(c.type_tag, write_type_tag)
        w.write_seq(c.elements, _write_argument)


def _read_command(r: BcsReader) -> Command:
    idx = r.read_variant(len(_COMMAND_TYPES), "Command")
    if idx == 0:
        package = address_from_bytes(r.read_fixed_bytes(32))
        module = r.read_str()
        function = r.read_str()
        type_args = tuple(r.read_seq(read_type_tag))
        args = tuple(r.read_seq(_read_argument))
        return MoveCall(package, module, function, type_args, args)
    if idx == 1:
        objects = tuple(r.read_seq(_read_argument))
        return TransferObjects(objects, _read_argument(r))
    if idx == 2:
        coin = _read_argument(r)
        return SplitCoins(coin, tuple(r.read_seq(_read_argument)))
    if idx == 3:
        dest = _read_argument(r)
        return MergeCoins(dest, tuple(r.read_seq(_read_argument)))
    if idx == 4:
        modules = tuple(r.read_seq(BcsReader.read_bytes))
        deps = tuple(r.read_seq(lambda rr: address_from_bytes(rr.read_fixed_bytes(32))))
        return Publish(modules, deps)
    type_tag = r.read_option(read_type_tag)
    return MakeMoveVec(type_tag, tuple(r.read_seq(_read_argument)))


# --- Transaction -------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ProgrammableTransaction:
    inputs: Tuple[CallArg, ...]
    commands: Tuple[Command, ...]


@dataclass(slots=True, frozen=True)
class GasData:
    payment: Tuple[ObjectRef, ...]
    owner: str
    price: int
    budget: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", normalize_address(self.owner))
        object.__setattr__(self, "payment", tuple(self.payment))


@dataclass(slots=True, frozen=True)
class TransactionData:
    kind: ProgrammableTransaction
    sender: str
    gas_data: GasData
    expiration: Optional[int] = None  # epoch; None = no expiration

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", normalize_address(self.sender))

    # convenience views

    @property
    def inputs(self) -> Tuple[CallArg, ...]:
        return self.kind.inputs

    @property
    def commands(self) -> Tuple[Command, ...]:
        return self.kind.commands

    @property
    def is_sponsored(self) -> bool:
        return self.gas_data.owner != self.sender

    def owned_object_refs(self) -> List[ObjectRef]:
        return [a.ref for a in self.kind.inputs if isinstance(a, OwnedObjectArg)]

    # encoding

    def write(self, w: BcsWriter) -> None:
        w.write_variant(0)  # V1
        w.write_variant(0)  # ProgrammableTransaction
        w.write_seq(self.kind.inputs, _write_call_arg)
        w.write_seq(self.kind.commands, _write_command)
        w.write_fixed_bytes(address_to_bytes(self.sender), 32)
        w.write_seq(self.gas_data.payment, write_object_ref)
        w.write_fixed_bytes(address_to_bytes(self.gas_data.owner), 32)
        w.write_u64(self.gas_data.price)
        w.write_u64(self.gas_data.budget)
        if self.expiration is None:
            w.write_variant(0)
        else:
            w.write_variant(1).write_u64(self.expiration)

    @staticmethod
    def read(r: BcsReader) -> "TransactionData":
        r.read_variant(1, "TransactionData")
        r.read_variant(1, "TransactionKind")
        inputs = tuple(r.read_seq(_read_call_arg))
        commands = tuple(r.read_seq(_read_command))
        sender = address_from_bytes(r.read_fixed_bytes(32))
        payment = tuple(r.read_seq(read_object_ref))
        owner = address_from_bytes(r.read_fixed_bytes(32))
        price = r.read_u64()
        budget = r.read_u64()
        expiration = r.read_u64() if r.read_variant(2, "TransactionExpiration") == 1 else None
        return TransactionData(
            kind=ProgrammableTransaction(inputs, commands),
            sender=sender,
            gas_data=GasData(payment, owner, price, budget),
            expiration=expiration,
        )

    def to_bytes(self) -> bytes:
        w = BcsWriter()
        self.write(w)
        return w.to_bytes()

    @staticmethod
    def from_bytes(data: BytesLike) -> "TransactionData":
        return decode_all(data, TransactionData.read)

    @property
    def digest(self) -> str:
        """Transaction digest (base58), the idempotency key at the node."""
        return digest_to_base58(blake2b_256(TX_DIGEST_PREFIX + self.to_bytes()))

    # derivation of updated copies

    def with_object_refs(self, refs: Mapping[str, ObjectRef]) -> "TransactionData":
        """Copy with owned-object inputs replaced by `refs` (keyed by object id)."""
        inputs = tuple(
            OwnedObjectArg(refs.get(a.ref.object_id, a.ref)) if isinstance(a, OwnedObjectArg) else a
            for a in self.kind.inputs
        )
        return replace(self, kind=ProgrammableTransaction(inputs, self.kind.commands))

    def with_gas_payment(self, payment: Tuple[ObjectRef, ...]) -> "TransactionData":
        return replace(self, gas_data=replace(self.gas_data, payment=tuple(payment)))


__all__ = [
    "TX_DIGEST_PREFIX",
    "Argument",
    "GAS_COIN",
    "PureArg",
    "OwnedObjectArg",
    "CallArg",
    "MoveCall",
    "TransferObjects",
    "SplitCoins",
    "MergeCoins",
    "Publish",
    "MakeMoveVec",
    "Command",
    "ProgrammableTransaction",
    "GasData",
    "TransactionData",
    "write_object_ref",
    "read_object_ref",
]
