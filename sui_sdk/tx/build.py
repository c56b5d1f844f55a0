"""
sui_sdk.tx.build
================

`TransactionBuilder` accumulates commands for one sender and produces an
immutable `TransactionData`.

Design notes
------------
- Inputs keep construction order. Object inputs naming the same object id are
  shared (one input, referenced by index); pure inputs are appended as given,
  never reordered or deduplicated.
- Plain Python values passed to `move_call` are BCS-encoded against the
  declared parameter type when a normalized signature is supplied, and against
  an inferred type otherwise (see `sui_sdk.types.move.infer_type_tag`).
- Every check runs locally, before any network access, and raises
  `InvalidTransaction(reason, detail)`.

Examples
--------
    from sui_sdk.tx.build import TransactionBuilder

    b = TransactionBuilder(sender)
    b.transfer_object(obj_ref, recipient)
    b.set_gas(gas_ref, budget=1_000, price=1)
    tx = b.build()

    b = TransactionBuilder(sender)
    coin = b.split_coins(GAS_COIN, [500])
    b.move_call("0x2::pay::keep", [coin[0]])
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..errors import InvalidTransaction, InvalidTransactionReason as R
from ..types.core import (ZERO_ADDRESS, ObjectRef, SharedObjectRef,
                          is_address_like, normalize_address)
from ..types.move import (MoveFunctionSignature, MoveTypeError, TypeTag,
                          encode_pure, is_pure_type, parse_type_tag)
from .data import (GAS_COIN, Argument, CallArg, Command, GasData, MakeMoveVec,
                   MergeCoins, MoveCall, OwnedObjectArg, ProgrammableTransaction,
                   Publish, PureArg, SplitCoins, TransactionData, TransferObjects)

MAX_U64 = (1 << 64) - 1
MAX_INPUTS = 2048
MAX_COMMANDS = 1024

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ObjectLike = Union[ObjectRef, SharedObjectRef, OwnedObjectArg]
ArgLike = Any  # Argument | ObjectLike | PureArg | plain value | list of those

__all__ = ["TransactionBuilder", "parse_target", "MAX_INPUTS", "MAX_COMMANDS"]


def parse_target(target: str) -> tuple[str, str, str]:
    """'0xPKG::module::function' -> (package, module, function)."""
    parts = target.split("::") if isinstance(target, str) else []
    if len(parts) != 3 or not is_address_like(parts[0]):
        raise InvalidTransaction(R.INVALID_TARGET, f"expected 0xPKG::module::function, got {target!r}")
    pkg, module, function = parts
    if not _IDENT_RE.match(module) or not _IDENT_RE.match(function):
        raise InvalidTransaction(R.INVALID_TARGET, f"invalid module or function name in {target!r}")
    return normalize_address(pkg), module, function


def _is_object_like(v: Any) -> bool:
    return isinstance(v, (ObjectRef, SharedObjectRef, OwnedObjectArg))


class TransactionBuilder:
    def __init__(self, sender: str, *, max_inputs: int = MAX_INPUTS) -> None:
        self.sender = self._address(sender, "sender")
        self.max_inputs = max_inputs
        self._inputs: List[CallArg] = []
        self._object_inputs: Dict[str, int] = {}
        self._commands: List[Command] = []
        self._gas_payment: tuple[ObjectRef, ...] = ()
        self._gas_budget: Optional[int] = None
        self._gas_price: Optional[int] = None
        self._gas_owner: Optional[str] = None
        self._expiration: Optional[int] = None

    # ------------------------------------------------------------------ inputs

    @property
    def inputs(self) -> tuple[CallArg, ...]:
        return tuple(self._inputs)

    @property
    def commands(self) -> tuple[Command, ...]:
        return tuple(self._commands)

    @property
    def object_ids(self) -> tuple[str, ...]:
        """Ids of every object input, in input order."""
        return tuple(self._object_inputs)

    def _push_input(self, arg: CallArg) -> Argument:
        if len(self._inputs) >= self.max_inputs:
            raise InvalidTransaction(R.TOO_MANY_INPUTS, f"more than {self.max_inputs} inputs")
        self._inputs.append(arg)
        return Argument.input(len(self._inputs) - 1)

    def pure(self, value: Any, type_tag: Union[TypeTag, str, None] = None) -> Argument:
        """Add a pure input (always a new input, even for equal values)."""
        if isinstance(value, PureArg):
            return self._push_input(value)
        tag = self._type_tag(type_tag) if type_tag is not None else None
        try:
            return self._push_input(PureArg(encode_pure(value, tag)))
        except MoveTypeError as e:
            raise InvalidTransaction(R.ARGUMENT_TYPE_MISMATCH, str(e)) from e

    def object(self, obj: ObjectLike) -> Argument:
        """Add an object input, sharing the input slot with earlier uses of the same id."""
        if isinstance(obj, OwnedObjectArg):
            obj = obj.ref
        if isinstance(obj, ObjectRef):
            new: CallArg = OwnedObjectArg(obj)
            oid = obj.object_id
        elif isinstance(obj, SharedObjectRef):
            new = obj
            oid = obj.object_id
        else:
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"not an object reference: {obj!r}")

        idx = self._object_inputs.get(oid)
        if idx is None:
            arg = self._push_input(new)
            self._object_inputs[oid] = arg.index
            return arg

        existing = self._inputs[idx]
        if existing == new:
            return Argument.input(idx)
        if isinstance(existing, SharedObjectRef) and isinstance(new, SharedObjectRef):
            if existing.initial_shared_version != new.initial_shared_version:
                raise InvalidTransaction(
                    R.INVALID_ARGUMENT, f"conflicting initial shared versions for {oid}"
                )
            # mutable use wins over read-only use of the same shared object
            self._inputs[idx] = SharedObjectRef(
                oid, existing.initial_shared_version, existing.mutable or new.mutable
            )
            return Argument.input(idx)
        raise InvalidTransaction(R.INVALID_ARGUMENT, f"conflicting references to object {oid}")

    # ---------------------------------------------------------------- commands

    def _push_command(self, cmd: Command) -> Argument:
        if len(self._commands) >= MAX_COMMANDS:
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"more than {MAX_COMMANDS} commands")
        self._commands.append(cmd)
        return Argument.result(len(self._commands) - 1)

    def move_call(
        self,
        target: str,
        arguments: Sequence[ArgLike] = (),
        type_arguments: Sequence[Union[TypeTag, str]] = (),
        signature: Union[MoveFunctionSignature, Mapping[str, Any], None] = None,
    ) -> Argument:
        """
        Call a Move function. `signature` (normalized, as returned by
        `sui_getNormalizedMoveFunction`) enables arity and type checks and
        typed encoding of plain values.
        """
        package, module, function = parse_target(target)
        type_args = tuple(self._type_tag(t) for t in type_arguments)
        arguments = list(arguments)

        if signature is not None and not isinstance(signature, MoveFunctionSignature):
            try:
                signature = MoveFunctionSignature.from_rpc(signature)
            except (MoveTypeError, KeyError, TypeError) as e:
                raise InvalidTransaction(R.INVALID_ARGUMENT, f"unusable signature: {e}") from e

        if signature is None:
            args = tuple(self._argument(v) for v in arguments)
        else:
            if len(type_args) != signature.type_parameter_count:
                raise InvalidTransaction(
                    R.TYPE_ARGUMENT_COUNT_MISMATCH,
                    f"{target} takes {signature.type_parameter_count} type arguments, got {len(type_args)}",
                )
            if len(arguments) != signature.arity:
                raise InvalidTransaction(
                    R.ARGUMENT_COUNT_MISMATCH,
                    f"{target} takes {signature.arity} arguments, got {len(arguments)}",
                )
            typed = []
            for i, (value, param) in enumerate(zip(arguments, signature.parameters)):
                try:
                    tag = param.to_type_tag(type_args)
                except MoveTypeError as e:
                    raise InvalidTransaction(R.TYPE_ARGUMENT_COUNT_MISMATCH, str(e)) from e
                typed.append(self._typed_argument(value, tag, i))
            args = tuple(typed)

        return self._push_command(MoveCall(package, module, function, type_args, args))

    def transfer_objects(self, objects: Sequence[ArgLike], recipient: Union[str, Argument]) -> None:
        if not objects:
            raise InvalidTransaction(R.INVALID_ARGUMENT, "transfer_objects needs at least one object")
        objs = tuple(self._object_argument(o) for o in objects)
        if isinstance(recipient, Argument):
            to = self._check_argument(recipient)
        else:
            to = self.pure(self._address(recipient, "recipient"), TypeTag("address"))
        self._push_command(TransferObjects(objs, to))

    def transfer_object(self, obj: ArgLike, recipient: Union[str, Argument]) -> None:
        self.transfer_objects([obj], recipient)

    def split_coins(self, coin: ArgLike, amounts: Sequence[Union[int, Argument]]) -> Argument:
        """Split `amounts` off `coin`; index the result for each new coin."""
        if not amounts:
            raise InvalidTransaction(R.INVALID_ARGUMENT, "split_coins needs at least one amount")
        src = self._object_argument(coin)
        amts = tuple(
            self._check_argument(a) if isinstance(a, Argument) else self._amount(a) for a in amounts
        )
        return self._push_command(SplitCoins(src, amts))

    def merge_coins(self, destination: ArgLike, sources: Sequence[ArgLike]) -> Argument:
        if not sources:
            raise InvalidTransaction(R.INVALID_ARGUMENT, "merge_coins needs at least one source")
        dest = self._object_argument(destination)
        srcs = tuple(self._object_argument(s) for s in sources)
        return self._push_command(MergeCoins(dest, srcs))

    def transfer_sui(self, recipient: str, amount: Optional[int] = None) -> None:
        """Send `amount` out of the gas coin, or the whole gas coin when `amount` is None."""
        if amount is None:
            self.transfer_objects([GAS_COIN], recipient)
            return
        coin = self.split_coins(GAS_COIN, [amount])
        self.transfer_objects([coin[0]], recipient)

    def publish(self, modules: Sequence[bytes], dependencies: Sequence[str]) -> Argument:
        """Publish compiled modules; the result is the package UpgradeCap."""
        if not modules:
            raise InvalidTransaction(R.INVALID_ARGUMENT, "publish needs at least one module")
        deps = tuple(self._address(d, "dependency") for d in dependencies)
        return self._push_command(Publish(tuple(bytes(m) for m in modules), deps))

    def make_move_vec(
        self, elements: Sequence[ArgLike], type_tag: Union[TypeTag, str, None] = None
    ) -> Argument:
        tag = self._type_tag(type_tag) if type_tag is not None else None
        if not elements and tag is None:
            raise InvalidTransaction(R.INVALID_ARGUMENT, "an empty vector needs an element type")
        pure_elements = tag is not None and is_pure_type(tag)
        args = []
        for e in elements:
            if isinstance(e, SharedObjectRef):
                raise InvalidTransaction(
                    R.SHARED_OBJECT_IN_VECTOR, f"shared object {e.object_id} cannot be a vector element"
                )
            if isinstance(e, Argument):
                args.append(self._check_argument(e))
            elif pure_elements:
                args.append(self.pure(e, tag))
            else:
                args.append(self._object_argument(e))
        return self._push_command(MakeMoveVec(tag, tuple(args)))

    # -------------------------------------------------------------- gas & expiry

    def set_gas(
        self,
        payment: Union[ObjectRef, Sequence[ObjectRef]],
        budget: int,
        price: int,
        owner: Optional[str] = None,
    ) -> "TransactionBuilder":
        refs = (payment,) if isinstance(payment, ObjectRef) else tuple(payment)
        for r in refs:
            if not isinstance(r, ObjectRef):
                raise InvalidTransaction(R.MISSING_GAS, f"gas payment must be ObjectRefs, got {r!r}")
        self._gas_payment = refs
        self._gas_budget = budget
        self._gas_price = price
        self._gas_owner = self._address(owner, "gas owner") if owner is not None else None
        return self

    def set_expiration(self, epoch: Optional[int]) -> "TransactionBuilder":
        self._expiration = epoch
        return self

    # ------------------------------------------------------------------- build

    def build(self, current_epoch: Optional[int] = None) -> TransactionData:
        if self.sender == ZERO_ADDRESS:
            raise InvalidTransaction(R.ZERO_SENDER, "sender is the zero address")
        if not self._commands:
            raise InvalidTransaction(R.EMPTY_TRANSACTION, "no commands")
        if not self._gas_payment:
            raise InvalidTransaction(R.MISSING_GAS, "no gas payment set")
        budget = self._gas_budget
        if isinstance(budget, bool) or not isinstance(budget, int) or not 0 < budget <= MAX_U64:
            raise InvalidTransaction(R.NON_POSITIVE_GAS_BUDGET, f"gas budget {budget!r}")
        price = self._gas_price
        if isinstance(price, bool) or not isinstance(price, int) or not 0 < price <= MAX_U64:
            raise InvalidTransaction(R.INVALID_GAS_PRICE, f"gas price {price!r}")
        exp = self._expiration
        if exp is not None:
            if isinstance(exp, bool) or not isinstance(exp, int) or not 0 <= exp <= MAX_U64:
                raise InvalidTransaction(R.EXPIRATION_NOT_IN_FUTURE, f"expiration {exp!r}")
            if current_epoch is not None and exp <= current_epoch:
                raise InvalidTransaction(
                    R.EXPIRATION_NOT_IN_FUTURE,
                    f"expiration epoch {exp} is not after current epoch {current_epoch}",
                )
        for ref in self._gas_payment:
            if ref.object_id in self._object_inputs:
                raise InvalidTransaction(
                    R.GAS_OBJECT_IN_INPUTS,
                    f"gas object {ref.object_id} is also a transaction input; use GAS_COIN",
                )

        owner = self._gas_owner or self.sender
        return TransactionData(
            kind=ProgrammableTransaction(tuple(self._inputs), tuple(self._commands)),
            sender=self.sender,
            gas_data=GasData(self._gas_payment, owner, price, budget),
            expiration=exp,
        )

    # ----------------------------------------------------------------- helpers

    @staticmethod
    def _address(addr: Any, what: str) -> str:
        if not is_address_like(addr):
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"{what} is not an address: {addr!r}")
        return normalize_address(addr)

    @staticmethod
    def _type_tag(t: Union[TypeTag, str]) -> TypeTag:
        if isinstance(t, TypeTag):
            return t
        try:
            return parse_type_tag(t)
        except (MoveTypeError, ValueError, TypeError) as e:
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"bad type argument {t!r}: {e}") from e

    def _amount(self, amount: Any) -> Argument:
        if isinstance(amount, bool) or not isinstance(amount, int) or not 0 < amount <= MAX_U64:
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"amount must be a positive u64, got {amount!r}")
        return self.pure(amount, TypeTag("u64"))

    def _check_argument(self, a: Argument) -> Argument:
        if a.kind == "Input" and a.index >= len(self._inputs):
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"input {a.index} does not exist")
        if a.kind in ("Result", "NestedResult") and a.index >= len(self._commands):
            raise InvalidTransaction(R.INVALID_ARGUMENT, f"result of command {a.index} does not exist yet")
        return a

    def _object_argument(self, v: ArgLike) -> Argument:
        if isinstance(v, Argument):
            return self._check_argument(v)
        if _is_object_like(v):
            return self.object(v)
        raise InvalidTransaction(R.ARGUMENT_TYPE_MISMATCH, f"expected an object, got {v!r}")

    def _argument(self, v: ArgLike) -> Argument:
        """Untyped conversion (no signature known)."""
        if isinstance(v, Argument):
            return self._check_argument(v)
        if _is_object_like(v):
            return self.object(v)
        if isinstance(v, PureArg):
            return self._push_input(v)
        if isinstance(v, (list, tuple)) and v and all(
            _is_object_like(e) or isinstance(e, Argument) for e in v
        ):
            return self.make_move_vec(v)
        return self.pure(v)

    def _typed_argument(self, v: ArgLike, tag: TypeTag, position: int) -> Argument:
        if isinstance(v, Argument):
            return self._check_argument(v)
        if isinstance(v, PureArg):
            if not is_pure_type(tag):
                raise InvalidTransaction(
                    R.ARGUMENT_TYPE_MISMATCH, f"argument {position}: {tag} is an object, got pure bytes"
                )
            return self._push_input(v)
        if is_pure_type(tag):
            if _is_object_like(v):
                raise InvalidTransaction(
                    R.ARGUMENT_TYPE_MISMATCH, f"argument {position}: expected {tag}, got an object"
                )
            return self.pure(v, tag)
        # object-typed parameter
        if tag.kind == "vector" and isinstance(v, (list, tuple)):
            return self.make_move_vec(v, tag.inner)
        if _is_object_like(v):
            return self.object(v)
        raise InvalidTransaction(
            R.ARGUMENT_TYPE_MISMATCH, f"argument {position}: expected object of type {tag}, got {v!r}"
        )
