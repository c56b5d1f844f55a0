"""
Move type tags, normalized function signatures and pure-value encoding.

This module defines:
- TypeTag / StructTag with a parser for type strings such as
  "vector<u8>" or "0x2::coin::Coin<0x2::sui::SUI>", display and BCS forms
- MoveType / MoveFunctionSignature parsed from `sui_getNormalizedMoveFunction`
  payloads, used to check and encode `move_call` arguments
- encode_pure(): BCS-encode a plain Python value against a declared type, or
  against a type inferred from the value when no signature is known

Structural checks raise MoveTypeError (a ValueError); the transaction builder
turns those into InvalidTransaction with the matching reason.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..bcs.codec import BcsEncodeError, BcsReader, BcsWriter
from .core import (address_from_bytes, address_to_bytes, is_address_like,
                   normalize_address, short_address)


class MoveTypeError(ValueError):
    pass


# --- Type tags ---------------------------------------------------------------

# BCS variant index of each TypeTag kind.
TYPE_TAG_VARIANTS: Dict[str, int] = {
    "bool": 0,
    "u8": 1,
    "u64": 2,
    "u128": 3,
    "address": 4,
    "signer": 5,
    "vector": 6,
    "struct": 7,
    "u16": 8,
    "u32": 9,
    "u256": 10,
}
_VARIANT_KINDS = {v: k for k, v in TYPE_TAG_VARIANTS.items()}

_PRIMITIVES = ("bool", "u8", "u16", "u32", "u64", "u128", "u256", "address", "signer")
_UINT_BITS = {"u8": 8, "u16": 16, "u32": 32, "u64": 64, "u128": 128, "u256": 256}

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(slots=True, frozen=True)
class StructTag:
    address: str
    module: str
    name: str
    type_params: Tuple["TypeTag", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", normalize_address(self.address))
        for ident in (self.module, self.name):
            if not _IDENT_RE.match(ident):
                raise MoveTypeError(f"invalid Move identifier {ident!r}")

    def is_(self, address: str, module: str, name: str) -> bool:
        return (
            self.address == normalize_address(address)
            and self.module == module
            and self.name == name
        )

    def __str__(self) -> str:
        base = f"{short_address(self.address)}::{self.module}::{self.name}"
        if self.type_params:
            return f"{base}<{', '.join(str(t) for t in self.type_params)}>"
        return base


@dataclass(slots=True, frozen=True)
class TypeTag:
    kind: str
    inner: Optional["TypeTag"] = None  # vector element
    struct: Optional[StructTag] = None

    def __post_init__(self) -> None:
        if self.kind not in TYPE_TAG_VARIANTS:
            raise MoveTypeError(f"unknown type tag kind {self.kind!r}")
        if (self.kind == "vector") != (self.inner is not None):
            raise MoveTypeError("vector type tags need exactly one element type")
        if (self.kind == "struct") != (self.struct is not None):
            raise MoveTypeError("struct type tags need a StructTag")

    @staticmethod
    def vector(inner: "TypeTag") -> "TypeTag":
        return TypeTag("vector", inner=inner)

    @staticmethod
    def of_struct(tag: StructTag) -> "TypeTag":
        return TypeTag("struct", struct=tag)

    @staticmethod
    def parse(s: str) -> "TypeTag":
        return parse_type_tag(s)

    def __str__(self) -> str:
        if self.kind == "vector":
            return f"vector<{self.inner}>"
        if self.kind == "struct":
            return str(self.struct)
        return self.kind


def _split_top_level_commas(s: str) -> List[str]:
    """Split on commas but ignore commas inside nested generics."""
    out: List[str] = []
    depth = 0
    buf: List[str] = []
    for ch in s:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth < 0:
                raise MoveTypeError("unbalanced '>' in type string")
        if ch == "," and depth == 0:
            out.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if depth != 0:
        raise MoveTypeError("unbalanced '<' in type string")
    out.append("".join(buf).strip())
    return out


def parse_type_tag(type_str: str) -> TypeTag:
    """Parse a Move type string into a TypeTag."""
    s = re.sub(r"\s+", "", type_str)
    if s in _PRIMITIVES:
        return TypeTag(s)
    if s.startswith("vector<") and s.endswith(">"):
        return TypeTag.vector(parse_type_tag(s[len("vector<"):-1]))
    return TypeTag.of_struct(parse_struct_tag(s))


def parse_struct_tag(type_str: str) -> StructTag:
    s = re.sub(r"\s+", "", type_str)
    params: Tuple[TypeTag, ...] = ()
    lt = s.find("<")
    if lt != -1:
        if not s.endswith(">"):
            raise MoveTypeError(f"malformed struct type {type_str!r}")
        params = tuple(parse_type_tag(p) for p in _split_top_level_commas(s[lt + 1:-1]))
        s = s[:lt]
    parts = s.split("::")
    if len(parts) != 3 or not is_address_like(parts[0]):
        raise MoveTypeError(f"malformed struct type {type_str!r}")
    return StructTag(parts[0], parts[1], parts[2], params)


def write_type_tag(w: BcsWriter, tag: TypeTag) -> None:
    w.write_variant(TYPE_TAG_VARIANTS[tag.kind])
    if tag.kind == "vector":
        write_type_tag(w, tag.inner)
    elif tag.kind == "struct":
        write_struct_tag(w, tag.struct)


def write_struct_tag(w: BcsWriter, tag: StructTag) -> None:
    w.write_fixed_bytes(address_to_bytes(tag.address), 32)
    w.write_str(tag.module)
    w.write_str(tag.name)
    w.write_seq(tag.type_params, write_type_tag)


def read_type_tag(r: BcsReader) -> TypeTag:
    kind = _VARIANT_KINDS[r.read_variant(len(TYPE_TAG_VARIANTS), "TypeTag")]
    if kind == "vector":
        return TypeTag.vector(read_type_tag(r))
    if kind == "struct":
        return TypeTag.of_struct(read_struct_tag(r))
    return TypeTag(kind)


def read_struct_tag(r: BcsReader) -> StructTag:
    address = address_from_bytes(r.read_fixed_bytes(32))
    module = r.read_str()
    name = r.read_str()
    params = tuple(r.read_seq(read_type_tag))
    return StructTag(address, module, name, params)


# Well known structs that travel as pure (BCS) arguments rather than objects.
_STRING = ("0x1", "string", "String")
_ASCII = ("0x1", "ascii", "String")
_OPTION = ("0x1", "option", "Option")
_ID = ("0x2", "object", "ID")
_TX_CONTEXT = ("0x2", "tx_context", "TxContext")


def is_pure_type(tag: TypeTag) -> bool:
    """True when values of `tag` are passed as Pure bytes, not as objects."""
    if tag.kind in _PRIMITIVES:
        return tag.kind != "signer"
    if tag.kind == "vector":
        return is_pure_type(tag.inner)
    st = tag.struct
    if st.is_(*_STRING) or st.is_(*_ASCII) or st.is_(*_ID):
        return True
    if st.is_(*_OPTION):
        return all(is_pure_type(p) for p in st.type_params)
    return False


# --- Normalized function signatures ------------------------------------------


@dataclass(slots=True, frozen=True)
class MoveType:
    """One parameter type of a normalized Move function."""

    kind: str  # TypeTag kind, or "type_param"
    reference: Optional[str] = None  # None | "imm" | "mut"
    inner: Optional["MoveType"] = None
    struct_address: Optional[str] = None
    struct_module: Optional[str] = None
    struct_name: Optional[str] = None
    type_arguments: Tuple["MoveType", ...] = ()
    type_param_index: Optional[int] = None

    @staticmethod
    def from_rpc(v: Any, reference: Optional[str] = None) -> "MoveType":
        if isinstance(v, str):
            kind = v.lower()
            if kind not in _PRIMITIVES:
                raise MoveTypeError(f"unknown normalized type {v!r}")
            return MoveType(kind, reference=reference)
        if isinstance(v, Mapping) and len(v) == 1:
            (key, val), = v.items()
            if key == "Reference":
                return MoveType.from_rpc(val, reference="imm")
            if key == "MutableReference":
                return MoveType.from_rpc(val, reference="mut")
            if key == "Vector":
                return MoveType("vector", reference=reference, inner=MoveType.from_rpc(val))
            if key == "TypeParameter":
                return MoveType("type_param", reference=reference, type_param_index=int(val))
            if key == "Struct":
                return MoveType(
                    "struct",
                    reference=reference,
                    struct_address=normalize_address(val["address"]),
                    struct_module=val["module"],
                    struct_name=val["name"],
                    type_arguments=tuple(
                        MoveType.from_rpc(t) for t in val.get("typeArguments") or ()
                    ),
                )
        raise MoveTypeError(f"unrecognized normalized type {v!r}")

    @property
    def is_tx_context(self) -> bool:
        return (
            self.kind == "struct"
            and self.struct_address == normalize_address(_TX_CONTEXT[0])
            and self.struct_module == _TX_CONTEXT[1]
            and self.struct_name == _TX_CONTEXT[2]
        )

    def to_type_tag(self, type_args: Sequence[TypeTag] = ()) -> TypeTag:
        """Concrete TypeTag with type parameters substituted; references dropped."""
        if self.kind == "type_param":
            if self.type_param_index is None or self.type_param_index >= len(type_args):
                raise MoveTypeError(f"type parameter T{self.type_param_index} is not bound")
            return type_args[self.type_param_index]
        if self.kind == "vector":
            return TypeTag.vector(self.inner.to_type_tag(type_args))
        if self.kind == "struct":
            return TypeTag.of_struct(
                StructTag(
                    self.struct_address,
                    self.struct_module,
                    self.struct_name,
                    tuple(t.to_type_tag(type_args) for t in self.type_arguments),
                )
            )
        return TypeTag(self.kind)


@dataclass(slots=True, frozen=True)
class MoveFunctionSignature:
    """
    Callable shape of a Move function as seen by a transaction.

    `parameters` excludes the trailing TxContext parameter, which the runtime
    supplies.
    """

    parameters: Tuple[MoveType, ...]
    type_parameter_count: int = 0
    visibility: str = "Public"
    is_entry: bool = False
    returns: Tuple[MoveType, ...] = field(default=())

    @staticmethod
    def from_rpc(d: Mapping[str, Any]) -> "MoveFunctionSignature":
        params = [MoveType.from_rpc(p) for p in d.get("parameters") or ()]
        if params and params[-1].is_tx_context:
            params.pop()
        return MoveFunctionSignature(
            parameters=tuple(params),
            type_parameter_count=len(d.get("typeParameters") or ()),
            visibility=str(d.get("visibility", "Public")),
            is_entry=bool(d.get("isEntry", False)),
            returns=tuple(MoveType.from_rpc(r) for r in d.get("return") or ()),
        )

    @property
    def arity(self) -> int:
        return len(self.parameters)


# --- Pure values -------------------------------------------------------------


def infer_type_tag(value: Any) -> TypeTag:
    """
    Type a plain Python value when no signature is known:
    bool -> bool, int -> u64, bytes -> vector<u8>, address-shaped str -> address,
    other str -> 0x1::string::String, list/tuple -> vector<inferred element>.
    """
    if isinstance(value, bool):
        return TypeTag("bool")
    if isinstance(value, int):
        return TypeTag("u64")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TypeTag.vector(TypeTag("u8"))
    if isinstance(value, str):
        if is_address_like(value):
            return TypeTag("address")
        return TypeTag.of_struct(StructTag(*_STRING))
    if isinstance(value, (list, tuple)):
        if not value:
            # an empty vector encodes identically for every element type
            return TypeTag.vector(TypeTag("u8"))
        tags = {infer_type_tag(v) for v in value}
        if len(tags) != 1:
            raise MoveTypeError("cannot infer a single element type for a mixed list")
        return TypeTag.vector(tags.pop())
    raise MoveTypeError(f"cannot infer a Move type for {type(value).__name__}")


def _write_pure(w: BcsWriter, value: Any, tag: TypeTag) -> None:
    kind = tag.kind
    if kind == "bool":
        if not isinstance(value, bool):
            raise MoveTypeError(f"expected bool, got {type(value).__name__}")
        w.write_bool(value)
    elif kind in _UINT_BITS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise MoveTypeError(f"expected {kind}, got {type(value).__name__}")
        try:
            w.write_uint(value, _UINT_BITS[kind])
        except BcsEncodeError as e:
            raise MoveTypeError(str(e)) from e
    elif kind == "address":
        _write_address(w, value)
    elif kind == "vector":
        if tag.inner.kind == "u8" and isinstance(value, (bytes, bytearray, memoryview)):
            w.write_bytes(value)
        elif isinstance(value, (list, tuple)):
            w.write_seq(value, lambda ww, v: _write_pure(ww, v, tag.inner))
        else:
            raise MoveTypeError(f"expected a sequence for {tag}, got {type(value).__name__}")
    elif kind == "struct":
        st = tag.struct
        if st.is_(*_STRING) or st.is_(*_ASCII):
            if not isinstance(value, str):
                raise MoveTypeError(f"expected str for {tag}, got {type(value).__name__}")
            if st.is_(*_ASCII) and not value.isascii():
                raise MoveTypeError("ascii string argument contains non-ASCII characters")
            w.write_str(value)
        elif st.is_(*_ID):
            _write_address(w, value)
        elif st.is_(*_OPTION) and len(st.type_params) == 1:
            # Option<T> is a vector of zero or one element
            if value is None:
                w.write_uleb128(0)
            else:
                w.write_uleb128(1)
                _write_pure(w, value, st.type_params[0])
        else:
            raise MoveTypeError(f"{tag} is not a pure type")
    else:
        raise MoveTypeError(f"{kind} values cannot be passed as arguments")


def _write_address(w: BcsWriter, value: Any) -> None:
    if isinstance(value, str) and is_address_like(value):
        w.write_fixed_bytes(address_to_bytes(value), 32)
    elif isinstance(value, (bytes, bytearray)) and len(value) == 32:
        w.write_fixed_bytes(value, 32)
    else:
        raise MoveTypeError(f"expected an address, got {value!r}")


def encode_pure(value: Any, tag: Optional[TypeTag] = None) -> bytes:
    """BCS-encode `value` as `tag` (inferred from the value when omitted)."""
    w = BcsWriter()
    _write_pure(w, value, tag if tag is not None else infer_type_tag(value))
    return w.to_bytes()


__all__ = [
    "MoveTypeError",
    "TYPE_TAG_VARIANTS",
    "StructTag",
    "TypeTag",
    "parse_type_tag",
    "parse_struct_tag",
    "write_type_tag",
    "write_struct_tag",
    "read_type_tag",
    "read_struct_tag",
    "is_pure_type",
    "MoveType",
    "MoveFunctionSignature",
    "infer_type_tag",
    "encode_pure",
]
