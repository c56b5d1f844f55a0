"""
sui_sdk.types
=============

SDK datatypes.

- :mod:`sui_sdk.types.core`: addresses, object references, owners, effects
- :mod:`sui_sdk.types.move`: Move type tags, function signatures, pure values
"""

from . import core, move
from .core import (ZERO_ADDRESS, ExecutionEffects, GasCostSummary, ObjectInfo,
                   ObjectRef, OwnedObjectRef, Owner, OwnerKind, Page,
                   SharedObjectRef, SubmissionReceipt, normalize_address)
from .move import (MoveFunctionSignature, MoveType, MoveTypeError, StructTag,
                   TypeTag, encode_pure, parse_type_tag)

__all__ = [
    "core",
    "move",
    # core
    "ZERO_ADDRESS",
    "normalize_address",
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
    # move
    "MoveTypeError",
    "StructTag",
    "TypeTag",
    "parse_type_tag",
    "MoveType",
    "MoveFunctionSignature",
    "encode_pure",
]
