"""
Typed node API over JSON-RPC.

`NodeApi` is the interface the resolver and submitter depend on; `SuiRpcFacade`
implements it on top of `AsyncRpcClient`. Tests substitute an in-memory node
with the same methods.

| operation                      | JSON-RPC method                 |
|--------------------------------|---------------------------------|
| get_object                     | sui_getObject                   |
| get_owned_objects              | suix_getOwnedObjects            |
| execute_transaction            | sui_executeTransactionBlock     |
| get_transaction_effects        | sui_getTransactionBlock         |
| get_reference_gas_price        | suix_getReferenceGasPrice       |
| get_current_epoch              | suix_getLatestSuiSystemState    |
| get_normalized_move_function   | sui_getNormalizedMoveFunction   |
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

from ..errors import (JsonRpcCode, NetworkError, ObjectDeleted, ObjectNotFound,
                      Outcome, RejectionReason, RpcError, SubmissionRejected,
                      SuiSdkError, classify_rejection)
from ..types.core import (ExecutionEffects, ObjectInfo, Page,
                          SubmissionReceipt, normalize_address)
from ..types.move import MoveFunctionSignature
from ..tx.encode import rpc_payload, transaction_digest
from ..wallet.keypair import Signature
from .http import AsyncRpcClient

log = logging.getLogger(__name__)

OBJECT_OPTIONS = {"showType": True, "showOwner": True, "showContent": True}
EFFECTS_OPTIONS = {"showEffects": True}

# Node error text when a transaction digest is unknown.
_TX_NOT_FOUND_RE = re.compile(r"could not find the referenced transaction|not found", re.IGNORECASE)

# Errors the node raises while validating or signing a transaction, before any
# certificate exists. Anything else from execute may follow execution.
_PRE_EXECUTION_RE = re.compile(
    r"validator signing failed|Error checking transaction input objects"
    r"|Failed to sign transaction by a quorum|Invalid user signature"
    r"|Deserialization error|Invalid transaction",
    re.IGNORECASE,
)
_REQUEST_ERROR_CODES = frozenset({
    JsonRpcCode.PARSE_ERROR,
    JsonRpcCode.INVALID_REQUEST,
    JsonRpcCode.METHOD_NOT_FOUND,
    JsonRpcCode.INVALID_PARAMS,
})


class NodeApi(Protocol):
    async def get_object(self, object_id: str) -> ObjectInfo: ...

    async def get_owned_objects(
        self,
        owner: str,
        filter: Optional[Mapping[str, Any]] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[ObjectInfo]: ...

    async def execute_transaction(
        self, tx_bytes: bytes, signatures: Sequence[Signature]
    ) -> SubmissionReceipt: ...

    async def get_transaction_effects(self, digest: str) -> Optional[ExecutionEffects]: ...

    async def get_reference_gas_price(self) -> int: ...

    async def get_current_epoch(self) -> int: ...

    async def get_normalized_move_function(
        self, package: str, module: str, function: str
    ) -> MoveFunctionSignature: ...


def parse_object_response(object_id: str, resp: Mapping[str, Any]) -> ObjectInfo:
    """Interpret a `sui_getObject` response, raising for missing or deleted objects."""
    data = resp.get("data")
    if data:
        return ObjectInfo.from_rpc_dict(data)
    err = resp.get("error") or {}
    code = err.get("code")
    if code == "deleted":
        version = err.get("version")
        raise ObjectDeleted(
            object_id=object_id,
            version=int(version) if version is not None else None,
            digest=err.get("digest"),
        )
    raise ObjectNotFound(object_id=object_id)


def submission_error(err: RpcError, digest: str) -> SuiSdkError:
    """
    Classify an execute error as a rejection or as an unknown outcome.

    Only errors raised before execution become SubmissionRejected. A 5xx or
    non-JSON reply, a finality timeout or an unrecognised error may have
    followed execution, so it becomes an UNKNOWN NetworkError and the
    submitter looks the digest up before resubmitting.
    """
    server_failed = err.http_status is not None and err.http_status >= 500
    reason = classify_rejection(err.message)
    if not server_failed and (
        reason is not RejectionReason.OTHER
        or err.code in _REQUEST_ERROR_CODES
        or _PRE_EXECUTION_RE.search(err.message)
    ):
        return SubmissionRejected(reason=reason, message=err.message, digest=digest, code=err.code)
    return NetworkError(
        f"execute outcome unknown: {err.message} (code {err.code})",
        digest=digest,
        outcome=Outcome.UNKNOWN,
        method=err.method,
    )


class SuiRpcFacade:
    """NodeApi over JSON-RPC."""

    def __init__(self, rpc: AsyncRpcClient, *, request_type: str = "WaitForEffectsCert") -> None:
        self.rpc = rpc
        self.request_type = request_type

    async def aclose(self) -> None:
        await self.rpc.aclose()

    async def get_object(self, object_id: str) -> ObjectInfo:
        oid = normalize_address(object_id)
        resp = await self.rpc.request("sui_getObject", [oid, OBJECT_OPTIONS])
        return parse_object_response(oid, resp or {})

    async def get_owned_objects(
        self,
        owner: str,
        filter: Optional[Mapping[str, Any]] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[ObjectInfo]:
        query: Dict[str, Any] = {"options": OBJECT_OPTIONS}
        if filter is not None:
            query["filter"] = dict(filter)
        resp = await self.rpc.request(
            "suix_getOwnedObjects", [normalize_address(owner), query, cursor, limit]
        )
        items = []
        for entry in resp.get("data") or ():
            if entry.get("data"):
                items.append(ObjectInfo.from_rpc_dict(entry["data"]))
        return Page(
            data=tuple(items),
            next_cursor=resp.get("nextCursor"),
            has_next_page=bool(resp.get("hasNextPage")),
        )

    async def execute_transaction(
        self, tx_bytes: bytes, signatures: Sequence[Signature]
    ) -> SubmissionReceipt:
        digest = transaction_digest(tx_bytes)
        params = [*rpc_payload(tx_bytes, signatures), EFFECTS_OPTIONS, self.request_type]
        try:
            resp = await self.rpc.request("sui_executeTransactionBlock", params, idempotent=False)
        except RpcError as e:
            err = submission_error(e, digest)
            log.debug("execute %s failed: %s", digest, err)
            raise err from e
        except NetworkError as e:
            e.digest = digest
            raise
        effects = resp.get("effects")
        return SubmissionReceipt(
            digest=resp.get("digest", digest),
            effects=ExecutionEffects.from_rpc_dict(effects) if effects else None,
        )

    async def get_transaction_effects(self, digest: str) -> Optional[ExecutionEffects]:
        try:
            resp = await self.rpc.request("sui_getTransactionBlock", [digest, EFFECTS_OPTIONS])
        except RpcError as e:
            if _TX_NOT_FOUND_RE.search(e.message):
                return None
            raise
        effects = (resp or {}).get("effects")
        return ExecutionEffects.from_rpc_dict(effects) if effects else None

    async def get_reference_gas_price(self) -> int:
        return int(await self.rpc.request("suix_getReferenceGasPrice"))

    async def get_current_epoch(self) -> int:
        state = await self.rpc.request("suix_getLatestSuiSystemState")
        return int(state["epoch"])

    async def get_normalized_move_function(
        self, package: str, module: str, function: str
    ) -> MoveFunctionSignature:
        resp = await self.rpc.request(
            "sui_getNormalizedMoveFunction", [normalize_address(package), module, function]
        )
        return MoveFunctionSignature.from_rpc(resp)


__all__ = ["NodeApi", "SuiRpcFacade", "parse_object_response", "submission_error", "OBJECT_OPTIONS"]
