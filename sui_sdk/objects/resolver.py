"""
Object reference resolution and gas selection.

The resolver turns object ids into current ObjectRefs, chooses a gas coin for
a budget, and refreshes a built TransactionData after a stale-version
rejection. It reads node state only; it never retries on its own, so a
conflict surfaces to the submitter, which decides whether to refresh.

Gas selection
-------------
Candidates are the owner's coins of the configured gas coin type. A coin is
eligible when its balance covers the budget and it is not excluded (coins
already used as transaction inputs are excluded by the caller). The largest
eligible balance wins; equal balances are broken by the lowest object id, so
the choice is deterministic for a given node state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from ..errors import InsufficientGas
from ..types.core import ObjectInfo, ObjectRef, SharedObjectRef, normalize_address
from ..tx.data import TransactionData

if TYPE_CHECKING:
    from ..rpc.facade import NodeApi

log = logging.getLogger(__name__)

DEFAULT_GAS_COIN_TYPE = "0x2::sui::SUI"


def coin_struct_type(coin_type: str) -> str:
    return f"0x2::coin::Coin<{coin_type}>"


class ObjectResolver:
    def __init__(
        self,
        node: "NodeApi",
        *,
        gas_coin_type: str = DEFAULT_GAS_COIN_TYPE,
        page_limit: int = 50,
    ) -> None:
        self.node = node
        self.gas_coin_type = gas_coin_type
        self.page_limit = page_limit

    # --- objects ---------------------------------------------------------

    async def resolve_object(self, object_id: str) -> ObjectInfo:
        """Current state of one object. Raises ObjectNotFound / ObjectDeleted."""
        return await self.node.get_object(normalize_address(object_id))

    async def resolve_inputs(self, object_ids: Iterable[str]) -> Dict[str, ObjectRef]:
        """
        Fetch the latest ObjectRef for every id, concurrently.

        The first ObjectNotFound / ObjectDeleted propagates; remaining lookups
        are cancelled.
        """
        ids: List[str] = []
        for oid in object_ids:
            n = normalize_address(oid)
            if n not in ids:
                ids.append(n)
        if not ids:
            return {}
        tasks = [asyncio.ensure_future(self.node.get_object(oid)) for oid in ids]
        try:
            infos = await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            raise
        return {oid: info.ref for oid, info in zip(ids, infos)}

    async def object_arg(self, object_id: str, *, mutable: bool = True) -> ObjectRef | SharedObjectRef:
        """
        The transaction argument for an object: its ObjectRef for owned and
        immutable objects, a SharedObjectRef for shared ones.
        """
        info = await self.resolve_object(object_id)
        if info.owner is not None and info.owner.is_shared:
            return SharedObjectRef(info.object_id, info.owner.initial_shared_version, mutable)
        return info.ref

    # --- gas -------------------------------------------------------------

    async def list_gas_coins(self, owner: str) -> List[ObjectInfo]:
        """Every coin of the gas coin type owned by `owner` (follows pagination)."""
        coins: List[ObjectInfo] = []
        cursor: Optional[str] = None
        struct_type = coin_struct_type(self.gas_coin_type)
        while True:
            page = await self.node.get_owned_objects(
                owner, {"StructType": struct_type}, cursor, self.page_limit
            )
            coins.extend(page.data)
            if not page.has_next_page or page.next_cursor is None:
                return coins
            cursor = page.next_cursor

    async def select_gas_object(
        self, owner: str, budget: int, exclude: Sequence[str] = ()
    ) -> ObjectRef:
        excluded = {normalize_address(x) for x in exclude}
        coins = await self.list_gas_coins(owner)
        best: Optional[ObjectInfo] = None
        best_balance: Optional[int] = None
        for coin in coins:
            bal = coin.balance
            if bal is None:
                continue
            if best_balance is None or bal > best_balance:
                best_balance = bal
            if coin.object_id in excluded or bal < budget:
                continue
            if (
                best is None
                or bal > best.balance
                or (bal == best.balance and coin.object_id < best.object_id)
            ):
                best = coin
        if best is None:
            raise InsufficientGas(
                owner=normalize_address(owner),
                budget=budget,
                best_balance=best_balance,
                candidates=len(coins),
            )
        log.debug(
            "gas coin %s v%d balance=%s for budget %d",
            best.object_id, best.version, best.balance, budget,
        )
        return best.ref

    # --- refresh ---------------------------------------------------------

    async def refresh(self, tx_data: TransactionData) -> TransactionData:
        """
        Rebuild `tx_data` against current node state: every owned-object input
        is re-resolved to its latest version and gas is re-selected. Inputs
        and commands keep their order.
        """
        old = {ref.object_id: ref for ref in tx_data.owned_object_refs()}
        refs = await self.resolve_inputs(old)
        gas = await self.select_gas_object(
            tx_data.gas_data.owner, tx_data.gas_data.budget, exclude=list(old)
        )
        changed = sorted(oid for oid, ref in refs.items() if ref != old[oid])
        log.info("refreshed %d input(s) %s and gas coin %s", len(changed), changed, gas.object_id)
        return tx_data.with_object_refs(refs).with_gas_payment((gas,))
