"""
High-level client: one object wiring the node API, resolver and submitter.

    async with SuiClient(SDKConfig.from_env()) as client:
        kp = derive_keypair(phrase)
        result = await client.transfer_object(kp, "0x5", recipient)
        print(result.digest, result.effects.gas_used.net)

Lower-level flows (sponsored gas, manual signature collection) use
`prepare()` and `execute()` directly, or the components behind `node`,
`resolver` and `submitter`.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

import httpx

from .config import SDKConfig
from .objects.resolver import ObjectResolver
from .rpc.facade import NodeApi, SuiRpcFacade
from .rpc.http import AsyncRpcClient
from .tx.build import TransactionBuilder, parse_target
from .tx.data import TransactionData
from .tx.send import ExecutionResult, Submitter
from .types.core import is_address_like
from .types.move import MoveFunctionSignature, TypeTag, is_pure_type
from .wallet.keypair import KeyPair

log = logging.getLogger(__name__)


class SuiClient:
    def __init__(
        self,
        config: Optional[SDKConfig] = None,
        *,
        node: Optional[NodeApi] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or SDKConfig()
        self._owns_node = node is None
        if node is None:
            node = SuiRpcFacade(AsyncRpcClient.from_config(self.config, transport=transport))
        self.node: NodeApi = node
        self.resolver = ObjectResolver(node, gas_coin_type=self.config.gas_coin_type)
        self.submitter = Submitter(node, self.resolver, config=self.config)

    async def __aenter__(self) -> "SuiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_node and isinstance(self.node, SuiRpcFacade):
            await self.node.aclose()

    # --- reads -----------------------------------------------------------

    async def get_gas_price(self) -> int:
        return await self.node.get_reference_gas_price()

    async def epoch(self) -> int:
        return await self.node.get_current_epoch()

    # --- building --------------------------------------------------------

    async def prepare(
        self,
        builder: TransactionBuilder,
        *,
        budget: Optional[int] = None,
        gas_owner: Optional[str] = None,
        expiration: Optional[int] = None,
    ) -> TransactionData:
        """
        Fill in gas (reference price, a coin covering `budget` owned by
        `gas_owner` or the sender) and build. Coins already used as inputs are
        never picked for gas.
        """
        budget = budget if budget is not None else self.config.default_gas_budget
        price = await self.node.get_reference_gas_price()
        payer = gas_owner or builder.sender
        gas = await self.resolver.select_gas_object(payer, budget, exclude=builder.object_ids)
        builder.set_gas(gas, budget=budget, price=price, owner=gas_owner)
        current_epoch = None
        if expiration is not None:
            builder.set_expiration(expiration)
            current_epoch = await self.node.get_current_epoch()
        return builder.build(current_epoch)

    async def execute(self, tx_data: TransactionData, signers: Sequence[KeyPair]) -> ExecutionResult:
        return await self.submitter.execute(tx_data, signers)

    # --- one-call flows --------------------------------------------------

    async def transfer_object(
        self,
        signer: KeyPair,
        object_id: str,
        recipient: str,
        *,
        budget: Optional[int] = None,
    ) -> ExecutionResult:
        builder = TransactionBuilder(signer.address)
        builder.transfer_object(await self.resolver.object_arg(object_id), recipient)
        tx = await self.prepare(builder, budget=budget)
        log.info("transfer %s -> %s (tx %s)", object_id, recipient, tx.digest)
        return await self.execute(tx, [signer])

    async def transfer_sui(
        self,
        signer: KeyPair,
        recipient: str,
        amount: Optional[int] = None,
        *,
        budget: Optional[int] = None,
    ) -> ExecutionResult:
        """Send `amount` MIST out of the gas coin (everything left when None)."""
        builder = TransactionBuilder(signer.address)
        builder.transfer_sui(recipient, amount)
        tx = await self.prepare(builder, budget=budget)
        return await self.execute(tx, [signer])

    async def move_call(
        self,
        signer: KeyPair,
        target: str,
        arguments: Sequence[Any] = (),
        type_arguments: Sequence[Union[TypeTag, str]] = (),
        *,
        budget: Optional[int] = None,
    ) -> ExecutionResult:
        """
        Call `target` with arguments checked against its on-chain signature.
        Object parameters may be given as object ids; they are resolved to
        current references (shared objects included).
        """
        package, module, function = parse_target(target)
        signature = await self.node.get_normalized_move_function(package, module, function)
        builder = TransactionBuilder(signer.address)
        type_tags = [TransactionBuilder._type_tag(t) for t in type_arguments]
        args = await self._resolve_object_ids(arguments, signature, type_tags)
        builder.move_call(target, args, type_tags, signature=signature)
        tx = await self.prepare(builder, budget=budget)
        return await self.execute(tx, [signer])

    async def _resolve_object_ids(
        self,
        arguments: Sequence[Any],
        signature: MoveFunctionSignature,
        type_args: Sequence[TypeTag],
    ) -> List[Any]:
        if len(arguments) != signature.arity:
            # the builder reports the mismatch
            return list(arguments)
        out: List[Any] = []
        for value, param in zip(arguments, signature.parameters):
            if isinstance(value, str) and is_address_like(value) and param.kind in ("struct", "type_param"):
                tag = param.to_type_tag(type_args)
                if not is_pure_type(tag):
                    value = await self.resolver.object_arg(value, mutable=param.reference != "imm")
            out.append(value)
        return out


__all__ = ["SuiClient"]
