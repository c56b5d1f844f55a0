"""
sui_sdk.rpc
-----------

RPC helpers.

This package exposes:
- AsyncRpcClient: HTTP JSON-RPC client (see .http)
- NodeApi / SuiRpcFacade: typed node operations over JSON-RPC (see .facade)

Import style:

    from sui_sdk.rpc import AsyncRpcClient, SuiRpcFacade
    node = SuiRpcFacade(AsyncRpcClient(url="http://127.0.0.1:9000"))
"""

from .facade import NodeApi, SuiRpcFacade
from .http import AsyncRpcClient

__all__ = ["AsyncRpcClient", "NodeApi", "SuiRpcFacade"]
