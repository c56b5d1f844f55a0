"""
HTTP JSON-RPC client (async).

- Built on httpx.AsyncClient; pass `transport=httpx.MockTransport(...)` in tests.
- Retries idempotent calls on transient transport failures and 429/502/503/504
  with jittered exponential backoff. Non-idempotent calls (transaction
  execution) are sent exactly once per request; the submitter owns their
  retry policy.
- Transport failures surface as NetworkError. A failure to connect means the
  request never left this process (outcome NOT_EXECUTED); anything after the
  request was written (read timeout, dropped connection, gateway errors) has
  an UNKNOWN outcome.

Example:
    from sui_sdk.rpc.http import AsyncRpcClient
    async with AsyncRpcClient("http://127.0.0.1:9000") as rpc:
        gas_price = await rpc.request("suix_getReferenceGasPrice")
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Union

import httpx

from ..config import SDKConfig
from ..errors import JsonRpcCode, NetworkError, Outcome, RpcError
from ..utils.retry import RetryPolicy
from ..version import user_agent

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]
Params = Union[Sequence[Any], Mapping[str, Any], None]

# Typical transient HTTP statuses
_RETRIABLE_HTTP = (429, 502, 503, 504)
# Statuses returned before the request was processed
_NOT_EXECUTED_HTTP = (429, 503)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class AsyncRpcClient:
    """Asynchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.25
    backoff_max: float = 4.0
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    _id_counter: Iterator[int] = field(default_factory=lambda: count(start=_now_ms()))
    _client: Optional[httpx.AsyncClient] = field(init=False, default=None)

    def __post_init__(self) -> None:
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent(),
        }
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=merged_headers,
            transport=self.transport,
        )

    @classmethod
    def from_config(
        cls, config: SDKConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "AsyncRpcClient":
        return cls(
            url=config.rpc_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
            headers=config.http_headers(),
            transport=transport,
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(self.max_retries, self.backoff_base, self.backoff_max)

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "AsyncRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # --- public API ------------------------------------------------------

    async def request(self, method: str, params: Params = None, *, idempotent: bool = True) -> JSON:
        """
        Perform a single JSON-RPC request and return `result`.

        Raises RpcError for JSON-RPC errors and NetworkError for transport
        failures (after retries, when `idempotent`).
        """
        payload = self._make_payload(method, params)
        policy = self.retry_policy
        retries = policy.retries if idempotent else 0
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._send_once(payload)
            except NetworkError as e:
                e.attempts = attempt
                if attempt > retries:
                    raise
                delay = policy.delay(attempt)
                log.warning(
                    "rpc %s failed (%s); retry %d/%d in %.2fs",
                    method, e.message, attempt, retries, delay,
                )
                await asyncio.sleep(delay)

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Params) -> Dict[str, Any]:
        if params is None:
            params = []
        elif isinstance(params, Mapping):
            params = dict(params)
        elif isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
            params = list(params)
        else:
            # Coerce single param into positional list
            params = [params]  # type: ignore[list-item]
        return {"jsonrpc": "2.0", "id": next(self._id_counter), "method": method, "params": params}

    async def _send_once(self, payload: Dict[str, Any]) -> JSON:
        if self._client is None:
            raise RuntimeError("AsyncRpcClient is closed")
        method = payload["method"]
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        log.debug("rpc -> %s id=%s", method, payload["id"])
        try:
            r = await self._client.post(self.url, content=body)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as e:
            raise NetworkError(
                f"connect failed: {e!r}", outcome=Outcome.NOT_EXECUTED, method=method
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"transport error: {e!r}", outcome=Outcome.UNKNOWN, method=method) from e

        if r.status_code in _RETRIABLE_HTTP:
            outcome = Outcome.NOT_EXECUTED if r.status_code in _NOT_EXECUTED_HTTP else Outcome.UNKNOWN
            raise NetworkError(f"HTTP {r.status_code}", outcome=outcome, method=method)

        # Avoid raise_for_status() to keep the error body visible below
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Non-JSON response from RPC",
                data=f"HTTP {r.status_code}: {r.text[:256]}",
                request_id=payload["id"],
                http_status=r.status_code,
            ) from e

        if not isinstance(resp, dict):
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Invalid JSON-RPC response type",
                data=type(resp).__name__,
                request_id=payload["id"],
                http_status=r.status_code,
            )
        if resp.get("error") is not None:
            err = RpcError.from_response(
                resp["error"], method=method, request_id=resp.get("id"), http_status=r.status_code
            )
            log.debug("rpc <- %s error code=%s %s", method, err.code, err.message)
            raise err
        if "result" not in resp:
            raise RpcError(
                method=method,
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Malformed JSON-RPC response",
                data=resp,
                request_id=payload["id"],
                http_status=r.status_code,
            )
        log.debug("rpc <- %s ok", method)
        return resp["result"]


__all__ = ["AsyncRpcClient", "JSON", "Params"]
