"""
sui_sdk.tx.send
===============

Submit signed transactions and await their effects.

Lifecycle of one attempt
------------------------
    BUILT -> SIGNED -> SUBMITTED -> PENDING -> FINALIZED
                           |            |
                           +-> REJECTED |
                           |            |
                           +-> FAILED <-+   (transport error; not terminal)

- FAILED is left by resubmitting (-> SUBMITTED) or by finding the digest at
  the node (-> FINALIZED). Before any resubmission the node is asked for the
  transaction digest, so a request that did land is never sent twice.
- A stale-version rejection ends the attempt as REJECTED; `execute()` then
  refreshes inputs and gas through the resolver, re-signs, and starts a new
  attempt, up to `max_stale_retries` times.
- Confirmation polls at a growing, bounded interval. After
  `confirmation_timeout` (plus `confirmation_retries` extra windows) it raises
  ConfirmationTimeout carrying the digest; the attempt stays PENDING and the
  caller can poll again with `wait_for_effects(digest)`.
- Every operation is a coroutine. Cancelling before SUBMITTED leaves nothing
  at the node; cancelling later only stops local waiting, and the attempt keeps
  its state and digest.

Primary entry points
--------------------
- Submitter.execute(tx_data, signers) -> ExecutionResult
- Submitter.submit_signed(signed) -> ExecutionResult
- Submitter.wait_for_effects(digest) -> ExecutionEffects
- Submitter.poll_effects(digest) -> ExecutionEffects | None
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (TYPE_CHECKING, Dict, FrozenSet, List, Optional, Sequence,
                    Tuple)

from ..config import SDKConfig
from ..errors import (ConfirmationTimeout, NetworkError, Outcome,
                      SubmissionRejected, SuiSdkError)
from ..types.core import ExecutionEffects
from ..utils.retry import RetryPolicy
from ..wallet.keypair import KeyPair
from .data import TransactionData
from .encode import SignedTransaction, transaction_digest
from .signatures import sign_transaction

if TYPE_CHECKING:
    from ..objects.resolver import ObjectResolver
    from ..rpc.facade import NodeApi

log = logging.getLogger(__name__)


class TxState(str, Enum):
    BUILT = "built"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    PENDING = "pending"
    FINALIZED = "finalized"
    REJECTED = "rejected"
    FAILED = "failed"


_TRANSITIONS: Dict[TxState, FrozenSet[TxState]] = {
    TxState.BUILT: frozenset({TxState.SIGNED}),
    TxState.SIGNED: frozenset({TxState.SUBMITTED}),
    TxState.SUBMITTED: frozenset(
        {TxState.PENDING, TxState.FINALIZED, TxState.REJECTED, TxState.FAILED}
    ),
    TxState.PENDING: frozenset({TxState.FINALIZED, TxState.FAILED}),
    TxState.FAILED: frozenset(
        {TxState.SUBMITTED, TxState.PENDING, TxState.FINALIZED, TxState.REJECTED}
    ),
    TxState.FINALIZED: frozenset(),
    TxState.REJECTED: frozenset(),
}

TERMINAL_STATES = frozenset({TxState.FINALIZED, TxState.REJECTED})


@dataclass
class TransactionAttempt:
    """One signed version of a transaction and everything that happened to it."""

    tx_data: TransactionData
    digest: str = ""
    state: TxState = TxState.BUILT
    signed: Optional[SignedTransaction] = None
    effects: Optional[ExecutionEffects] = None
    last_error: Optional[SuiSdkError] = None
    submissions: int = 0
    history: List[Tuple[TxState, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.digest:
            self.digest = transaction_digest(self.tx_data)
        if not self.history:
            self.history.append((self.state, time.monotonic()))

    @property
    def states(self) -> List[TxState]:
        return [s for s, _ in self.history]

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new: TxState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {new.value} for {self.digest}")
        self.state = new
        self.history.append((new, time.monotonic()))
        log.info("tx %s -> %s", self.digest, new.value)

    def mark_signed(self, signed: SignedTransaction) -> None:
        self.signed = signed
        self.transition(TxState.SIGNED)


@dataclass(frozen=True)
class ExecutionResult:
    digest: str
    effects: ExecutionEffects
    attempts: Tuple[TransactionAttempt, ...] = ()
    stale_retries: int = 0

    @property
    def success(self) -> bool:
        return self.effects.success

    @property
    def submissions(self) -> int:
        return sum(a.submissions for a in self.attempts)


class Submitter:
    """
    Drives transactions through sign, submit and confirm.

    One Submitter may run many transactions concurrently. Each call's
    attempts travel with its ExecutionResult; `last_attempt` only tracks the
    most recently started attempt and is meant for single-task diagnostics.
    """

    def __init__(
        self,
        node: "NodeApi",
        resolver: Optional["ObjectResolver"] = None,
        *,
        config: Optional[SDKConfig] = None,
    ) -> None:
        cfg = config or SDKConfig()
        self.node = node
        self.resolver = resolver
        self.submit_timeout = cfg.submit_timeout
        self.confirmation_timeout = cfg.confirmation_timeout
        self.confirmation_retries = cfg.confirmation_retries
        self.poll_interval = cfg.poll_interval
        self.poll_max_interval = cfg.poll_max_interval
        self.retry = RetryPolicy.from_config(cfg)
        self.max_stale_retries = cfg.max_stale_retries
        self.last_attempt: Optional[TransactionAttempt] = None

    # --- full pipeline ---------------------------------------------------

    async def execute(self, tx_data: TransactionData, signers: Sequence[KeyPair]) -> ExecutionResult:
        """
        Sign, submit and confirm `tx_data`. A stale-version rejection triggers
        a refresh/re-sign/resubmit cycle, at most `max_stale_retries` times.
        """
        attempts: List[TransactionAttempt] = []
        current = tx_data
        stale_cycles = 0
        while True:
            attempt = TransactionAttempt(current)
            attempts.append(attempt)
            self.last_attempt = attempt
            attempt.mark_signed(sign_transaction(current, signers))
            try:
                result = await self.submit_signed(attempt.signed, attempt=attempt)
            except SubmissionRejected as e:
                if not e.is_stale or self.resolver is None or stale_cycles >= self.max_stale_retries:
                    raise
                stale_cycles += 1
                log.warning(
                    "tx %s used a stale object version; refresh cycle %d/%d",
                    attempt.digest, stale_cycles, self.max_stale_retries,
                )
                current = await self.resolver.refresh(current)
                continue
            return ExecutionResult(
                digest=result.digest,
                effects=result.effects,
                attempts=tuple(attempts),
                stale_retries=stale_cycles,
            )

    # --- submission ------------------------------------------------------

    async def submit_signed(
        self, signed: SignedTransaction, *, attempt: Optional[TransactionAttempt] = None
    ) -> ExecutionResult:
        """
        Submit `signed` and wait for its effects.

        Transport failures are retried per `self.retry` with backoff; each
        retry first checks whether the node already knows the digest.
        """
        if attempt is None:
            attempt = TransactionAttempt(signed.tx_data)
            attempt.mark_signed(signed)
            self.last_attempt = attempt
        digest = attempt.digest
        failures = 0

        while True:
            attempt.transition(TxState.SUBMITTED)
            attempt.submissions += 1
            try:
                receipt = await asyncio.wait_for(
                    self.node.execute_transaction(signed.tx_bytes, signed.signatures),
                    timeout=self.submit_timeout,
                )
            except SubmissionRejected as e:
                if e.digest is None:
                    e.digest = digest
                attempt.last_error = e
                attempt.transition(TxState.REJECTED)
                log.info("tx %s rejected: %s", digest, e.reason.value)
                raise
            except (NetworkError, asyncio.TimeoutError) as e:
                err = self._network_error(e, digest)
                attempt.last_error = err
                attempt.transition(TxState.FAILED)
                failures += 1
                if self.retry.exhausted(failures):
                    err.attempts = failures
                    raise err from e
                delay = self.retry.delay(failures)
                log.warning(
                    "tx %s submission failed (%s); retry %d/%d in %.2fs",
                    digest, err.message, failures, self.retry.retries, delay,
                )
                await asyncio.sleep(delay)
                known = await self._lookup_digest(digest)
                if known is not None:
                    log.info("tx %s already known to the node; not resubmitting", digest)
                    return self._finalize(attempt, known)
                continue

            attempt.transition(TxState.PENDING)
            if receipt.effects is not None:
                return self._finalize(attempt, receipt.effects)
            effects = await self.wait_for_effects(digest, attempt=attempt)
            return ExecutionResult(digest=digest, effects=effects, attempts=(attempt,))

    # --- confirmation ----------------------------------------------------

    async def poll_effects(self, digest: str) -> Optional[ExecutionEffects]:
        """One query for the effects of `digest` (None while unknown or pending)."""
        return await self.node.get_transaction_effects(digest)

    async def wait_for_effects(
        self,
        digest: str,
        *,
        attempt: Optional[TransactionAttempt] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> ExecutionEffects:
        """
        Poll until effects for `digest` are available.

        Each window lasts `timeout` (default `confirmation_timeout`); up to
        `retries` (default `confirmation_retries`) extra windows follow, with
        backoff in between. Then ConfirmationTimeout is raised.
        """
        window_s = self.confirmation_timeout if timeout is None else timeout
        windows = 1 + (self.confirmation_retries if retries is None else retries)
        started = time.monotonic()

        for window in range(1, windows + 1):
            deadline = time.monotonic() + window_s
            interval = self.poll_interval
            while True:
                effects = await self._poll_once(digest, attempt)
                if effects is not None:
                    if attempt is not None and not attempt.is_terminal:
                        self._finalize(attempt, effects)
                    return effects
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(interval, remaining))
                interval = min(interval * 2, self.poll_max_interval)
            if window < windows:
                delay = self.retry.delay(window)
                log.warning(
                    "no effects for tx %s after window %d/%d; waiting %.2fs more",
                    digest, window, windows, delay,
                )
                await asyncio.sleep(delay)

        err = ConfirmationTimeout(digest=digest, waited_s=time.monotonic() - started, attempts=windows)
        if attempt is not None:
            attempt.last_error = err
        log.warning("%s", err)
        raise err

    # --- internals -------------------------------------------------------

    async def _poll_once(
        self, digest: str, attempt: Optional[TransactionAttempt]
    ) -> Optional[ExecutionEffects]:
        try:
            return await self.node.get_transaction_effects(digest)
        except NetworkError as e:
            e.digest = e.digest or digest
            if attempt is not None:
                attempt.last_error = e
                if attempt.state is TxState.PENDING:
                    attempt.transition(TxState.FAILED)
            log.warning("polling tx %s failed: %s", digest, e.message)
            return None

    async def _lookup_digest(self, digest: str) -> Optional[ExecutionEffects]:
        try:
            return await self.node.get_transaction_effects(digest)
        except NetworkError as e:
            log.warning("could not check tx %s before resubmitting: %s", digest, e.message)
            return None

    def _finalize(self, attempt: TransactionAttempt, effects: ExecutionEffects) -> ExecutionResult:
        attempt.effects = effects
        attempt.transition(TxState.FINALIZED)
        if not effects.success:
            log.info("tx %s finalized with failure: %s", attempt.digest, effects.error)
        return ExecutionResult(digest=attempt.digest, effects=effects, attempts=(attempt,))

    def _network_error(self, exc: BaseException, digest: str) -> NetworkError:
        if isinstance(exc, NetworkError):
            exc.digest = digest
            return exc
        return NetworkError(
            f"submission timed out after {self.submit_timeout:.2f}s",
            digest=digest,
            outcome=Outcome.UNKNOWN,
        )


__all__ = [
    "TxState",
    "TERMINAL_STATES",
    "TransactionAttempt",
    "ExecutionResult",
    "Submitter",
]
