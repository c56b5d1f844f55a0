import asyncio
from dataclasses import replace

import pytest

from sui_sdk.config import SDKConfig
from sui_sdk.errors import (ConfirmationTimeout, JsonRpcCode, NetworkError,
                            Outcome, RejectionReason, RpcError,
                            SubmissionRejected)
from sui_sdk.objects.resolver import ObjectResolver
from sui_sdk.rpc.facade import submission_error
from sui_sdk.tx.build import TransactionBuilder
from sui_sdk.tx.encode import transaction_digest
from sui_sdk.tx.send import (Submitter, TransactionAttempt, TxState)
from sui_sdk.tx.signatures import sign_transaction
from tests.harness.fake_node import FakeNode

pytestmark = pytest.mark.anyio

S = TxState


def _transfer(node: FakeNode, sender, recipient: str, *, gas_balance: int = 10_000):
    thing = node.add_object(sender.address)
    gas = node.add_coin(sender.address, gas_balance)
    b = TransactionBuilder(sender.address)
    b.transfer_object(thing.ref, recipient)
    b.set_gas(gas.ref, budget=1_000, price=node.gas_price)
    return b.build(), thing


def _submitter(node, config, *, resolver=True) -> Submitter:
    return Submitter(node, ObjectResolver(node) if resolver else None, config=config)


async def test_happy_path(node, fast_config, alice, bob):
    tx, thing = _transfer(node, alice, bob.address)
    result = await _submitter(node, fast_config).execute(tx, [alice])

    assert result.digest == tx.digest
    assert result.success
    assert result.submissions == 1
    assert result.stale_retries == 0
    (attempt,) = result.attempts
    assert attempt.states == [S.BUILT, S.SIGNED, S.SUBMITTED, S.PENDING, S.FINALIZED]
    assert attempt.effects == result.effects
    assert node.owner_of(thing.object_id) == bob.address
    assert result.effects.new_ref(thing.object_id).version > thing.version


async def test_lost_response_is_reconciled_by_digest(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.lost_responses = 1
    submitter = _submitter(node, fast_config)
    result = await submitter.execute(tx, [alice])

    assert result.success
    assert node.applied == [tx.digest]
    assert node.count("execute_transaction") == 1
    assert submitter.last_attempt.states == [S.BUILT, S.SIGNED, S.SUBMITTED, S.FAILED, S.FINALIZED]


async def test_connect_failure_resubmits_once(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.connect_failures = 1
    result = await _submitter(node, fast_config).execute(tx, [alice])

    assert node.count("execute_transaction") == 2
    assert node.applied == [tx.digest]
    (attempt,) = result.attempts
    assert attempt.submissions == 2
    assert attempt.states == [
        S.BUILT, S.SIGNED, S.SUBMITTED, S.FAILED, S.SUBMITTED, S.PENDING, S.FINALIZED,
    ]


async def test_transport_failures_are_bounded(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.connect_failures = 10
    submitter = _submitter(node, fast_config)
    with pytest.raises(NetworkError) as ei:
        await submitter.execute(tx, [alice])

    assert ei.value.digest == tx.digest
    assert ei.value.attempts == fast_config.max_retries + 1
    assert node.count("execute_transaction") == fast_config.max_retries + 1
    assert node.applied == []
    assert submitter.last_attempt.state is S.FAILED


async def test_submit_timeout(alice, bob):
    node = FakeNode(latency=0.05)
    config = SDKConfig(submit_timeout=0.01, max_retries=1, backoff_base=0.001, backoff_max=0.001)
    tx, _ = _transfer(node, alice, bob.address)
    with pytest.raises(NetworkError) as ei:
        await _submitter(node, config).execute(tx, [alice])
    assert ei.value.outcome is Outcome.UNKNOWN
    assert "timed out" in ei.value.message
    assert node.applied == []


async def test_rejection_is_terminal(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address, gas_balance=10)
    submitter = _submitter(node, fast_config)
    with pytest.raises(SubmissionRejected) as ei:
        await submitter.execute(tx, [alice])

    assert ei.value.reason is RejectionReason.INSUFFICIENT_GAS
    assert ei.value.digest == tx.digest
    assert submitter.last_attempt.state is S.REJECTED
    assert submitter.last_attempt.last_error is ei.value
    assert node.count("execute_transaction") == 1


async def test_stale_rejection_refreshes_and_resubmits(node, fast_config, alice, bob):
    tx, thing = _transfer(node, alice, bob.address)
    node.conflicts = 1
    result = await _submitter(node, fast_config).execute(tx, [alice])

    first, second = result.attempts
    assert result.stale_retries == 1
    assert first.state is S.REJECTED
    assert first.last_error.is_stale
    assert second.state is S.FINALIZED
    assert second.digest != first.digest == tx.digest
    assert result.digest == second.digest
    assert node.applied == [second.digest]
    assert node.owner_of(thing.object_id) == bob.address


async def test_stale_rejection_without_resolver(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.conflicts = 1
    with pytest.raises(SubmissionRejected) as ei:
        await _submitter(node, fast_config, resolver=False).execute(tx, [alice])
    assert ei.value.is_stale


@pytest.mark.parametrize("limit", [0, 1, 3])
async def test_stale_retries_are_bounded(node, fast_config, alice, bob, limit):
    tx, _ = _transfer(node, alice, bob.address)
    node.conflicts = 100
    config = SDKConfig.with_overrides(fast_config, max_stale_retries=limit)
    with pytest.raises(SubmissionRejected) as ei:
        await _submitter(node, config).execute(tx, [alice])
    assert ei.value.is_stale
    assert node.count("execute_transaction") == limit + 1
    assert node.applied == []


async def test_confirmation_timeout_then_manual_poll(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.effects_delay_polls = 10**6
    submitter = _submitter(node, fast_config)
    with pytest.raises(ConfirmationTimeout) as ei:
        await submitter.execute(tx, [alice])

    assert ei.value.digest == tx.digest
    assert ei.value.outcome is Outcome.UNKNOWN
    attempt = submitter.last_attempt
    assert attempt.state is S.PENDING
    assert isinstance(attempt.last_error, ConfirmationTimeout)

    assert await submitter.poll_effects(tx.digest) is None
    node.release(tx.digest)
    effects = await submitter.wait_for_effects(tx.digest, attempt=attempt)
    assert effects.transaction_digest == tx.digest
    assert attempt.state is S.FINALIZED
    assert node.applied == [tx.digest]


async def test_confirmation_windows(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.effects_delay_polls = 10**6
    submitter = _submitter(node, fast_config)
    signed = sign_transaction(tx, [alice])
    await node.execute_transaction(signed.tx_bytes, signed.signatures)
    with pytest.raises(ConfirmationTimeout) as ei:
        await submitter.wait_for_effects(tx.digest, timeout=0.02, retries=2)
    assert ei.value.attempts == 3


async def test_delayed_effects_are_polled(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    node.effects_delay_polls = 3
    result = await _submitter(node, fast_config).execute(tx, [alice])
    assert result.success
    assert node.count("get_transaction_effects") == 4


class FlakyPollNode(FakeNode):
    def __init__(self, poll_failures: int) -> None:
        super().__init__()
        self.poll_failures = poll_failures

    async def get_transaction_effects(self, digest):
        if self.poll_failures > 0:
            self.poll_failures -= 1
            raise NetworkError("read timeout", outcome=Outcome.UNKNOWN)
        return await super().get_transaction_effects(digest)


async def test_poll_failure_marks_attempt_failed_then_recovers(fast_config, alice, bob):
    node = FlakyPollNode(poll_failures=2)
    tx, _ = _transfer(node, alice, bob.address)
    node.effects_delay_polls = 1
    submitter = _submitter(node, fast_config)
    result = await submitter.execute(tx, [alice])

    assert result.success
    states = submitter.last_attempt.states
    assert states[:4] == [S.BUILT, S.SIGNED, S.SUBMITTED, S.PENDING]
    assert S.FAILED in states
    assert states[-1] is S.FINALIZED
    assert node.count("execute_transaction") == 1


class FailingExecutionNode(FakeNode):
    def _apply(self, tx, digest):
        effects = super()._apply(tx, digest)
        return replace(effects, success=False, error="MoveAbort(0x2::coin, 1)")


class FinalityTimeoutNode(FakeNode):
    """Applies the transaction, then answers the first execute with a finality timeout."""

    timeouts = 1

    async def execute_transaction(self, tx_bytes, signatures):
        receipt = await super().execute_transaction(tx_bytes, signatures)
        if self.timeouts > 0:
            self.timeouts -= 1
            raise submission_error(
                RpcError(
                    method="sui_executeTransactionBlock",
                    code=-32050,
                    message="Transaction timed out before reaching finality",
                ),
                receipt.digest,
            )
        return receipt


class ServerErrorNode(FakeNode):
    """Fails the first execute with a non-JSON HTTP 500 before applying anything."""

    server_errors = 1

    async def execute_transaction(self, tx_bytes, signatures):
        if self.server_errors > 0:
            self.server_errors -= 1
            digest = transaction_digest(tx_bytes)
            self.calls.append(("execute_transaction", digest))
            raise submission_error(
                RpcError(
                    method="sui_executeTransactionBlock",
                    code=JsonRpcCode.INTERNAL_ERROR,
                    message="Non-JSON response from RPC",
                    http_status=500,
                ),
                digest,
            )
        return await super().execute_transaction(tx_bytes, signatures)


async def test_finality_timeout_is_reconciled_by_digest(fast_config, alice, bob):
    node = FinalityTimeoutNode()
    tx, thing = _transfer(node, alice, bob.address)
    result = await _submitter(node, fast_config).execute(tx, [alice])

    assert result.success
    assert node.count("execute_transaction") == 1
    assert node.applied == [tx.digest]
    assert node.owner_of(thing.object_id) == bob.address
    (attempt,) = result.attempts
    assert attempt.states == [S.BUILT, S.SIGNED, S.SUBMITTED, S.FAILED, S.FINALIZED]


async def test_server_error_looks_up_digest_then_resubmits(fast_config, alice, bob):
    node = ServerErrorNode()
    tx, _ = _transfer(node, alice, bob.address)
    result = await _submitter(node, fast_config).execute(tx, [alice])

    assert result.success
    assert [method for method, _ in node.calls[:3]] == [
        "execute_transaction", "get_transaction_effects", "execute_transaction",
    ]
    assert node.applied == [tx.digest]
    (attempt,) = result.attempts
    assert attempt.submissions == 2


async def test_execution_failure_still_finalizes(fast_config, alice, bob):
    node = FailingExecutionNode()
    tx, _ = _transfer(node, alice, bob.address)
    result = await _submitter(node, fast_config).execute(tx, [alice])
    assert not result.success
    assert "MoveAbort" in result.effects.error
    assert result.attempts[0].state is S.FINALIZED


async def test_duplicate_submission_is_idempotent(node, fast_config, alice, bob):
    tx, _ = _transfer(node, alice, bob.address)
    signed = sign_transaction(tx, [alice])
    submitter = _submitter(node, fast_config)
    first = await submitter.submit_signed(signed)
    second = await submitter.submit_signed(signed)
    assert first.digest == second.digest
    assert first.effects == second.effects
    assert node.applied == [tx.digest]


async def test_cancellation_keeps_digest_and_state(alice, bob):
    node = FakeNode()
    config = SDKConfig(confirmation_timeout=5.0, poll_interval=0.01, poll_max_interval=0.01)
    tx, _ = _transfer(node, alice, bob.address)
    node.effects_delay_polls = 10**6
    submitter = _submitter(node, config)

    task = asyncio.ensure_future(submitter.execute(tx, [alice]))
    while node.count("get_transaction_effects") < 2:
        await asyncio.sleep(0.005)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    attempt = submitter.last_attempt
    assert attempt.state is S.PENDING
    assert attempt.digest == tx.digest
    assert tx.digest in node.executed


def test_illegal_transitions_raise(alice):
    tx, _ = _transfer(FakeNode(), alice, alice.address)
    attempt = TransactionAttempt(tx)
    assert attempt.digest == tx.digest
    with pytest.raises(RuntimeError, match="illegal transition"):
        attempt.transition(S.FINALIZED)
    attempt.mark_signed(sign_transaction(tx, [alice]))
    with pytest.raises(RuntimeError):
        attempt.mark_signed(sign_transaction(tx, [alice]))
    attempt.transition(S.SUBMITTED)
    attempt.transition(S.REJECTED)
    assert attempt.is_terminal
    with pytest.raises(RuntimeError):
        attempt.transition(S.SUBMITTED)
