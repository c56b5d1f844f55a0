import pytest

from sui_sdk.errors import InvalidTransaction, InvalidTransactionReason as R
from sui_sdk.tx.build import TransactionBuilder, parse_target
from sui_sdk.tx.data import (GAS_COIN, Argument, MakeMoveVec, MoveCall,
                             OwnedObjectArg, PureArg, SplitCoins,
                             TransactionData, TransferObjects)
from sui_sdk.types.core import ZERO_ADDRESS, SharedObjectRef, normalize_address
from sui_sdk.types.move import TypeTag, parse_type_tag
from tests.harness.fake_node import make_ref

SENDER = normalize_address("0xa11ce")
RECIPIENT = normalize_address("0xb0b")
GAS = make_ref(0x9A5, 4)

COIN_SIG = {
    "visibility": "Public",
    "isEntry": True,
    "typeParameters": [{"abilities": ["Store"]}],
    "parameters": [
        {"MutableReference": {"Struct": {"address": "0x2", "module": "coin", "name": "Coin",
                                         "typeArguments": [{"TypeParameter": 0}]}}},
        "U64",
        "Address",
        {"MutableReference": {"Struct": {"address": "0x2", "module": "tx_context",
                                         "name": "TxContext", "typeArguments": []}}},
    ],
    "return": [],
}


def _builder() -> TransactionBuilder:
    return TransactionBuilder(SENDER)


def test_parse_target():
    assert parse_target("0x2::coin::split") == (normalize_address("0x2"), "coin", "split")
    for bad in ("0x2::coin", "coin::split::x", "0x2::1coin::split", "0x2::coin::"):
        with pytest.raises(InvalidTransaction) as ei:
            parse_target(bad)
        assert ei.value.reason is R.INVALID_TARGET


def test_transfer_object_layout():
    b = _builder()
    obj = make_ref(0x5, 2)
    b.transfer_object(obj, RECIPIENT)
    b.set_gas(GAS, budget=1_000, price=1)
    tx = b.build()

    assert tx.inputs == (OwnedObjectArg(obj), PureArg(bytes.fromhex(RECIPIENT[2:])))
    assert tx.commands == (TransferObjects((Argument.input(0),), Argument.input(1)),)
    assert tx.sender == SENDER
    assert tx.gas_data.owner == SENDER
    assert not tx.is_sponsored
    assert tx.expiration is None


def test_transfer_bytes_length_and_roundtrip():
    b = _builder()
    b.transfer_object(make_ref(0x5, 2), RECIPIENT)
    b.set_gas(GAS, budget=1_000, price=1)
    tx = b.build()
    raw = tx.to_bytes()
    assert len(raw) == 276
    assert raw[:3] == b"\x00\x00\x02"  # V1, ProgrammableTransaction, two inputs
    assert TransactionData.from_bytes(raw) == tx
    # deterministic: building again gives the same bytes
    b2 = _builder()
    b2.transfer_object(make_ref(0x5, 2), RECIPIENT)
    b2.set_gas(GAS, budget=1_000, price=1)
    assert b2.build().to_bytes() == raw


def test_same_object_shares_one_input():
    b = _builder()
    coin = make_ref(0x7, 1)
    a1 = b.object(coin)
    a2 = b.object(coin)
    assert a1 == a2 == Argument.input(0)
    assert len(b.inputs) == 1
    assert b.object_ids == (coin.object_id,)


def test_conflicting_versions_of_one_object_are_rejected():
    b = _builder()
    b.object(make_ref(0x7, 1))
    with pytest.raises(InvalidTransaction) as ei:
        b.object(make_ref(0x7, 2))
    assert ei.value.reason is R.INVALID_ARGUMENT


def test_shared_object_mutability_merges():
    b = _builder()
    b.object(SharedObjectRef("0x6", 1, mutable=False))
    b.object(SharedObjectRef("0x6", 1, mutable=True))
    assert b.inputs == (SharedObjectRef("0x6", 1, mutable=True),)
    with pytest.raises(InvalidTransaction):
        b.object(SharedObjectRef("0x6", 2))


def test_pure_inputs_keep_order_and_are_not_deduplicated():
    b = _builder()
    assert b.pure(1) == Argument.input(0)
    assert b.pure(1) == Argument.input(1)
    assert b.pure(5, "u8") == Argument.input(2)
    assert b.inputs[2] == PureArg(b"\x05")


def test_split_and_transfer_sui():
    b = _builder()
    b.transfer_sui(RECIPIENT, 500)
    b.set_gas(GAS, budget=1_000, price=1)
    tx = b.build()
    split, transfer = tx.commands
    assert split == SplitCoins(GAS_COIN, (Argument.input(0),))
    assert tx.inputs[0] == PureArg((500).to_bytes(8, "little"))
    assert transfer == TransferObjects((Argument.nested_result(0, 0),), Argument.input(1))


def test_transfer_whole_gas_coin():
    b = _builder()
    b.transfer_sui(RECIPIENT)
    assert b.commands == (TransferObjects((GAS_COIN,), Argument.input(0)),)


@pytest.mark.parametrize("amount", [0, -5, 1 << 64, True, "10"])
def test_split_amount_must_be_positive_u64(amount):
    with pytest.raises(InvalidTransaction):
        _builder().split_coins(GAS_COIN, [amount])


def test_move_call_with_signature_encodes_typed_arguments():
    b = _builder()
    coin = make_ref(0x7, 3)
    b.move_call(
        "0x2::pay::split_and_transfer",
        [coin, 250, RECIPIENT],
        ["0x2::sui::SUI"],
        signature=COIN_SIG,
    )
    (call,) = b.commands
    assert isinstance(call, MoveCall)
    assert call.target == normalize_address("0x2") + "::pay::split_and_transfer"
    assert call.type_arguments == (parse_type_tag("0x2::sui::SUI"),)
    assert call.arguments == (Argument.input(0), Argument.input(1), Argument.input(2))
    assert b.inputs[0] == OwnedObjectArg(coin)
    assert b.inputs[1] == PureArg((250).to_bytes(8, "little"))
    assert b.inputs[2] == PureArg(bytes.fromhex(RECIPIENT[2:]))


def test_move_call_arity_checks():
    with pytest.raises(InvalidTransaction) as ei:
        _builder().move_call("0x2::pay::split_and_transfer", [make_ref(7)], ["0x2::sui::SUI"], signature=COIN_SIG)
    assert ei.value.reason is R.ARGUMENT_COUNT_MISMATCH

    with pytest.raises(InvalidTransaction) as ei:
        _builder().move_call("0x2::pay::split_and_transfer", [make_ref(7), 1, RECIPIENT], signature=COIN_SIG)
    assert ei.value.reason is R.TYPE_ARGUMENT_COUNT_MISMATCH


def test_move_call_type_mismatches():
    with pytest.raises(InvalidTransaction) as ei:
        _builder().move_call(
            "0x2::pay::split_and_transfer", [123, 1, RECIPIENT], ["0x2::sui::SUI"], signature=COIN_SIG
        )
    assert ei.value.reason is R.ARGUMENT_TYPE_MISMATCH

    with pytest.raises(InvalidTransaction) as ei:
        _builder().move_call(
            "0x2::pay::split_and_transfer", [make_ref(7), make_ref(8), RECIPIENT], ["0x2::sui::SUI"],
            signature=COIN_SIG,
        )
    assert ei.value.reason is R.ARGUMENT_TYPE_MISMATCH

    with pytest.raises(InvalidTransaction) as ei:
        _builder().move_call(
            "0x2::pay::split_and_transfer", [make_ref(7), 1 << 64, RECIPIENT], ["0x2::sui::SUI"],
            signature=COIN_SIG,
        )
    assert ei.value.reason is R.ARGUMENT_TYPE_MISMATCH


def test_move_call_without_signature_infers_and_chains_results():
    b = _builder()
    res = b.move_call("0x2::example::mint", [10, "label"])
    b.move_call("0x2::example::burn", [res])
    assert b.commands[1].arguments == (Argument.result(0),)
    with pytest.raises(InvalidTransaction):
        b.move_call("0x2::example::burn", [Argument.result(5)])


def test_list_of_objects_becomes_make_move_vec():
    b = _builder()
    b.move_call("0x2::example::join", [[make_ref(1), make_ref(2)]])
    vec_cmd, call = b.commands
    assert isinstance(vec_cmd, MakeMoveVec)
    assert vec_cmd.elements == (Argument.input(0), Argument.input(1))
    assert call.arguments == (Argument.result(0),)


def test_make_move_vec_rules():
    b = _builder()
    with pytest.raises(InvalidTransaction) as ei:
        b.make_move_vec([SharedObjectRef("0x6", 1)])
    assert ei.value.reason is R.SHARED_OBJECT_IN_VECTOR
    with pytest.raises(InvalidTransaction):
        b.make_move_vec([])
    b.make_move_vec([1, 2], TypeTag("u64"))
    assert b.commands[-1].type_tag == TypeTag("u64")
    assert b.inputs[-1] == PureArg((2).to_bytes(8, "little"))


def test_merge_and_publish():
    b = _builder()
    b.merge_coins(GAS_COIN, [make_ref(1), make_ref(2)])
    cap = b.publish([b"\x01\x02"], ["0x1", "0x2"])
    b.transfer_objects([cap], SENDER)
    b.set_gas(GAS, budget=5, price=1)
    tx = b.build()
    assert TransactionData.from_bytes(tx.to_bytes()) == tx
    with pytest.raises(InvalidTransaction):
        b.publish([], [])
    with pytest.raises(InvalidTransaction):
        b.merge_coins(GAS_COIN, [])


# --- build-time validation ---------------------------------------------------


def _valid() -> TransactionBuilder:
    b = _builder()
    b.transfer_object(make_ref(5), RECIPIENT)
    return b.set_gas(GAS, budget=1_000, price=1)


def test_zero_sender():
    b = TransactionBuilder(ZERO_ADDRESS)
    b.transfer_object(make_ref(5), RECIPIENT)
    b.set_gas(GAS, budget=1, price=1)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.ZERO_SENDER


def test_empty_transaction():
    b = _builder().set_gas(GAS, budget=1, price=1)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.EMPTY_TRANSACTION


def test_missing_gas():
    b = _builder()
    b.transfer_object(make_ref(5), RECIPIENT)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.MISSING_GAS


@pytest.mark.parametrize("budget", [0, -1])
def test_non_positive_budget(budget):
    b = _valid().set_gas(GAS, budget=budget, price=1)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.NON_POSITIVE_GAS_BUDGET


def test_zero_gas_price():
    b = _valid().set_gas(GAS, budget=10, price=0)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.INVALID_GAS_PRICE


def test_expiration_must_be_in_the_future():
    b = _valid().set_expiration(7)
    with pytest.raises(InvalidTransaction) as ei:
        b.build(current_epoch=7)
    assert ei.value.reason is R.EXPIRATION_NOT_IN_FUTURE
    tx = b.set_expiration(8).build(current_epoch=7)
    assert tx.expiration == 8
    assert len(tx.to_bytes()) == 276 + 8


def test_gas_object_cannot_also_be_an_input():
    b = _builder()
    b.transfer_object(GAS, RECIPIENT)
    b.set_gas(GAS, budget=10, price=1)
    with pytest.raises(InvalidTransaction) as ei:
        b.build()
    assert ei.value.reason is R.GAS_OBJECT_IN_INPUTS


def test_sponsored_gas_owner():
    sponsor = normalize_address("0x5905")
    tx = _valid().set_gas(GAS, budget=10, price=1, owner=sponsor).build()
    assert tx.gas_data.owner == sponsor
    assert tx.is_sponsored


def test_input_limit():
    b = TransactionBuilder(SENDER, max_inputs=2)
    b.pure(1)
    b.pure(2)
    with pytest.raises(InvalidTransaction) as ei:
        b.pure(3)
    assert ei.value.reason is R.TOO_MANY_INPUTS


def test_with_object_refs_preserves_layout():
    tx = _valid().build()
    newer = make_ref(5, 9)
    updated = tx.with_object_refs({newer.object_id: newer}).with_gas_payment((make_ref(0x9A5, 10),))
    assert updated.inputs[0] == OwnedObjectArg(newer)
    assert updated.inputs[1] == tx.inputs[1]
    assert updated.commands == tx.commands
    assert updated.gas_data.payment == (make_ref(0x9A5, 10),)
    assert updated.digest != tx.digest
    assert len(updated.to_bytes()) == len(tx.to_bytes())
