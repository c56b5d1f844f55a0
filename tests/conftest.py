"""
Shared pytest fixtures:
- anyio backend pinned to asyncio
- Well-known BIP-39 phrases and the key pairs derived from them
- A fast SDKConfig (tiny poll intervals and backoff) for submission tests
- A fresh in-memory node per test
"""
from __future__ import annotations

import logging

import pytest

from sui_sdk.config import SDKConfig
from sui_sdk.wallet.keypair import KeyPair
from sui_sdk.wallet.wallet import Wallet
from tests.harness.fake_node import FakeNode

# BIP-39 reference phrases (all-zero entropy).
MNEMONIC_12 = " ".join(["abandon"] * 11 + ["about"])
MNEMONIC_24 = " ".join(["abandon"] * 23 + ["art"])


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _sdk_debug_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="sui_sdk")


@pytest.fixture(scope="session")
def mnemonic_12() -> str:
    return MNEMONIC_12


@pytest.fixture(scope="session")
def mnemonic_24() -> str:
    return MNEMONIC_24


@pytest.fixture(scope="session")
def wallet() -> Wallet:
    return Wallet(MNEMONIC_24)


@pytest.fixture(scope="session")
def alice(wallet: Wallet) -> KeyPair:
    return wallet.derive_account(0, 0, 0)


@pytest.fixture(scope="session")
def bob(wallet: Wallet) -> KeyPair:
    return wallet.derive_account(1, 0, 0)


@pytest.fixture(scope="session")
def carol(wallet: Wallet) -> KeyPair:
    return wallet.derive_account(2, 0, 0)


@pytest.fixture
def fast_config() -> SDKConfig:
    return SDKConfig(
        request_timeout=1.0,
        max_retries=2,
        backoff_base=0.001,
        backoff_max=0.005,
        submit_timeout=1.0,
        confirmation_timeout=0.2,
        poll_interval=0.005,
        poll_max_interval=0.02,
        confirmation_retries=0,
        max_stale_retries=1,
        default_gas_budget=1_000,
    )


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()
