"""Pytest configuration and fixtures."""

from collections.abc import Callable
from dataclasses import replace

import pytest

from exchange.config import ExchangeConfig
from exchange.engine import Exchange
from exchange.events import EventBus
from exchange.ledger import InMemoryLedger
from exchange.pools.pool import Pool
from exchange.rewards import ManualBlockClock
from tests.helpers.constants import (
    ALICE,
    BOB,
    CAROL,
    CUSTODY,
    DAI,
    REWARD,
    REWARD_FUNDING,
    REWARD_PER_BLOCK,
    START_BLOCK,
    USDC,
    USER_BALANCE,
    WETH,
)

POOL_TOKENS = (WETH, USDC, DAI)
USERS = (ALICE, BOB, CAROL)


def fund_ledger(ledger: InMemoryLedger) -> InMemoryLedger:
    """Mint pool tokens to every user, approve custody, and fund rewards."""
    for token in POOL_TOKENS:
        for user in USERS:
            ledger.mint(token, user, USER_BALANCE)
            ledger.approve(token, user, USER_BALANCE)
    ledger.mint(REWARD, CUSTODY, REWARD_FUNDING)
    return ledger


@pytest.fixture
def config() -> ExchangeConfig:
    return ExchangeConfig(
        reward_token=REWARD,
        reward_per_block=REWARD_PER_BLOCK,
        start_block=START_BLOCK,
        custody_address=CUSTODY,
    )


@pytest.fixture
def clock() -> ManualBlockClock:
    return ManualBlockClock(START_BLOCK)


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Unfunded ledger; make_exchange funds it."""
    return InMemoryLedger(custody=CUSTODY)


@pytest.fixture
def make_exchange(
    config: ExchangeConfig, clock: ManualBlockClock
) -> Callable[..., Exchange]:
    """Factory for an exchange with WETH, USDC and DAI registered.

    The ledger (fresh if not given) is funded with fund_ledger first.

    Usage:
        exchange = make_exchange(ledger=MyLedger(CUSTODY), per_pool_rewards=True)
    """

    def _make(ledger: InMemoryLedger | None = None, **config_overrides: object) -> Exchange:
        ledger = fund_ledger(ledger if ledger is not None else InMemoryLedger(custody=CUSTODY))
        cfg = config
        if config_overrides:
            cfg = replace(config, **config_overrides)  # type: ignore[arg-type]
        engine = Exchange(ledger=ledger, config=cfg, clock=clock, events=EventBus())
        for token in POOL_TOKENS:
            engine.register_token(token)
        return engine

    return _make


@pytest.fixture
def exchange(make_exchange: Callable[..., Exchange], ledger: InMemoryLedger) -> Exchange:
    return make_exchange(ledger=ledger)


@pytest.fixture
def weth_usdc(exchange: Exchange) -> Pool:
    """Empty WETH/USDC pool."""
    return exchange.create_pair(WETH, USDC)


@pytest.fixture
def seeded_pool(exchange: Exchange, weth_usdc: Pool) -> Pool:
    """WETH/USDC pool with 1000/1000 reserves deposited by ALICE."""
    exchange.add_liquidity(ALICE, WETH, USDC, 1000, 1000)
    return weth_usdc
