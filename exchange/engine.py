"""Exchange engine: pair creation, liquidity provision, swaps and rewards.

Every mutating operation runs under the engine-wide ReentrancyGuard and is
all-or-nothing. The operation journals undo steps for the pool and reward
state it touches and the ledger runs inside a transaction, so any failure
(including one raised by the transfer boundary) leaves pools, positions,
reward state and balances exactly as they were.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import lru_cache

import structlog

from exchange.amm.constant_product import LiquidityResult, SwapResult, constant_product
from exchange.config import DEFAULT_EXCHANGE_CONFIG, ExchangeConfig
from exchange.errors import IdenticalTokens, InsufficientOutput, NonPositiveInput
from exchange.events import (
    Event,
    EventBus,
    LiquidityAdded,
    PairCreated,
    RewardPaid,
    SwapExecuted,
    TokenRegistered,
)
from exchange.guard import ReentrancyGuard
from exchange.ledger import InMemoryLedger, TransferBoundary
from exchange.loyalty import LoyaltyToken
from exchange.models.types import normalize_address
from exchange.pools.pool import Pool, UserPosition
from exchange.pools.registry import PairRegistry
from exchange.rewards import BlockClock, ManualBlockClock, RewardAccrual
from exchange.safe_int import S
from exchange.tokens import TokenRegistry

logger = structlog.get_logger()


class OperationJournal:
    """Events and undo steps collected by one operation."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self._undo: list[Callable[[], None]] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        """Apply undo steps newest first."""
        while self._undo:
            self._undo.pop()()


class Exchange:
    """Constant product exchange with block-based liquidity mining."""

    def __init__(
        self,
        ledger: TransferBoundary,
        config: ExchangeConfig = DEFAULT_EXCHANGE_CONFIG,
        clock: BlockClock | None = None,
        events: EventBus | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            ledger: Transfer boundary holding custody of reserves and rewards
            config: Reward and custody configuration
            clock: Block height source. Defaults to a manual clock at start_block.
            events: Event bus for notifications. Defaults to a private bus.
        """
        self.config = config
        self.ledger = ledger
        self.clock = clock if clock is not None else ManualBlockClock(config.start_block)
        self.events = events or EventBus()
        self.tokens = TokenRegistry(ledger)
        self.pairs = PairRegistry(self.tokens)
        self.rewards = RewardAccrual(
            reward_per_block=config.reward_per_block,
            start_block=config.start_block,
            per_pool=config.per_pool_rewards,
        )
        # Loyalty token shares the bus so observers see its lock toggles
        self.loyalty: LoyaltyToken | None = None
        if config.loyalty_owner is not None:
            self.loyalty = LoyaltyToken(config.loyalty_owner, events=self.events)
        self._guard = ReentrancyGuard()

    # --- Operation plumbing ---

    @contextmanager
    def _operation(self, name: str) -> Iterator[OperationJournal]:
        """Run a mutating operation atomically; publish its events on commit."""
        journal = OperationJournal()
        with self._guard:
            token_count, pair_count = len(self.tokens), len(self.pairs)
            try:
                with self.ledger.transaction():
                    yield journal
            except BaseException as err:
                journal.rollback()
                self.pairs.truncate(pair_count)
                self.tokens.truncate(token_count)
                logger.debug("operation_rolled_back", operation=name, error=type(err).__name__)
                raise
        self.events.publish(journal.events)

    @contextmanager
    def exclusive(self) -> Iterator[Exchange]:
        """Hold the engine guard for a block of reads or sandbox administration.

        Nothing else (including ledger writes made through the engine's
        routes) interleaves with the block.
        """
        with self._guard:
            yield self

    # --- Registration ---

    def register_token(self, token: str) -> str:
        """Register a token so it can be paired.

        Raises:
            AlreadyRegistered: If already registered
            InvalidToken: If the token reports zero total supply
        """
        with self._operation("register_token") as journal:
            token_norm = self.tokens.register(token)
            journal.emit(TokenRegistered(token=token_norm))
        return token_norm

    def create_pair(self, token_a: str, token_b: str) -> Pool:
        """Create the canonical pool for a pair of registered tokens.

        Raises:
            IdenticalTokens: If token_a == token_b
            TokenNotRegistered: If either token is unregistered
            PairAlreadyExists: If the pair already has a pool
        """
        with self._operation("create_pair") as journal:
            pool = self.pairs.create_pair(token_a, token_b)
            journal.emit(
                PairCreated(
                    token_low=pool.token_low,
                    token_high=pool.token_high,
                    pool_address=pool.address,
                )
            )
        return pool

    # --- Liquidity ---

    def add_liquidity(
        self,
        sender: str,
        token_a: str,
        token_b: str,
        desired_a: int,
        desired_b: int,
    ) -> LiquidityResult:
        """Deposit liquidity and mint shares.

        The reward accumulator is advanced first, the sender's pending reward
        is paid out against their previous stake, and their reward debt is
        reset against the new stake.

        Args:
            sender: Depositor address (must have approved custody)
            token_a: First token of the pair
            token_b: Second token of the pair
            desired_a: Maximum amount of token_a to deposit
            desired_b: Maximum amount of token_b to deposit

        Returns:
            LiquidityResult with the amounts taken, in (token_a, token_b) order

        Raises:
            PairNotFound: If the pair has no pool
            InsufficientLiquidity: If a non-empty pool has a zero reserve
            InsufficientBalance, InsufficientAllowance: From the transfer boundary
        """
        sender = normalize_address(sender, validate=True)
        token_a = normalize_address(token_a)
        token_b = normalize_address(token_b)
        with self._operation("add_liquidity") as journal:
            pool = self.pairs.require_pair(token_a, token_b)
            journal.record(self.rewards.snapshot(pool))
            journal.record(pool.snapshot(sender))
            self.rewards.advance(pool, self.clock.current_block())

            reserve_a, reserve_b = pool.get_reserves(token_a)
            result = constant_product.deposit_amounts(
                desired_a, desired_b, reserve_a, reserve_b, pool.total_shares
            )

            self.ledger.transfer_from(token_a, sender, pool.address, result.amount_a)
            self.ledger.transfer_from(token_b, sender, pool.address, result.amount_b)
            pool.deposit(token_a, result.amount_a, result.amount_b, result.shares_minted)

            position = pool.position(sender)
            self._pay_reward(pool, position, sender, journal)
            position.shares = (S(position.shares) + result.shares_minted).value
            position.reward_debt = self.rewards.debt_for(pool, position.shares)

            journal.emit(
                LiquidityAdded(
                    user=sender,
                    token_a=token_a,
                    token_b=token_b,
                    amount_a=result.amount_a,
                    amount_b=result.amount_b,
                    shares_minted=result.shares_minted,
                )
            )
        return result

    # --- Rewards ---

    def pending_reward(self, token_a: str, token_b: str, user: str) -> int:
        """Reward claimable by `user` from this pool right now (read-only).

        Raises:
            PairNotFound: If the pair has no pool
            RewardAccountingError: If bookkeeping is corrupted
        """
        with self._guard:
            pool = self.pairs.require_pair(token_a, token_b)
            return self.rewards.pending(pool, user, self.clock.current_block())

    def claim_reward(self, sender: str, token_a: str, token_b: str) -> int:
        """Pay out the sender's pending reward without changing their stake.

        Returns:
            Amount of reward token paid
        """
        sender = normalize_address(sender, validate=True)
        with self._operation("claim_reward") as journal:
            pool = self.pairs.require_pair(token_a, token_b)
            journal.record(self.rewards.snapshot(pool))
            journal.record(pool.snapshot(sender))
            self.rewards.advance(pool, self.clock.current_block())
            position = pool.position_of(sender)
            if position is None:
                return 0
            paid = self._pay_reward(pool, position, sender, journal)
            position.reward_debt = self.rewards.debt_for(pool, position.shares)
        return paid

    def _pay_reward(
        self,
        pool: Pool,
        position: UserPosition,
        user: str,
        journal: OperationJournal,
    ) -> int:
        owed = self.rewards.settle(pool, position)
        if owed > 0:
            self.ledger.transfer(self.config.reward_token, user, owed)
            journal.emit(RewardPaid(user=user, amount=owed))
        return owed

    # --- Swaps ---

    def quote(self, amount_in: int, token_in: str, token_out: str) -> int:
        """Output a swap would produce right now (read-only).

        Raises:
            NonPositiveInput, IdenticalTokens, PairNotFound, InsufficientLiquidity
        """
        self._check_swap_args(amount_in, token_in, token_out)
        with self._guard:
            pool = self.pairs.require_pair(token_in, token_out)
            reserve_in, reserve_out = pool.get_reserves(token_in)
            return constant_product.get_amount_out(amount_in, reserve_in, reserve_out)

    def swap(self, sender: str, amount_in: int, token_in: str, token_out: str) -> SwapResult:
        """Swap an exact input amount for as much output as the pool gives.

        Reserves are reconciled to the pool's custodial balances afterwards
        rather than adjusted by the nominal amounts.

        Raises:
            NonPositiveInput: If amount_in is not positive
            IdenticalTokens: If token_in == token_out
            PairNotFound: If the pair has no pool
            InsufficientLiquidity: If either reserve is zero
            InsufficientOutput: If the output rounds to zero
            InsufficientBalance, InsufficientAllowance: From the transfer boundary
        """
        sender = normalize_address(sender, validate=True)
        self._check_swap_args(amount_in, token_in, token_out)
        token_in = normalize_address(token_in)
        token_out = normalize_address(token_out)

        with self._operation("swap") as journal:
            pool = self.pairs.require_pair(token_in, token_out)
            journal.record(pool.snapshot())
            reserve_in, reserve_out = pool.get_reserves(token_in)
            amount_out = constant_product.get_amount_out(amount_in, reserve_in, reserve_out)
            if amount_out == 0:
                raise InsufficientOutput(
                    f"Swap of {amount_in} {token_in} yields zero {token_out}"
                )

            self.ledger.transfer_from(token_in, sender, pool.address, amount_in)
            self.ledger.transfer(token_out, sender, amount_out, source=pool.address)
            pool.reconcile(
                self.ledger.balance_of(pool.token_low, pool.address),
                self.ledger.balance_of(pool.token_high, pool.address),
            )

            journal.emit(
                SwapExecuted(
                    sender=sender,
                    amount_in=amount_in,
                    amount_out=amount_out,
                    token_in=token_in,
                    token_out=token_out,
                )
            )
        return SwapResult(
            amount_in=amount_in,
            amount_out=amount_out,
            token_in=token_in,
            token_out=token_out,
            pool_address=pool.address,
        )

    @staticmethod
    def _check_swap_args(amount_in: int, token_in: str, token_out: str) -> None:
        if amount_in <= 0:
            raise NonPositiveInput(f"Swap input must be positive, got {amount_in}")
        if normalize_address(token_in) == normalize_address(token_out):
            raise IdenticalTokens(f"Cannot swap {token_in} for itself")


def _create_default_exchange() -> Exchange:
    """Create a sandbox exchange over an in-memory ledger, configured from env."""
    config = ExchangeConfig.from_env()
    ledger = InMemoryLedger(custody=config.custody_address)
    logger.info(
        "exchange_created",
        reward_token=config.reward_token,
        reward_per_block=config.reward_per_block,
        per_pool_rewards=config.per_pool_rewards,
        loyalty_owner=config.loyalty_owner,
    )
    return Exchange(ledger=ledger, config=config)


@lru_cache(maxsize=1)
def get_default_exchange() -> Exchange:
    """Process-wide sandbox exchange used by the HTTP API."""
    return _create_default_exchange()
