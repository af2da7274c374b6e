"""Block-based liquidity-mining reward accrual.

A reward stream of `reward_per_block` tokens is emitted every block and
credited to liquidity shares through a fixed-point accumulator:

    acc_reward_per_share += elapsed_blocks * reward_per_block * 10^12 / total_shares

A user's claim is `shares * acc / 10^12 - reward_debt`, where reward_debt is
the accumulator value already credited to them, scaled by their shares.
Accrual is lazy: the accumulator only moves when a pool-touching operation
advances it.

By default a single accumulator is shared across every pool and advanced
with whichever pool's total_shares the current operation touches. With
`per_pool=True` each pool owns its own RewardState instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

import structlog

from exchange.constants import ACC_PRECISION
from exchange.errors import RewardAccountingError
from exchange.pools.pool import Pool, UserPosition
from exchange.safe_int import S, Underflow

logger = structlog.get_logger()


@runtime_checkable
class BlockClock(Protocol):
    """Source of the current block height."""

    def current_block(self) -> int: ...


class ManualBlockClock:
    """Block clock advanced explicitly (sandbox and tests)."""

    def __init__(self, block: int = 0) -> None:
        if block < 0:
            raise ValueError(f"Block height must be non-negative: {block}")
        self._block = block

    def current_block(self) -> int:
        return self._block

    def advance(self, blocks: int = 1) -> int:
        """Move forward by `blocks` and return the new height."""
        if blocks < 0:
            raise ValueError(f"Block height cannot move backward: {blocks}")
        self._block += blocks
        return self._block


@dataclass
class RewardState:
    """Reward accumulator."""

    reward_per_block: int
    last_update_block: int
    # Scaled by ACC_PRECISION, monotonically non-decreasing
    acc_reward_per_share: int = 0

    def projected(self, total_shares: int, block: int) -> int:
        """Accumulator value an advance to `block` would produce."""
        if block <= self.last_update_block or total_shares == 0:
            return self.acc_reward_per_share
        elapsed = block - self.last_update_block
        reward = S(elapsed) * self.reward_per_block
        return (S(self.acc_reward_per_share) + reward * ACC_PRECISION // total_shares).value


class RewardAccrual:
    """Accumulator bookkeeping and per-user reward settlement math."""

    def __init__(self, reward_per_block: int, start_block: int = 0, per_pool: bool = False) -> None:
        self._reward_per_block = reward_per_block
        self._start_block = start_block
        self._per_pool = per_pool
        self._shared = self._fresh_state()
        self._states: dict[tuple[str, str], RewardState] = {}

    @property
    def per_pool(self) -> bool:
        return self._per_pool

    def _fresh_state(self) -> RewardState:
        return RewardState(
            reward_per_block=self._reward_per_block,
            last_update_block=self._start_block,
        )

    def state_for(self, pool: Pool) -> RewardState:
        """Accumulator used for `pool`, created on first use in per-pool mode."""
        if not self._per_pool:
            return self._shared
        if pool.key not in self._states:
            self._states[pool.key] = self._fresh_state()
        return self._states[pool.key]

    def peek_state(self, pool: Pool) -> RewardState:
        """Like state_for, but never creates state."""
        if not self._per_pool:
            return self._shared
        return self._states.get(pool.key) or self._fresh_state()

    def advance(self, pool: Pool, block: int) -> bool:
        """Bring the accumulator up to `block` using this pool's liquidity.

        Returns:
            True if state changed, False if already advanced for this block
        """
        state = self.state_for(pool)
        if block <= state.last_update_block:
            return False

        previous = state.acc_reward_per_share
        state.acc_reward_per_share = state.projected(pool.total_shares, block)
        logger.debug(
            "reward_accumulator_advanced",
            pool=pool.address,
            from_block=state.last_update_block,
            to_block=block,
            total_shares=pool.total_shares,
            acc_delta=state.acc_reward_per_share - previous,
        )
        state.last_update_block = block
        return True

    def pending(self, pool: Pool, user: str, block: int) -> int:
        """Reward the user could claim at `block`, without mutating state.

        Raises:
            RewardAccountingError: If the user's debt exceeds their accrued reward
        """
        position = pool.position_of(user)
        if position is None:
            return 0
        acc = self.peek_state(pool).projected(pool.total_shares, block)
        return self._owed(position, acc)

    def settle(self, pool: Pool, position: UserPosition) -> int:
        """Reward owed against the current accumulator. Call after advance()."""
        return self._owed(position, self.state_for(pool).acc_reward_per_share)

    def debt_for(self, pool: Pool, shares: int) -> int:
        """Reward debt for a stake of `shares` at the current accumulator."""
        return (S(shares) * self.state_for(pool).acc_reward_per_share // ACC_PRECISION).value

    def _owed(self, position: UserPosition, acc: int) -> int:
        accrued = S(position.shares) * acc // ACC_PRECISION
        try:
            return (accrued - position.reward_debt).value
        except Underflow as err:
            raise RewardAccountingError(
                f"Reward debt {position.reward_debt} exceeds accrued {accrued.value}"
            ) from err

    def snapshot(self, pool: Pool) -> Callable[[], None]:
        """Capture the accumulator `pool` uses.

        Returns:
            Function that puts it back, dropping a per-pool state created since
        """
        if not self._per_pool:
            shared = replace(self._shared)
            return lambda: vars(self._shared).update(vars(shared))

        key = pool.key
        existing = self._states.get(key)
        saved = replace(existing) if existing is not None else None

        def restore() -> None:
            if saved is None:
                self._states.pop(key, None)
            elif key in self._states:
                vars(self._states[key]).update(vars(saved))
            else:
                self._states[key] = saved

        return restore
