"""Engine configuration."""

import os
from dataclasses import dataclass

from exchange.constants import DEFAULT_CUSTODY, DEFAULT_REWARD_PER_BLOCK
from exchange.models.types import normalize_address

# Reward token used when none is configured
DEFAULT_REWARD_TOKEN = "0x00000000000000000000000000000000000000aa"


@dataclass(frozen=True)
class ExchangeConfig:
    """Centralized configuration for the exchange engine.

    Attributes:
        reward_token: Token paid out as liquidity-mining reward
        reward_per_block: Fixed emission rate (reward token base units per block)
        start_block: Block height the reward accumulator starts from
        custody_address: Holder of pool reserves and undistributed rewards
        per_pool_rewards: If True, each pool keeps its own reward accumulator.
            If False (default), one accumulator is shared by all pools and
            advanced with whichever pool the current operation touches.
        loyalty_owner: Administrator of the loyalty token. None disables it.
    """

    reward_token: str = DEFAULT_REWARD_TOKEN
    reward_per_block: int = DEFAULT_REWARD_PER_BLOCK
    start_block: int = 0
    custody_address: str = DEFAULT_CUSTODY
    per_pool_rewards: bool = False
    loyalty_owner: str | None = None

    def __post_init__(self) -> None:
        if self.reward_per_block < 0:
            raise ValueError(f"reward_per_block must be non-negative: {self.reward_per_block}")
        if self.start_block < 0:
            raise ValueError(f"start_block must be non-negative: {self.start_block}")
        object.__setattr__(self, "reward_token", normalize_address(self.reward_token, validate=True))
        object.__setattr__(
            self, "custody_address", normalize_address(self.custody_address, validate=True)
        )
        if self.loyalty_owner is not None:
            object.__setattr__(
                self, "loyalty_owner", normalize_address(self.loyalty_owner, validate=True)
            )

    @classmethod
    def from_env(cls) -> "ExchangeConfig":
        """Build a config from environment variables with sensible defaults.

        - EXCHANGE_REWARD_TOKEN: Reward token address
        - EXCHANGE_REWARD_PER_BLOCK: Emission rate (default: 1e18)
        - EXCHANGE_START_BLOCK: Initial accumulator block (default: 0)
        - EXCHANGE_CUSTODY: Custody address
        - EXCHANGE_PER_POOL_REWARDS: Per-pool accumulators (default: false)
        - EXCHANGE_LOYALTY_OWNER: Loyalty token administrator (default: none)
        """
        return cls(
            reward_token=os.environ.get("EXCHANGE_REWARD_TOKEN", DEFAULT_REWARD_TOKEN),
            reward_per_block=int(
                os.environ.get("EXCHANGE_REWARD_PER_BLOCK", str(DEFAULT_REWARD_PER_BLOCK))
            ),
            start_block=int(os.environ.get("EXCHANGE_START_BLOCK", "0")),
            custody_address=os.environ.get("EXCHANGE_CUSTODY", DEFAULT_CUSTODY),
            per_pool_rewards=os.environ.get("EXCHANGE_PER_POOL_REWARDS", "false").lower()
            in ("true", "1", "yes"),
            loyalty_owner=os.environ.get("EXCHANGE_LOYALTY_OWNER") or None,
        )


# Default configuration instance
DEFAULT_EXCHANGE_CONFIG = ExchangeConfig()
