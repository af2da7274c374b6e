"""Test helpers module for shared test utilities.

- constants: Token and account addresses, common amounts
"""

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
    UNKNOWN,
    USDC,
    USER_BALANCE,
    WETH,
)

__all__ = [
    # Tokens
    "WETH",
    "USDC",
    "DAI",
    "REWARD",
    "UNKNOWN",
    # Accounts
    "ALICE",
    "BOB",
    "CAROL",
    "CUSTODY",
    # Amounts
    "USER_BALANCE",
    "REWARD_FUNDING",
    "REWARD_PER_BLOCK",
    "START_BLOCK",
]
