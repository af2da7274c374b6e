"""Pair registry mapping unordered token pairs to canonical pools."""

from __future__ import annotations

import structlog

from exchange.errors import IdenticalTokens, PairAlreadyExists, PairNotFound
from exchange.models.types import normalize_address
from exchange.pools.pool import Pool, canonical_pair
from exchange.tokens import TokenRegistry

logger = structlog.get_logger()


class PairRegistry:
    """Registry of pools keyed by canonical token pair.

    A pair has at most one pool regardless of argument order. Pools are
    never removed.
    """

    def __init__(self, tokens: TokenRegistry) -> None:
        self._tokens = tokens
        self._pools: dict[tuple[str, str], Pool] = {}

    def __len__(self) -> int:
        return len(self._pools)

    def create_pair(self, token_a: str, token_b: str) -> Pool:
        """Allocate an empty pool for a pair of registered tokens.

        Args:
            token_a: First token address (any case, any order)
            token_b: Second token address

        Returns:
            The new Pool

        Raises:
            IdenticalTokens: If token_a == token_b
            TokenNotRegistered: If either token is not registered
            PairAlreadyExists: If a pool already exists for the pair
        """
        if normalize_address(token_a) == normalize_address(token_b):
            raise IdenticalTokens(f"Cannot pair {token_a} with itself")
        self._tokens.require(token_a)
        self._tokens.require(token_b)

        key = canonical_pair(token_a, token_b)
        if key in self._pools:
            raise PairAlreadyExists(f"Pair {key[0]}/{key[1]} already exists")

        pool = Pool(token_low=key[0], token_high=key[1])
        self._pools[key] = pool
        logger.debug(
            "pool_allocated",
            token_low=pool.token_low,
            token_high=pool.token_high,
            pool=pool.address,
        )
        return pool

    def get_pair(self, token_a: str, token_b: str) -> Pool | None:
        """Get the pool for a token pair (order independent).

        Returns:
            Pool if found, None otherwise
        """
        return self._pools.get(canonical_pair(token_a, token_b))

    def require_pair(self, token_a: str, token_b: str) -> Pool:
        """Get the pool for a token pair.

        Raises:
            PairNotFound: If no pool exists for the pair
        """
        pool = self.get_pair(token_a, token_b)
        if pool is None:
            low, high = canonical_pair(token_a, token_b)
            raise PairNotFound(f"No pool for pair {low}/{high}")
        return pool

    def all_pairs(self) -> list[Pool]:
        """All pools in creation order."""
        return list(self._pools.values())

    def truncate(self, count: int) -> None:
        """Drop pools created after the first `count`, newest first."""
        while len(self._pools) > count:
            self._pools.popitem()
