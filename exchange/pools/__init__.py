"""Pool management package.

Provides PairRegistry and the Pool reserve/liquidity ledger.
"""

from .pool import Pool, UserPosition, canonical_pair, pool_address
from .registry import PairRegistry

__all__ = [
    "PairRegistry",
    "Pool",
    "UserPosition",
    "canonical_pair",
    "pool_address",
]
