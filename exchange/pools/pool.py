"""Pool reserve and liquidity ledger."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from exchange.models.types import normalize_address
from exchange.safe_int import S


def canonical_pair(token_a: str, token_b: str) -> tuple[str, str]:
    """Order two token addresses smaller-first.

    Both (A, B) and (B, A) map to the same tuple, which is the pool key.
    """
    token_a_norm = normalize_address(token_a)
    token_b_norm = normalize_address(token_b)
    if token_a_norm > token_b_norm:
        return token_b_norm, token_a_norm
    return token_a_norm, token_b_norm


def pool_address(token_low: str, token_high: str) -> str:
    """Deterministic custody address for a canonical pair."""
    digest = hashlib.sha256(f"{token_low}:{token_high}".encode()).hexdigest()
    return "0x" + digest[-40:]


@dataclass
class UserPosition:
    """A user's stake in one pool."""

    shares: int = 0
    # Accumulator value (scaled) already credited to this user
    reward_debt: int = 0


@dataclass
class Pool:
    """Reserves and liquidity shares for one canonical token pair.

    Reserves are held at `address` on the transfer boundary. The pool
    never moves tokens itself; the engine transfers and then records the
    deltas here.
    """

    token_low: str
    token_high: str
    reserve_low: int = 0
    reserve_high: int = 0
    total_shares: int = 0
    positions: dict[str, UserPosition] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return self.token_low, self.token_high

    @property
    def address(self) -> str:
        return pool_address(self.token_low, self.token_high)

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        token_in_norm = normalize_address(token_in)
        if token_in_norm == self.token_low:
            return self.reserve_low, self.reserve_high
        elif token_in_norm == self.token_high:
            return self.reserve_high, self.reserve_low
        else:
            raise ValueError(f"Token {token_in} not in pool")

    def position_of(self, user: str) -> UserPosition | None:
        return self.positions.get(normalize_address(user))

    def position(self, user: str) -> UserPosition:
        """Get the user's position, creating an empty one on first use."""
        user_norm = normalize_address(user)
        if user_norm not in self.positions:
            self.positions[user_norm] = UserPosition()
        return self.positions[user_norm]

    def deposit(self, token_a: str, amount_a: int, amount_b: int, shares: int) -> None:
        """Record a deposit given in (token_a, other) orientation."""
        if normalize_address(token_a) == self.token_low:
            amount_low, amount_high = amount_a, amount_b
        else:
            amount_low, amount_high = amount_b, amount_a
        self.reserve_low = (S(self.reserve_low) + amount_low).value
        self.reserve_high = (S(self.reserve_high) + amount_high).value
        self.total_shares = (S(self.total_shares) + shares).value

    def reconcile(self, balance_low: int, balance_high: int) -> None:
        """Set reserves to the custodial balances reported by the ledger."""
        self.reserve_low = S(balance_low).value
        self.reserve_high = S(balance_high).value

    def snapshot(self, user: str | None = None) -> Callable[[], None]:
        """Capture reserves, share supply and one user's position.

        Returns:
            Function that puts them back in place
        """
        totals = (self.reserve_low, self.reserve_high, self.total_shares)
        user_norm = normalize_address(user) if user is not None else None
        existing = self.positions.get(user_norm) if user_norm is not None else None
        saved = replace(existing) if existing is not None else None

        def restore() -> None:
            self.reserve_low, self.reserve_high, self.total_shares = totals
            if user_norm is None:
                return
            if saved is None:
                self.positions.pop(user_norm, None)
            elif user_norm in self.positions:
                vars(self.positions[user_norm]).update(vars(saved))
            else:
                self.positions[user_norm] = saved

        return restore
