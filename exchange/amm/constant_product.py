"""Constant product AMM math.

Uses the formula: x * y = k
With a 0.3% fee on input amounts.

All functions are pure and operate on uint256-checked integers with floor
division throughout.
"""

from __future__ import annotations

from dataclasses import dataclass

from exchange.constants import FEE_DENOMINATOR, FEE_MULTIPLIER
from exchange.errors import InsufficientLiquidity
from exchange.safe_int import S


@dataclass(frozen=True)
class SwapResult:
    """Result of executing a swap against a pool."""

    amount_in: int
    amount_out: int
    token_in: str
    token_out: str
    pool_address: str


@dataclass(frozen=True)
class LiquidityResult:
    """Amounts actually taken for a deposit, in caller orientation."""

    amount_a: int
    amount_b: int
    shares_minted: int


class ConstantProduct:
    """Constant product pricing and liquidity minting.

    Formula: amount_out = (amount_in * 997 * reserve_out) / (reserve_in * 1000 + amount_in * 997)

    The 997/1000 factor accounts for the 0.3% fee.
    """

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate output amount using constant product formula.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pool
            reserve_out: Reserve of output token in pool

        Returns:
            Output token amount (floor)

        Raises:
            InsufficientLiquidity: If either reserve is zero
            ArithmeticOverflow: If an intermediate product exceeds uint256
        """
        if reserve_in == 0 or reserve_out == 0:
            raise InsufficientLiquidity(
                f"Cannot price against empty reserves ({reserve_in}, {reserve_out})"
            )

        amount_in_with_fee = S(amount_in) * FEE_MULTIPLIER
        numerator = amount_in_with_fee * reserve_out
        denominator = S(reserve_in) * FEE_DENOMINATOR + amount_in_with_fee

        return (numerator // denominator).value

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of B that keeps reserves proportional to a deposit of amount_a.

        Raises:
            InsufficientLiquidity: If either reserve is zero
        """
        if reserve_a == 0 or reserve_b == 0:
            raise InsufficientLiquidity(
                f"Cannot quote against empty reserves ({reserve_a}, {reserve_b})"
            )
        return (S(amount_a) * reserve_b // reserve_a).value

    def deposit_amounts(
        self,
        desired_a: int,
        desired_b: int,
        reserve_a: int,
        reserve_b: int,
        total_shares: int,
    ) -> LiquidityResult:
        """Compute the amounts taken and the shares minted for a deposit.

        An empty pool (no shares) takes the desired amounts as given and mints
        the geometric mean, which fixes the initial price and share scale.
        Otherwise the deposit is trimmed on one side to the current reserve
        ratio and shares are minted pro rata, taking the smaller side so
        rounding on either reserve never over-mints.

        Args:
            desired_a: Maximum amount of token A to deposit
            desired_b: Maximum amount of token B to deposit
            reserve_a: Pool reserve of token A
            reserve_b: Pool reserve of token B
            total_shares: Shares outstanding before the deposit

        Returns:
            LiquidityResult with amounts in (A, B) orientation
        """
        if total_shares == 0:
            minted = (S(desired_a) * desired_b).isqrt()
            return LiquidityResult(S(desired_a).value, S(desired_b).value, minted.value)

        amount_b_optimal = self.quote(desired_a, reserve_a, reserve_b)
        if amount_b_optimal <= desired_b:
            amount_a, amount_b = desired_a, amount_b_optimal
        else:
            amount_a, amount_b = self.quote(desired_b, reserve_b, reserve_a), desired_b

        minted = (S(amount_a) * total_shares // reserve_a).min(
            S(amount_b) * total_shares // reserve_b
        )
        return LiquidityResult(amount_a, amount_b, minted.value)


# Module-level instance
constant_product = ConstantProduct()


__all__ = [
    "ConstantProduct",
    "LiquidityResult",
    "SwapResult",
    "constant_product",
]
