"""AMM pricing and liquidity math."""

from exchange.amm.constant_product import (
    ConstantProduct,
    LiquidityResult,
    SwapResult,
    constant_product,
)

__all__ = ["ConstantProduct", "LiquidityResult", "SwapResult", "constant_product"]
