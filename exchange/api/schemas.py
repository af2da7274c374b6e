"""Pydantic request/response models for the exchange HTTP API.

Amounts travel as decimal strings so uint256 values survive JSON.
"""

from pydantic import BaseModel, Field

from exchange.models.types import Address, Uint256
from exchange.pools.pool import Pool


class RegisterTokenRequest(BaseModel):
    token: Address


class CreatePairRequest(BaseModel):
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")

    model_config = {"populate_by_name": True}


class AddLiquidityRequest(BaseModel):
    sender: Address
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    desired_a: Uint256 = Field(alias="desiredA")
    desired_b: Uint256 = Field(alias="desiredB")

    model_config = {"populate_by_name": True}


class SwapRequest(BaseModel):
    sender: Address
    amount_in: Uint256 = Field(alias="amountIn")
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")

    model_config = {"populate_by_name": True}


class ClaimRewardRequest(BaseModel):
    sender: Address
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")

    model_config = {"populate_by_name": True}


class MintRequest(BaseModel):
    token: Address
    recipient: Address
    amount: Uint256


class ApproveRequest(BaseModel):
    token: Address
    owner: Address
    amount: Uint256


class LoyaltyTransfersRequest(BaseModel):
    caller: Address
    enabled: bool


class AdvanceBlocksRequest(BaseModel):
    blocks: int = Field(default=1, ge=0)


class TokenResponse(BaseModel):
    token: Address


class PoolResponse(BaseModel):
    """Public view of a pool."""

    address: Address
    token_low: Address = Field(alias="tokenLow")
    token_high: Address = Field(alias="tokenHigh")
    reserve_low: Uint256 = Field(alias="reserveLow")
    reserve_high: Uint256 = Field(alias="reserveHigh")
    total_shares: Uint256 = Field(alias="totalShares")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolResponse":
        return cls(
            address=pool.address,
            token_low=pool.token_low,
            token_high=pool.token_high,
            reserve_low=str(pool.reserve_low),
            reserve_high=str(pool.reserve_high),
            total_shares=str(pool.total_shares),
        )


class LiquidityResponse(BaseModel):
    amount_a: Uint256 = Field(alias="amountA")
    amount_b: Uint256 = Field(alias="amountB")
    shares_minted: Uint256 = Field(alias="sharesMinted")

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")

    model_config = {"populate_by_name": True}


class AmountResponse(BaseModel):
    amount: Uint256


class BlockResponse(BaseModel):
    block: int


class LoyaltyResponse(BaseModel):
    owner: Address
    transfers_enabled: bool = Field(alias="transfersEnabled")
    total_supply: int = Field(alias="totalSupply")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str
    detail: str
