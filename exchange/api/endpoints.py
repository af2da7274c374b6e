"""API endpoints for the exchange."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from exchange.api.schemas import (
    AddLiquidityRequest,
    AdvanceBlocksRequest,
    AmountResponse,
    ApproveRequest,
    BlockResponse,
    ClaimRewardRequest,
    CreatePairRequest,
    LiquidityResponse,
    LoyaltyResponse,
    LoyaltyTransfersRequest,
    MintRequest,
    PoolResponse,
    RegisterTokenRequest,
    SwapRequest,
    SwapResponse,
    TokenResponse,
)
from exchange.engine import Exchange, get_default_exchange
from exchange.errors import PairNotFound
from exchange.ledger import InMemoryLedger
from exchange.loyalty import LoyaltyToken
from exchange.rewards import ManualBlockClock

logger = structlog.get_logger()

router = APIRouter()


def get_exchange() -> Exchange:
    """Dependency provider for the exchange instance.

    Override this in tests to inject an isolated engine:
        app.dependency_overrides[get_exchange] = lambda: engine

    Returns:
        The exchange instance to operate on.
    """
    return get_default_exchange()


@router.post("/tokens", status_code=201)
def register_token(
    request: RegisterTokenRequest, engine: Exchange = Depends(get_exchange)
) -> TokenResponse:
    return TokenResponse(token=engine.register_token(request.token))


@router.get("/tokens")
def list_tokens(engine: Exchange = Depends(get_exchange)) -> list[str]:
    with engine.exclusive():
        return engine.tokens.tokens


@router.post("/pairs", status_code=201)
def create_pair(
    request: CreatePairRequest, engine: Exchange = Depends(get_exchange)
) -> PoolResponse:
    pool = engine.create_pair(request.token_a, request.token_b)
    return PoolResponse.from_pool(pool)


@router.get("/pairs")
def list_pairs(engine: Exchange = Depends(get_exchange)) -> list[PoolResponse]:
    with engine.exclusive():
        return [PoolResponse.from_pool(pool) for pool in engine.pairs.all_pairs()]


@router.get("/pairs/{token_a}/{token_b}")
def get_pair(token_a: str, token_b: str, engine: Exchange = Depends(get_exchange)) -> PoolResponse:
    with engine.exclusive():
        pool = engine.pairs.get_pair(token_a, token_b)
        if pool is None:
            raise PairNotFound(f"No pool for pair {token_a}/{token_b}")
        return PoolResponse.from_pool(pool)


@router.post("/liquidity")
def add_liquidity(
    request: AddLiquidityRequest, engine: Exchange = Depends(get_exchange)
) -> LiquidityResponse:
    result = engine.add_liquidity(
        sender=request.sender,
        token_a=request.token_a,
        token_b=request.token_b,
        desired_a=int(request.desired_a),
        desired_b=int(request.desired_b),
    )
    return LiquidityResponse(
        amount_a=str(result.amount_a),
        amount_b=str(result.amount_b),
        shares_minted=str(result.shares_minted),
    )


@router.post("/swap")
def swap(request: SwapRequest, engine: Exchange = Depends(get_exchange)) -> SwapResponse:
    result = engine.swap(
        sender=request.sender,
        amount_in=int(request.amount_in),
        token_in=request.token_in,
        token_out=request.token_out,
    )
    return SwapResponse(
        amount_in=str(result.amount_in),
        amount_out=str(result.amount_out),
        token_in=result.token_in,
        token_out=result.token_out,
    )


@router.get("/quote")
def quote(
    token_in: str = Query(alias="tokenIn"),
    token_out: str = Query(alias="tokenOut"),
    amount_in: int = Query(alias="amountIn"),
    engine: Exchange = Depends(get_exchange),
) -> AmountResponse:
    return AmountResponse(amount=str(engine.quote(amount_in, token_in, token_out)))


@router.get("/rewards/{token_a}/{token_b}/{user}")
def pending_reward(
    token_a: str,
    token_b: str,
    user: str,
    engine: Exchange = Depends(get_exchange),
) -> AmountResponse:
    return AmountResponse(amount=str(engine.pending_reward(token_a, token_b, user)))


@router.post("/rewards/claim")
def claim_reward(
    request: ClaimRewardRequest, engine: Exchange = Depends(get_exchange)
) -> AmountResponse:
    paid = engine.claim_reward(request.sender, request.token_a, request.token_b)
    return AmountResponse(amount=str(paid))


# --- Sandbox routes (in-memory ledger and manual clock only) ---


def _sandbox_ledger(engine: Exchange) -> InMemoryLedger:
    if not isinstance(engine.ledger, InMemoryLedger):
        raise HTTPException(status_code=501, detail="Ledger does not support sandbox operations")
    return engine.ledger


@router.post("/ledger/mint")
def mint(request: MintRequest, engine: Exchange = Depends(get_exchange)) -> AmountResponse:
    ledger = _sandbox_ledger(engine)
    with engine.exclusive():
        ledger.mint(request.token, request.recipient, int(request.amount))
        return AmountResponse(amount=str(ledger.balance_of(request.token, request.recipient)))


@router.post("/ledger/approve")
def approve(request: ApproveRequest, engine: Exchange = Depends(get_exchange)) -> AmountResponse:
    ledger = _sandbox_ledger(engine)
    with engine.exclusive():
        ledger.approve(request.token, request.owner, int(request.amount))
        return AmountResponse(amount=str(ledger.allowance(request.token, request.owner)))


@router.get("/ledger/{token}/{holder}")
def balance(token: str, holder: str, engine: Exchange = Depends(get_exchange)) -> AmountResponse:
    with engine.exclusive():
        return AmountResponse(amount=str(engine.ledger.balance_of(token, holder)))


@router.post("/blocks/advance")
def advance_blocks(
    request: AdvanceBlocksRequest, engine: Exchange = Depends(get_exchange)
) -> BlockResponse:
    if not isinstance(engine.clock, ManualBlockClock):
        raise HTTPException(status_code=501, detail="Block clock cannot be advanced")
    with engine.exclusive():
        block = engine.clock.advance(request.blocks)
    logger.info("blocks_advanced", blocks=request.blocks, block=block)
    return BlockResponse(block=block)


# --- Loyalty token administration ---


def _loyalty(engine: Exchange) -> LoyaltyToken:
    if engine.loyalty is None:
        raise HTTPException(status_code=501, detail="Loyalty token is not configured")
    return engine.loyalty


def _loyalty_response(loyalty: LoyaltyToken) -> LoyaltyResponse:
    return LoyaltyResponse(
        owner=loyalty.owner,
        transfers_enabled=loyalty.transfers_enabled,
        total_supply=loyalty.total_supply,
    )


@router.get("/loyalty")
def loyalty_status(engine: Exchange = Depends(get_exchange)) -> LoyaltyResponse:
    return _loyalty_response(_loyalty(engine))


@router.post("/loyalty/transfers")
def set_loyalty_transfers(
    request: LoyaltyTransfersRequest, engine: Exchange = Depends(get_exchange)
) -> LoyaltyResponse:
    """Owner-only switch for the loyalty transfer lock."""
    loyalty = _loyalty(engine)
    loyalty.set_transfers_enabled(request.caller, request.enabled)
    return _loyalty_response(loyalty)
