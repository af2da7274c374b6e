"""FastAPI application for the exchange sandbox.

The default engine runs over an in-memory ledger with a manual block clock;
see exchange.engine.get_default_exchange.
"""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from exchange import __version__
from exchange.api.endpoints import router
from exchange.api.schemas import ErrorResponse
from exchange.errors import (
    AlreadyRegistered,
    ExchangeError,
    NotAuthorized,
    PairAlreadyExists,
    PairNotFound,
    ReentrancyError,
    RewardAccountingError,
    TokenNotRegistered,
)
from exchange.safe_int import SafeIntError

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("EXCHANGE_HOST", "0.0.0.0")
PORT = int(os.environ.get("EXCHANGE_PORT", "8000"))
DEBUG = os.environ.get("EXCHANGE_DEBUG", "false").lower() in ("true", "1", "yes")

logger = structlog.get_logger()

app = FastAPI(
    title="Constant Product Exchange",
    description="AMM exchange with block-based liquidity mining",
    version=__version__,
)

app.include_router(router)


def status_for(error: ExchangeError) -> int:
    """HTTP status for an engine error."""
    if isinstance(error, (RewardAccountingError, SafeIntError)):
        return 500
    if isinstance(error, NotAuthorized):
        return 403
    if isinstance(error, (PairNotFound, TokenNotRegistered)):
        return 404
    if isinstance(error, (AlreadyRegistered, PairAlreadyExists, ReentrancyError)):
        return 409
    return 400


@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.warning
    log("operation_rejected", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
    )


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for console output."""
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


def run() -> None:
    """Run the exchange API server.

    Configuration via environment variables:
    - EXCHANGE_HOST: Host to bind to (default: 0.0.0.0)
    - EXCHANGE_PORT: Port to bind to (default: 8000)
    - EXCHANGE_DEBUG: Enable debug logging and reload mode (default: false)
    """
    configure_logging(verbose=DEBUG)
    uvicorn.run(
        "exchange.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
