"""Constant product exchange with block-based liquidity mining."""

from exchange.config import ExchangeConfig
from exchange.engine import Exchange, get_default_exchange
from exchange.ledger import InMemoryLedger, TransferBoundary
from exchange.loyalty import LoyaltyToken

__version__ = "0.1.0"
__all__ = [
    "Exchange",
    "ExchangeConfig",
    "InMemoryLedger",
    "LoyaltyToken",
    "TransferBoundary",
    "get_default_exchange",
    "__version__",
]
