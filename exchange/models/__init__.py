"""Pydantic models and shared types for the exchange."""

from exchange.models.types import (
    Address,
    Uint256,
    is_valid_address,
    normalize_address,
    validate_uint256,
)

__all__ = [
    "Address",
    "Uint256",
    "is_valid_address",
    "normalize_address",
    "validate_uint256",
]
