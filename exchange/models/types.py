"""Address and amount types shared by the engine and the HTTP models."""

import re
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator, Field

from exchange.constants import UINT256_MAX

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Lowercase an address and ensure the 0x prefix.

    Lowercase fixed-width hex makes string order equal numeric order, which
    is the order token pairs are canonicalized by.

    Raises:
        ValueError: If validate=True and the result is not a 20-byte hex address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")
    return addr


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and _ADDRESS_RE.match(address.lower()) is not None


def validate_uint256(value: Any) -> str:
    """Coerce an int or decimal string to a canonical uint256 string.

    Raises:
        ValueError: For bools, non-integers, negatives and values above 2^256-1
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Amount must be an integer or decimal string, got {type(value).__name__}")
    try:
        amount = int(value)
    except ValueError as err:
        raise ValueError(f"Amount is not a decimal integer: {value!r}") from err
    if not 0 <= amount <= UINT256_MAX:
        raise ValueError(f"Amount outside uint256 range: {value}")
    return str(amount)


# 20-byte hex address, any case on input, lowercase after validation
Address = Annotated[
    str,
    Field(pattern=r"^0x[a-fA-F0-9]{40}$"),
    AfterValidator(normalize_address),
]

# uint256 carried as a decimal string so JSON clients keep full precision
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="uint256 amount as a decimal string"),
]
