"""Registry of tokens eligible to participate in pools."""

from __future__ import annotations

import structlog

from exchange.errors import AlreadyRegistered, InvalidToken, TokenNotRegistered
from exchange.ledger import TransferBoundary
from exchange.models.types import normalize_address

logger = structlog.get_logger()


class TokenRegistry:
    """Set of registered token addresses.

    Registration is permanent. The only validity check is that the transfer
    boundary reports a non-zero total supply for the token.
    """

    def __init__(self, ledger: TransferBoundary) -> None:
        self._ledger = ledger
        # Insertion ordered; values are always True
        self._tokens: dict[str, bool] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.is_registered(token)

    @property
    def tokens(self) -> list[str]:
        return list(self._tokens)

    def is_registered(self, token: str) -> bool:
        return self._tokens.get(normalize_address(token), False)

    def require(self, token: str) -> str:
        """Return the normalized address of a registered token.

        Raises:
            TokenNotRegistered: If the token is not registered
        """
        token_norm = normalize_address(token)
        if not self._tokens.get(token_norm, False):
            raise TokenNotRegistered(f"Token {token_norm} is not registered")
        return token_norm

    def register(self, token: str) -> str:
        """Mark a token as eligible for pools.

        Args:
            token: Token address

        Returns:
            Normalized token address

        Raises:
            ValueError: If the address is malformed
            AlreadyRegistered: If the token is already registered
            InvalidToken: If the token reports zero total supply
        """
        token_norm = normalize_address(token, validate=True)
        if token_norm in self._tokens:
            raise AlreadyRegistered(f"Token {token_norm} is already registered")
        if self._ledger.total_supply(token_norm) == 0:
            raise InvalidToken(f"Token {token_norm} reports zero total supply")

        self._tokens[token_norm] = True
        logger.debug("token_registered", token=token_norm)
        return token_norm

    def truncate(self, count: int) -> None:
        """Forget tokens registered after the first `count`."""
        while len(self._tokens) > count:
            self._tokens.popitem()
