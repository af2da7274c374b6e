"""Loyalty token: a non-fungible mint/burn counter with a transfer lock.

Transfers between holders are blocked while the lock is engaged (the
default). Minting and burning are always allowed. Only the owner may toggle
the lock.
"""

from __future__ import annotations

import structlog

from exchange.errors import NotAuthorized, NotOwner, TransfersLocked, UnknownLoyaltyToken
from exchange.events import EventBus, LoyaltyTransfersToggled
from exchange.models.types import normalize_address

logger = structlog.get_logger()


class LoyaltyToken:
    """Sequentially numbered non-fungible tokens."""

    def __init__(self, owner: str, events: EventBus | None = None) -> None:
        self.owner = normalize_address(owner, validate=True)
        self.events = events or EventBus()
        self.transfers_enabled = False
        self._next_id = 1
        self._owners: dict[int, str] = {}

    @property
    def total_supply(self) -> int:
        return len(self._owners)

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise UnknownLoyaltyToken(f"Loyalty token {token_id} does not exist") from None

    def balance_of(self, holder: str) -> int:
        holder_norm = normalize_address(holder)
        return sum(1 for owner in self._owners.values() if owner == holder_norm)

    def mint(self, recipient: str) -> int:
        """Issue a new token to recipient and return its id."""
        token_id = self._next_id
        self._next_id += 1
        self._owners[token_id] = normalize_address(recipient, validate=True)
        logger.debug("loyalty_minted", token_id=token_id, recipient=self._owners[token_id])
        return token_id

    def burn(self, holder: str, token_id: int) -> None:
        """Destroy a token.

        Raises:
            NotOwner: If holder does not currently own token_id
        """
        if self._owners.get(token_id) != normalize_address(holder):
            raise NotOwner(f"{holder} does not own loyalty token {token_id}")
        del self._owners[token_id]
        logger.debug("loyalty_burned", token_id=token_id, holder=holder)

    def transfer(self, sender: str, recipient: str, token_id: int) -> None:
        """Move a token between holders.

        Raises:
            TransfersLocked: If transfers are disabled
            NotOwner: If sender does not own token_id
        """
        if not self.transfers_enabled:
            raise TransfersLocked("Loyalty token transfers are disabled")
        if self._owners.get(token_id) != normalize_address(sender):
            raise NotOwner(f"{sender} does not own loyalty token {token_id}")
        self._owners[token_id] = normalize_address(recipient, validate=True)

    def set_transfers_enabled(self, caller: str, enabled: bool) -> None:
        """Administrative switch for the transfer lock.

        Raises:
            NotAuthorized: If caller is not the owner
        """
        if normalize_address(caller) != self.owner:
            raise NotAuthorized(f"{caller} is not the loyalty token owner")
        self.transfers_enabled = enabled
        self.events.publish([LoyaltyTransfersToggled(enabled=enabled)])
