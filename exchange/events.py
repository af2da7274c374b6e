"""Notifications emitted for off-system observers.

The engine never consumes its own events. They are published only after an
operation commits, so observers never see events for rolled-back work.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenRegistered:
    token: str


@dataclass(frozen=True)
class PairCreated:
    token_low: str
    token_high: str
    pool_address: str


@dataclass(frozen=True)
class SwapExecuted:
    sender: str
    amount_in: int
    amount_out: int
    token_in: str
    token_out: str


@dataclass(frozen=True)
class LiquidityAdded:
    user: str
    token_a: str
    token_b: str
    amount_a: int
    amount_b: int
    shares_minted: int


@dataclass(frozen=True)
class RewardPaid:
    user: str
    amount: int


@dataclass(frozen=True)
class LoyaltyTransfersToggled:
    enabled: bool


Event = (
    TokenRegistered
    | PairCreated
    | SwapExecuted
    | LiquidityAdded
    | RewardPaid
    | LoyaltyTransfersToggled
)

Subscriber = Callable[[Event], None]


class EventBus:
    """Fan-out of committed events to subscribers, with an in-memory history."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self.history: list[Event] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, events: Iterable[Event]) -> None:
        """Record and deliver committed events.

        A failing subscriber is logged and skipped. The operation that
        produced the event has already committed.
        """
        for event in events:
            name = _event_name(event)
            self.history.append(event)
            logger.info(name, **asdict(event))
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception:
                    logger.exception("subscriber_failed", event=name, subscriber=repr(subscriber))


def _event_name(event: Event) -> str:
    """CamelCase class name to snake_case log event name."""
    name = type(event).__name__
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")
