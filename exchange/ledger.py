"""Transfer boundary: the ledger of record for token balances.

The engine never moves value itself. It asks a TransferBoundary to move
tokens into and out of custody, and reads custodial balances back to
reconcile pool reserves. Each pool's reserves sit in their own account
(Pool.address); undistributed rewards sit in the custody account, which is
also the spender users approve.

InMemoryLedger is the reference implementation used by the HTTP sandbox and
the tests. It journals every write so a failed operation can be rolled back.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

import structlog

from exchange.constants import ZERO_ADDRESS
from exchange.errors import InsufficientAllowance, InsufficientBalance
from exchange.models.types import normalize_address
from exchange.safe_int import S

logger = structlog.get_logger()

_MISSING = object()


@runtime_checkable
class TransferBoundary(Protocol):
    """Protocol for the external token ledger.

    Transfers raise InsufficientBalance or InsufficientAllowance on failure.
    """

    @property
    def custody(self) -> str:
        """Address holding pool reserves and undistributed rewards."""
        ...

    def transfer_from(self, token: str, owner: str, recipient: str, amount: int) -> None:
        """Move tokens from owner to recipient using custody's allowance."""
        ...

    def transfer(
        self, token: str, recipient: str, amount: int, *, source: str | None = None
    ) -> None:
        """Move tokens out of custody (or an engine-controlled pool account) to recipient."""
        ...

    def balance_of(self, token: str, holder: str) -> int:
        """Return the current balance of holder."""
        ...

    def total_supply(self, token: str) -> int:
        """Return the total supply of token."""
        ...

    def transaction(self) -> Any:
        """Context manager that undoes every transfer if the block raises."""
        ...


_JournalEntry = tuple[dict[Any, int], Any, object]


class InMemoryLedger:
    """Dictionary-backed multi-token ledger with allowances.

    Writes inside transaction() are journaled; an exception escaping the
    outermost transaction restores every touched entry. Nested transactions
    fold their journal into the enclosing one on success.

    An open transaction holds the ledger lock until it commits or rolls
    back, so writes from other threads wait instead of landing in (and
    being undone with) someone else's journal.
    """

    def __init__(self, custody: str) -> None:
        self._custody = normalize_address(custody, validate=True)
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._supply: dict[str, int] = {}
        self._lock = threading.RLock()
        self._local = threading.local()

    @property
    def custody(self) -> str:
        return self._custody

    @property
    def _journals(self) -> list[list[_JournalEntry]]:
        """Transaction stack of the calling thread."""
        journals = getattr(self._local, "journals", None)
        if journals is None:
            journals = self._local.journals = []
        return journals

    # --- Queries ---

    def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get((normalize_address(token), normalize_address(holder)), 0)

    def total_supply(self, token: str) -> int:
        return self._supply.get(normalize_address(token), 0)

    def allowance(self, token: str, owner: str, spender: str | None = None) -> int:
        spender = self._custody if spender is None else normalize_address(spender)
        return self._allowances.get((normalize_address(token), normalize_address(owner), spender), 0)

    # --- Administration (sandbox and tests) ---

    def mint(self, token: str, recipient: str, amount: int) -> None:
        """Create new tokens for recipient."""
        token = normalize_address(token)
        recipient = normalize_address(recipient)
        with self._lock:
            self._write(self._supply, token, (S(self.total_supply(token)) + amount).value)
            self._write(
                self._balances,
                (token, recipient),
                (S(self.balance_of(token, recipient)) + amount).value,
            )
        logger.debug("ledger_mint", token=token, recipient=recipient, amount=amount)

    def approve(self, token: str, owner: str, amount: int, spender: str | None = None) -> None:
        """Set the allowance owner grants to spender (custody by default)."""
        spender = self._custody if spender is None else normalize_address(spender)
        key = (normalize_address(token), normalize_address(owner), spender)
        with self._lock:
            self._write(self._allowances, key, S(amount).value)

    # --- Transfers ---

    def transfer_from(self, token: str, owner: str, recipient: str, amount: int) -> None:
        token = normalize_address(token)
        owner = normalize_address(owner)
        with self._lock:
            allowed = self.allowance(token, owner)
            if allowed < amount:
                raise InsufficientAllowance(
                    f"Allowance {allowed} of {owner} for {token} is below {amount}"
                )
            self._write(self._allowances, (token, owner, self._custody), allowed - amount)
            self._move(token, owner, normalize_address(recipient), amount)

    def transfer(
        self, token: str, recipient: str, amount: int, *, source: str | None = None
    ) -> None:
        sender = self._custody if source is None else normalize_address(source)
        with self._lock:
            self._move(normalize_address(token), sender, normalize_address(recipient), amount)

    def _move(self, token: str, sender: str, recipient: str, amount: int) -> None:
        """Debit sender and credit recipient. Caller holds the lock.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        held = self.balance_of(token, sender)
        if held < amount:
            raise InsufficientBalance(f"Balance {held} of {sender} for {token} is below {amount}")
        self._write(self._balances, (token, sender), held - amount)
        if recipient == ZERO_ADDRESS:
            self._write(self._supply, token, self.total_supply(token) - amount)
            return
        self._write(
            self._balances,
            (token, recipient),
            (S(self.balance_of(token, recipient)) + amount).value,
        )

    # --- Journaling ---

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block atomically with respect to ledger state."""
        with self._lock:
            journals = self._journals
            journal: list[_JournalEntry] = []
            journals.append(journal)
            try:
                yield
            except BaseException:
                journals.pop()
                for store, key, previous in reversed(journal):
                    if previous is _MISSING:
                        store.pop(key, None)
                    else:
                        store[key] = previous  # type: ignore[assignment]
                raise
            journals.pop()
            if journals:
                journals[-1].extend(journal)

    def _write(self, store: dict[Any, int], key: Any, value: int) -> None:
        journals = self._journals
        if journals:
            journals[-1].append((store, key, store.get(key, _MISSING)))
        store[key] = value
