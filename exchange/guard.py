"""Engine-wide mutual exclusion for state-mutating operations."""

from __future__ import annotations

import threading
from types import TracebackType

from exchange.errors import ReentrancyError


class ReentrancyGuard:
    """Lock held for the full duration of an operation, transfers included.

    Another thread entering the guard blocks until the current operation
    finishes. The thread already holding it (e.g. a token callback re-entering
    the engine mid-transfer) is rejected with ReentrancyError.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> ReentrancyGuard:
        if self._owner == threading.get_ident():
            raise ReentrancyError("Re-entrant call while an operation is in progress")
        self._lock.acquire()
        self._owner = threading.get_ident()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._owner = None
        self._lock.release()
