"""Exchange error classes.

Every failure aborts the whole operation; none of these leave partial state.
"""


class ExchangeError(Exception):
    """Base error for exchange operations."""

    pass


class AlreadyRegistered(ExchangeError):
    """Token is already registered."""

    pass


class InvalidToken(ExchangeError):
    """Token failed the registration sanity check (zero total supply)."""

    pass


class IdenticalTokens(ExchangeError):
    """Both sides of a pair or swap are the same token."""

    pass


class TokenNotRegistered(ExchangeError):
    """Token has not been registered."""

    pass


class PairAlreadyExists(ExchangeError):
    """A pool already exists for this canonical pair."""

    pass


class PairNotFound(ExchangeError):
    """No pool exists for this pair."""

    pass


class NonPositiveInput(ExchangeError):
    """Swap input amount must be positive."""

    pass


class InsufficientOutput(ExchangeError):
    """Swap would produce zero output."""

    pass


class InsufficientLiquidity(ExchangeError):
    """A reserve required for quoting is zero."""

    pass


class TransferError(ExchangeError):
    """Base error raised by the transfer boundary."""

    pass


class InsufficientBalance(TransferError):
    """Holder balance is below the transfer amount."""

    pass


class InsufficientAllowance(TransferError):
    """Spender allowance is below the transfer amount."""

    pass


class RewardAccountingError(ExchangeError):
    """Pending reward would be negative. Indicates corrupted bookkeeping."""

    pass


class ReentrancyError(ExchangeError):
    """A mutating operation was entered while another one is in progress."""

    pass


class LoyaltyError(ExchangeError):
    """Base error for loyalty token operations."""

    pass


class NotOwner(LoyaltyError):
    """Holder does not own the loyalty token."""

    pass


class NotAuthorized(LoyaltyError):
    """Caller lacks the administrative role."""

    pass


class TransfersLocked(LoyaltyError):
    """Loyalty token transfers are disabled."""

    pass


class UnknownLoyaltyToken(LoyaltyError):
    """Loyalty token id was never minted or has been burned."""

    pass
