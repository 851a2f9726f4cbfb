"""
Ledger and session exceptions.

Authentication failures are NOT exceptions: the login family reports them
as a ``False`` result. Everything here signals a mutation that was refused
before anything changed.
"""


class LedgerError(Exception):
    """Base exception for session and ledger operations."""
    pass


class InvariantViolation(LedgerError):
    """A mutation would break a ledger invariant (sign, status transition, duplicate id)."""
    pass


class InsufficientFundsError(InvariantViolation):
    """A withdrawal request exceeds the spendable balance."""

    def __init__(self, requested, available):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Withdrawal of {requested} exceeds available balance {available}"
        )


class AdminAccessDenied(LedgerError):
    """An admin-scoped operation was invoked outside an admin session."""
    pass


class InvalidTransition(LedgerError):
    """The access state machine has no edge for the given state and event."""
    pass
