"""
Ledger Math

Pure functions deriving summary metrics from a transaction log and a
balance pair. No state, no side effects: calling any of these twice on the
same input yields the same result, and the totals do not depend on the
order of the log.

DESIGN DECISION: P&L percentage against a zero initial balance is defined
as zero rather than raising or producing a non-finite value.
"""

from decimal import Decimal
from typing import Iterable, Union

from apexfx.models.ledger import (
    LedgerTotals,
    PnL,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)


Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    """
    Sum successful credits and debits and count pending entries.

    Denied and pending entries never contribute to the sums.
    """
    credits = ZERO
    debits = ZERO
    pending = 0
    for tx in transactions:
        if tx.status == TransactionStatus.PENDING:
            pending += 1
        elif tx.status == TransactionStatus.SUCCESS:
            if tx.type == TransactionType.CREDIT:
                credits += tx.amount
            else:
                debits += tx.amount
    return LedgerTotals(
        total_credits=credits,
        total_debits=debits,
        pending_count=pending,
    )


def compute_pnl(balance: Number, initial_balance: Number) -> PnL:
    """P&L amount and percentage of the current balance against the initial one."""
    balance = to_decimal(balance)
    initial_balance = to_decimal(initial_balance)
    amount = balance - initial_balance
    if initial_balance == 0:
        percentage = ZERO
    else:
        percentage = amount / initial_balance * HUNDRED
    return PnL(amount=amount, percentage=percentage)


def signed_amount(transaction: Transaction) -> Decimal:
    """+amount for credits, -amount for debits."""
    if transaction.type == TransactionType.CREDIT:
        return transaction.amount
    return -transaction.amount


def balance_effect(transaction: Transaction) -> Decimal:
    """What this entry contributes to the balance in its current status."""
    if transaction.status == TransactionStatus.SUCCESS:
        return signed_amount(transaction)
    return ZERO


def transition_effect(before: Transaction, after: Transaction) -> Decimal:
    """Balance delta caused by replacing ``before`` with ``after`` in a log."""
    return balance_effect(after) - balance_effect(before)


def derive_balance(initial_balance: Number, transactions: Iterable[Transaction]) -> Decimal:
    """initial_balance plus the signed amounts of all successful entries."""
    total = to_decimal(initial_balance)
    for tx in transactions:
        total += balance_effect(tx)
    return total


def balance_drift(user: User) -> Decimal:
    """Stored balance minus derived balance. Zero when the ledger is consistent."""
    return user.balance - derive_balance(user.initial_balance, user.transactions)


def is_consistent(user: User) -> bool:
    return balance_drift(user) == 0
