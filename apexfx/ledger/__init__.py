"""Ledger math and history package."""

from apexfx.ledger.math import (
    balance_drift,
    balance_effect,
    compute_pnl,
    compute_totals,
    derive_balance,
    is_consistent,
    signed_amount,
    transition_effect,
)
from apexfx.ledger.history import (
    active_filter_count,
    browse,
    filter_transactions,
    paginate,
)

__all__ = [
    # Math
    "balance_drift",
    "balance_effect",
    "compute_pnl",
    "compute_totals",
    "derive_balance",
    "is_consistent",
    "signed_amount",
    "transition_effect",
    # History
    "active_filter_count",
    "browse",
    "filter_transactions",
    "paginate",
]
