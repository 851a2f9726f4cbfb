"""
Transaction History

Filtering and pagination for the transaction history view. Like the
ledger math, everything here is pure: the log is never modified and the
display order of the input is preserved.
"""

import math
from typing import Iterable, Optional, Sequence

from apexfx.config import get_settings
from apexfx.models.history import TransactionFilter, TransactionPage
from apexfx.models.ledger import Transaction


def matches(transaction: Transaction, criteria: TransactionFilter) -> bool:
    """Check a single transaction against the filter."""
    if criteria.status is not None and transaction.status != criteria.status:
        return False
    if criteria.type is not None and transaction.type != criteria.type:
        return False
    if criteria.search:
        needle = criteria.search.lower()
        haystacks = (str(transaction.id).lower(), transaction.description.lower())
        if not any(needle in haystack for haystack in haystacks):
            return False
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: Optional[TransactionFilter] = None,
) -> list[Transaction]:
    """Return the matching transactions in their original order."""
    if criteria is None:
        return list(transactions)
    return [tx for tx in transactions if matches(tx, criteria)]


def paginate(
    transactions: Sequence[Transaction],
    page: int = 1,
    page_size: Optional[int] = None,
) -> TransactionPage:
    """
    Slice a log into 1-based pages.

    A page past the end yields an empty page rather than an error.

    Raises:
        ValueError: If page or page_size is smaller than 1
    """
    if page_size is None:
        page_size = get_settings().transactions_page_size
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    total_items = len(transactions)
    start = (page - 1) * page_size
    return TransactionPage(
        items=list(transactions[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
    )


def active_filter_count(criteria: TransactionFilter) -> int:
    """How many filters differ from their defaults."""
    return sum([
        bool(criteria.search),
        criteria.status is not None,
        criteria.type is not None,
    ])


def browse(
    transactions: Sequence[Transaction],
    criteria: Optional[TransactionFilter] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> TransactionPage:
    """Filter then paginate."""
    return paginate(filter_transactions(transactions, criteria), page, page_size)
