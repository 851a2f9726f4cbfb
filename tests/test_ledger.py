"""Tests for ledger math and transaction history."""

import pytest
from decimal import Decimal

from apexfx.ledger import (
    active_filter_count,
    balance_drift,
    balance_effect,
    browse,
    compute_pnl,
    compute_totals,
    derive_balance,
    filter_transactions,
    is_consistent,
    paginate,
    signed_amount,
    transition_effect,
)
from apexfx.models import (
    Transaction,
    TransactionFilter,
    TransactionStatus,
    TransactionType,
    User,
)


def tx(amount, tx_type=TransactionType.CREDIT, status=TransactionStatus.SUCCESS, description=""):
    return Transaction(
        amount=Decimal(str(amount)),
        type=tx_type,
        status=status,
        description=description,
    )


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_empty_log(self):
        """Test an empty log."""
        totals = compute_totals([])
        assert totals.total_credits == 0
        assert totals.total_debits == 0
        assert totals.pending_count == 0

    def test_only_successful_entries_are_summed(self):
        """Pending and denied entries are not summed."""
        log = [
            tx(100),
            tx(50, status=TransactionStatus.PENDING),
            tx(25, status=TransactionStatus.DENIED),
            tx(30, TransactionType.DEBIT),
            tx(70, TransactionType.DEBIT, TransactionStatus.PENDING),
        ]
        totals = compute_totals(log)
        assert totals.total_credits == Decimal("100")
        assert totals.total_debits == Decimal("30")
        assert totals.pending_count == 2

    def test_credits_grow_monotonically(self):
        """Test total credits never shrink as credits are added."""
        log = []
        previous = compute_totals(log).total_credits
        for amount in (0, 5, 12.5, 100):
            log.append(tx(amount))
            current = compute_totals(log).total_credits
            assert current >= previous >= 0
            previous = current

    def test_order_independent_and_idempotent(self):
        """Test totals ignore log order."""
        log = [tx(10), tx(20, TransactionType.DEBIT), tx(5, status=TransactionStatus.PENDING)]
        first = compute_totals(log)
        assert compute_totals(log) == first
        assert compute_totals(list(reversed(log))) == first


class TestComputePnL:
    """Tests for compute_pnl."""

    def test_scenario_quarter_gain(self):
        """Test 1250 against 1000 is a 25% gain."""
        pnl = compute_pnl(Decimal("1250"), Decimal("1000"))
        assert pnl.amount == Decimal("250")
        assert pnl.percentage == Decimal("25")

    @pytest.mark.parametrize("balance", [0, 100, -40, Decimal("0.01")])
    def test_zero_initial_balance_gives_zero_percentage(self, balance):
        """Zero initial balance gives a zero percentage."""
        pnl = compute_pnl(balance, 0)
        assert pnl.percentage == 0
        assert pnl.amount == Decimal(str(balance))

    def test_loss(self):
        """Test a negative P&L."""
        pnl = compute_pnl(750, 1000)
        assert pnl.amount == Decimal("-250")
        assert pnl.percentage == Decimal("-25")

    def test_accepts_floats_without_artefacts(self):
        """Test float inputs convert cleanly."""
        pnl = compute_pnl(110.1, 100)
        assert pnl.amount == Decimal("10.1")

    def test_idempotent(self):
        """Test compute_pnl is idempotent."""
        assert compute_pnl(1500, 1200) == compute_pnl(1500, 1200)


class TestBalanceEffects:
    """Tests for signed amounts and derived balances."""

    def test_signed_amount(self):
        """Test debit amounts are negated."""
        assert signed_amount(tx(40)) == Decimal("40")
        assert signed_amount(tx(40, TransactionType.DEBIT)) == Decimal("-40")

    def test_only_success_moves_balance(self):
        """Test balance effects by status."""
        assert balance_effect(tx(40, status=TransactionStatus.PENDING)) == 0
        assert balance_effect(tx(40, status=TransactionStatus.DENIED)) == 0
        assert balance_effect(tx(40, TransactionType.DEBIT)) == Decimal("-40")

    def test_transition_effect(self):
        """Test the delta of a status flip."""
        pending = tx(100, TransactionType.DEBIT, TransactionStatus.PENDING)
        assert transition_effect(pending, pending.with_status(TransactionStatus.SUCCESS)) == Decimal("-100")
        assert transition_effect(pending, pending.with_status(TransactionStatus.DENIED)) == 0

    def test_derive_balance_and_consistency(self):
        """Test derived balance and drift detection."""
        log = (tx(250), tx(50, TransactionType.DEBIT), tx(999, status=TransactionStatus.PENDING))
        assert derive_balance(1000, log) == Decimal("1200")

        user = User(
            email="a@b.io",
            initial_balance=Decimal("1000"),
            balance=Decimal("1200"),
            transactions=log,
        )
        assert is_consistent(user)

        drifted = user.model_copy(update={"balance": Decimal("1300")})
        assert not is_consistent(drifted)
        assert balance_drift(drifted) == Decimal("100")


class TestHistory:
    """Tests for filtering and pagination."""

    def make_log(self, count=23):
        log = []
        for i in range(count):
            log.append(tx(
                i + 1,
                TransactionType.CREDIT if i % 2 == 0 else TransactionType.DEBIT,
                TransactionStatus.PENDING if i % 3 == 0 else TransactionStatus.SUCCESS,
                description=f"Order #{i}",
            ))
        return log

    def test_no_filter_returns_everything_in_order(self):
        """Test the empty filter."""
        log = self.make_log()
        assert filter_transactions(log) == log
        assert filter_transactions(log, TransactionFilter()) == log

    def test_filter_by_status_and_type(self):
        """Test status and type filters together."""
        log = self.make_log()
        criteria = TransactionFilter(status=TransactionStatus.PENDING, type=TransactionType.CREDIT)
        result = filter_transactions(log, criteria)
        assert result
        assert all(t.is_pending and t.type == TransactionType.CREDIT for t in result)
        assert result == [t for t in log if t in result]

    def test_search_matches_description_and_id(self):
        """Search is case-insensitive over description and ID."""
        log = self.make_log()
        assert [t.description for t in filter_transactions(log, TransactionFilter(search="ORDER #1"))] == [
            "Order #1", "Order #10", "Order #11", "Order #12", "Order #13",
            "Order #14", "Order #15", "Order #16", "Order #17", "Order #18", "Order #19",
        ]
        target = log[5]
        id_fragment = str(target.id)[:13]
        assert target in filter_transactions(log, TransactionFilter(search=id_fragment.upper()))

    def test_paginate(self):
        """Test the last partial page."""
        log = self.make_log(23)
        page = paginate(log, page=3, page_size=10)
        assert page.items == log[20:]
        assert page.total_items == 23
        assert page.total_pages == 3
        assert page.has_previous and not page.has_next

    def test_paginate_uses_configured_page_size(self):
        """Test the default page size."""
        page = paginate(self.make_log(12))
        assert len(page.items) == 10
        assert page.page_size == 10

    def test_page_past_end_is_empty(self):
        """Test a page past the end."""
        page = paginate(self.make_log(5), page=4, page_size=10)
        assert page.items == []
        assert page.total_pages == 1

    def test_empty_log(self):
        """Test an empty log."""
        page = paginate([], page=1, page_size=10)
        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("page,size", [(0, 10), (1, 0)])
    def test_invalid_pagination(self, page, size):
        """Test page and size below one."""
        with pytest.raises(ValueError):
            paginate(self.make_log(), page=page, page_size=size)

    def test_browse_and_filter_count(self):
        """Test filter then paginate."""
        log = self.make_log()
        criteria = TransactionFilter(type=TransactionType.DEBIT, search="order")
        page = browse(log, criteria, page=1, page_size=5)
        assert page.total_items == 11
        assert len(page.items) == 5
        assert active_filter_count(criteria) == 2
        assert active_filter_count(TransactionFilter()) == 0
