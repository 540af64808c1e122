"""Tests for the greedy settlement."""

from decimal import Decimal

from warikan.ledger.settlement import (
    SETTLEMENT_EPSILON,
    compute_settlement,
    settle_project,
)
from warikan.models import Transfer


def balances(**values) -> dict[str, Decimal]:
    """Build an ordered balance mapping from keyword arguments."""
    return {k: Decimal(str(v)) for k, v in values.items()}


def apply_transfers(start, transfers) -> dict[str, Decimal]:
    """Balances left after executing the transfers; paying raises the payer."""
    remaining = dict(start)
    for t in transfers:
        remaining[t.from_id] = remaining.get(t.from_id, Decimal("0")) + t.amount
        remaining[t.to_id] = remaining.get(t.to_id, Decimal("0")) - t.amount
    return remaining


class TestComputeSettlement:
    """Greedy two-pointer matching of debtors to creditors."""

    def test_single_debtor_single_creditor(self):
        """{A:+100, B:0, C:-100} settles with one transfer C -> A."""
        transfers = compute_settlement(balances(a=100, b=0, c=-100))

        assert transfers == [Transfer(from_id="c", to_id="a", amount=Decimal("100"))]

    def test_matching_follows_insertion_order(self):
        """The first debtor pays the first creditor until one runs out."""
        transfers = compute_settlement(balances(a=50, b=50, c=-60, d=-40))

        assert [(t.from_id, t.to_id, t.amount) for t in transfers] == [
            ("c", "a", Decimal("50")),
            ("c", "b", Decimal("10")),
            ("d", "b", Decimal("40")),
        ]

    def test_transfer_count_bound(self):
        """At most debtors + creditors - 1 transfers."""
        transfers = compute_settlement(balances(a=70, b=20, c=10, d=-45, e=-55))

        assert len(transfers) <= 2 + 3 - 1

    def test_residue_below_epsilon_needs_no_transfer(self):
        """Balances within half a unit of zero are treated as settled."""
        assert compute_settlement(balances(a="0.4", b="-0.4")) == []

    def test_fractional_amounts_are_kept(self):
        """Amounts are not rounded to whole units."""
        transfers = compute_settlement(balances(a="100.3", b="-100.3"))

        assert transfers[0].amount == Decimal("100.3")

    def test_empty_balances(self):
        """Nothing to settle."""
        assert compute_settlement({}) == []


class TestSettlementCorrectness:
    """Executing the transfers zeroes every balance."""

    def test_applying_transfers_zeroes_balances(self):
        """After paying, every balance is within epsilon of zero."""
        start = balances(a="1234.5", b="-300.25", c="-934.25", d="0.3", e="-0.3")

        remaining = apply_transfers(start, compute_settlement(start))

        assert all(abs(v) <= SETTLEMENT_EPSILON for v in remaining.values())

    def test_settle_project(self, lunch_project):
        """B and C each pay A ¥1200 for the sample lunch."""
        transfers = settle_project(lunch_project)

        assert [(t.from_id, t.to_id, t.amount) for t in transfers] == [
            ("b", "a", Decimal("1200")),
            ("c", "a", Decimal("1200")),
        ]
