"""Pairwise netting: who owes whom, straight from the activity graph."""

import logging
from decimal import Decimal

from ..models import ZERO, Project, Transfer
from .allocator import allocate_shares
from .settlement import SETTLEMENT_EPSILON

logger = logging.getLogger(__name__)


def compute_pairwise(project: Project) -> list[Transfer]:
    """
    Net the directed debts between every pair of active members.

    Every participant owes the payer their allocated share of each expense,
    and every adjustment makes ``from_id`` owe ``to_id`` its amount. Opposite
    directions of the same pair are netted against each other; pairs whose net
    is within epsilon of zero are omitted.

    Unlike the settlement, this does not try to minimize transfers: it
    reports the raw pairwise relationships.

    Args:
        project: Project snapshot

    Returns:
        One transfer per pair with outstanding debt, largest first
    """
    members = project.active_members
    active_ids = {m.id for m in members}
    debts: dict[tuple[str, str], Decimal] = {}

    def add(from_id: str | None, to_id: str | None, amount: Decimal) -> None:
        if not from_id or not to_id or from_id == to_id:
            return
        if from_id not in active_ids or to_id not in active_ids:
            return
        key = (from_id, to_id)
        debts[key] = debts.get(key, ZERO) + amount

    for expense in project.expenses:
        shares = allocate_shares(expense, members, project.rounding_rule)
        for member_id, amount in shares.items():
            add(member_id, expense.payer_id, amount)

    for adjustment in project.adjustments:
        add(adjustment.from_id, adjustment.to_id, adjustment.amount)

    reduced: list[Transfer] = []
    seen: set[tuple[str, str]] = set()
    for (a, b), amount in debts.items():
        if (a, b) in seen:
            continue
        net = amount - debts.get((b, a), ZERO)
        if net > SETTLEMENT_EPSILON:
            reduced.append(Transfer(from_id=a, to_id=b, amount=net))
        elif net < -SETTLEMENT_EPSILON:
            reduced.append(Transfer(from_id=b, to_id=a, amount=-net))
        seen.add((a, b))
        seen.add((b, a))

    reduced.sort(key=lambda t: t.amount, reverse=True)

    logger.debug(f"Netted {len(debts)} directed debts into {len(reduced)} pairs")
    return reduced
