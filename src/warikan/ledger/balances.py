"""Balance aggregation across all expenses and adjustments of a project."""

import logging
from decimal import Decimal

from ..models import ZERO, BalanceSheet, Project
from .allocator import allocate_shares

logger = logging.getLogger(__name__)


def compute_balances(project: Project) -> BalanceSheet:
    """
    Compute paid, owed and net balance for every active member.

    - paid: sum of expense amounts the member fronted
    - owed: sum of the member's allocated shares
    - adjusted: net effect of adjustments (to_id +, from_id -)
    - balance: paid - owed + adjusted

    Ids that are not active members (inactive, deleted or unknown) are dropped
    on whichever side they appear.

    Args:
        project: Project snapshot

    Returns:
        Balance sheet keyed by active member id, in member order
    """
    members = project.active_members
    paid: dict[str, Decimal] = {m.id: ZERO for m in members}
    owed: dict[str, Decimal] = {m.id: ZERO for m in members}
    adjusted: dict[str, Decimal] = {m.id: ZERO for m in members}

    for expense in project.expenses:
        if expense.payer_id in paid:
            paid[expense.payer_id] += expense.amount

        shares = allocate_shares(expense, members, project.rounding_rule)
        for member_id, amount in shares.items():
            if member_id in owed:
                owed[member_id] += amount

    # Adjustments move balance directly, bypassing paid/owed
    for adjustment in project.adjustments:
        amount = adjustment.amount
        if not amount:
            continue
        if adjustment.from_id in adjusted:
            adjusted[adjustment.from_id] -= amount
        if adjustment.to_id in adjusted:
            adjusted[adjustment.to_id] += amount

    balance = {m.id: adjusted[m.id] + paid[m.id] - owed[m.id] for m in members}

    logger.debug(
        f"Computed balances for {len(members)} members over "
        f"{len(project.expenses)} expenses and "
        f"{len(project.adjustments)} adjustments"
    )

    return BalanceSheet(paid=paid, owed=owed, adjusted=adjusted, balance=balance)
