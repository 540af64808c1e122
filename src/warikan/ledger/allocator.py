"""Share allocation: how much each member owes for a single expense."""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from ..models import (
    ZERO,
    Expense,
    Member,
    RoundingRule,
    ShareEntry,
    ShareMode,
    ShareType,
)
from .rounding import apply_rounding

logger = logging.getLogger(__name__)


def base_shares(expense: Expense, members: Sequence[Member]) -> list[ShareEntry]:
    """
    Determine who takes part in an expense.

    Uses the expense's INCLUDED shares; when there are none, every active
    member takes part with weight 1.

    Args:
        expense: The expense
        members: Project members (inactive ones are skipped)

    Returns:
        Participating shares
    """
    included = [s for s in expense.shares if s.type == ShareType.INCLUDED]
    if included:
        return included
    return [
        ShareEntry(member_id=m.id, type=ShareType.INCLUDED, value=Decimal("1"))
        for m in members
        if m.is_active
    ]


def raw_portions(
    share_mode: ShareMode, amount: Decimal, base: Sequence[ShareEntry]
) -> list[tuple[str, Decimal]] | None:
    """
    Compute the unrounded portion of each participant.

    Args:
        share_mode: Expense share mode
        amount: Expense amount
        base: Participating shares

    Returns:
        (member_id, portion) pairs in share order, or None for an
        unknown share mode
    """
    if share_mode == ShareMode.EQUAL:
        each = amount / (len(base) or 1)
        return [(s.member_id, each) for s in base]

    if share_mode == ShareMode.WEIGHT:
        total_weight = sum((s.value for s in base), ZERO) or Decimal("1")
        return [(s.member_id, amount * s.value / total_weight) for s in base]

    if share_mode == ShareMode.PERCENT:
        # Percentages are renormalized against their own sum
        total_percent = sum((s.value for s in base), ZERO) or Decimal("100")
        return [(s.member_id, amount * s.value / total_percent) for s in base]

    if share_mode == ShareMode.FIXED:
        return [(s.member_id, s.value) for s in base]

    return None


def allocate_shares(
    expense: Expense,
    members: Iterable[Member],
    rounding_rule: RoundingRule | str = RoundingRule.NONE,
) -> dict[str, Decimal]:
    """
    Distribute an expense's amount across its participants.

    Steps:
    1. Determine participants (INCLUDED shares, else all active members)
    2. Compute each portion according to the share mode
    3. Round every portion independently
    4. Add the remainder (amount - sum of rounded portions) to the payer

    The result has a key for every active member (0 when not taking part).
    Participants or a payer that are not active members still get their own
    key so that the values always sum to ``expense.amount``; aggregations
    drop those keys. An unknown share mode allocates nothing.

    Args:
        expense: The expense to allocate
        members: Project members
        rounding_rule: Project rounding rule

    Returns:
        Mapping of member id to owed amount
    """
    active = [m for m in members if m.is_active]
    owed: dict[str, Decimal] = {m.id: ZERO for m in active}

    base = base_shares(expense, active)
    portions = raw_portions(expense.share_mode, expense.amount, base)
    if portions is None:
        logger.debug(
            f"Expense {expense.id} has unknown share mode; allocating nothing"
        )
        return owed

    allocated = ZERO
    for member_id, portion in portions:
        value = apply_rounding(portion, rounding_rule)
        owed[member_id] = owed.get(member_id, ZERO) + value
        allocated += value

    remainder = expense.amount - allocated
    owed[expense.payer_id] = owed.get(expense.payer_id, ZERO) + remainder

    if remainder:
        logger.debug(
            f"Assigned rounding remainder {remainder} to payer {expense.payer_id} "
            f"(expense {expense.id})"
        )

    return owed
