"""Greedy settlement: a short list of transfers that zeroes every balance."""

import logging
from collections.abc import Mapping
from decimal import Decimal

from ..models import Project, Transfer
from .balances import compute_balances

logger = logging.getLogger(__name__)

# Half a minor currency unit: anything smaller is floating residue, not debt.
SETTLEMENT_EPSILON = Decimal("0.5")


def compute_settlement(balances: Mapping[str, Decimal]) -> list[Transfer]:
    """
    Match debtors to creditors with a two-pointer greedy walk.

    Members are split into creditors (balance > epsilon) and debtors
    (balance < -epsilon), each kept in the mapping's insertion order. The
    current debtor pays the current creditor the smaller of their remaining
    amounts, and whichever side is exhausted advances. This emits at most
    ``len(debtors) + len(creditors) - 1`` transfers; it is not guaranteed to be
    the global minimum.

    Args:
        balances: Net balance per member (positive = owed money)

    Returns:
        Transfers in emission order
    """
    creditors: list[list] = []
    debtors: list[list] = []
    for member_id, balance in balances.items():
        if balance > SETTLEMENT_EPSILON:
            creditors.append([member_id, balance])
        elif balance < -SETTLEMENT_EPSILON:
            debtors.append([member_id, -balance])

    transfers: list[Transfer] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]
        amount = min(debtor[1], creditor[1])
        if amount > SETTLEMENT_EPSILON:
            transfers.append(
                Transfer(from_id=debtor[0], to_id=creditor[0], amount=amount)
            )
        debtor[1] -= amount
        creditor[1] -= amount
        if debtor[1] <= SETTLEMENT_EPSILON:
            i += 1
        if creditor[1] <= SETTLEMENT_EPSILON:
            j += 1

    logger.debug(
        f"Settled {len(debtors)} debtors against {len(creditors)} creditors "
        f"with {len(transfers)} transfers"
    )
    return transfers


def settle_project(project: Project) -> list[Transfer]:
    """Compute balances for a project and settle them."""
    return compute_settlement(compute_balances(project).balance)
