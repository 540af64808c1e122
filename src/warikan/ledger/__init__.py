"""Ledger engine: share allocation, balances, settlement and pairwise netting."""

from .allocator import allocate_shares
from .balances import compute_balances
from .netting import compute_pairwise
from .rounding import apply_rounding
from .settlement import SETTLEMENT_EPSILON, compute_settlement, settle_project

__all__ = [
    "allocate_shares",
    "compute_balances",
    "compute_pairwise",
    "apply_rounding",
    "SETTLEMENT_EPSILON",
    "compute_settlement",
    "settle_project",
]
