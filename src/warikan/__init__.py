"""Warikan - shared-expense ledger with fair splitting and settlement."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .ledger.allocator import allocate_shares
from .ledger.balances import compute_balances
from .ledger.netting import compute_pairwise
from .ledger.rounding import apply_rounding
from .ledger.service import LedgerService, summarize
from .ledger.settlement import compute_settlement, settle_project
from .models import (
    Adjustment,
    BalanceSheet,
    Expense,
    LedgerState,
    Member,
    Project,
    RoundingRule,
    ShareEntry,
    ShareMode,
    ShareType,
    Transfer,
)

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "allocate_shares",
    "compute_balances",
    "compute_pairwise",
    "apply_rounding",
    "LedgerService",
    "summarize",
    "compute_settlement",
    "settle_project",
    "Adjustment",
    "BalanceSheet",
    "Expense",
    "LedgerState",
    "Member",
    "Project",
    "RoundingRule",
    "ShareEntry",
    "ShareMode",
    "ShareType",
    "Transfer",
]
