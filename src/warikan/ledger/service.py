"""Service layer that composes the snapshot store and the ledger engine.

Project edits are pure functions that take a frozen ``Project`` and return a
new one. ``LedgerService`` handles the state-level operations (projects,
persistence, export) and saves after every change.
"""

import datetime as dt
import logging
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path

from ..config import Settings
from ..db import Database
from ..exceptions import (
    CategoryInUseError,
    InvalidAdjustmentError,
    InvalidExpenseError,
    InvalidSnapshotError,
    LastProjectError,
    MemberNotFoundError,
)
from ..export import export_state, import_state
from ..models import (
    ZERO,
    Adjustment,
    Category,
    Expense,
    Incentive,
    IncentiveType,
    LedgerState,
    LedgerSummary,
    Member,
    Project,
    RoundingRule,
    ShareEntry,
    ShareMode,
    ShareType,
    clamp_money,
    default_categories,
    default_state,
)
from .balances import compute_balances
from .netting import compute_pairwise
from .settlement import compute_settlement
from .validation import validate_project

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_NAMES = ["A", "B"]


# ============================================================================
# Engine
# ============================================================================


def summarize(project: Project) -> LedgerSummary:
    """
    Run the full ledger computation for one project.

    This is a pure function of the snapshot.

    Args:
        project: Project snapshot

    Returns:
        Balances, greedy settlement and pairwise nets
    """
    balances = compute_balances(project)
    return LedgerSummary(
        balances=balances,
        settlement=compute_settlement(balances.balance),
        pairwise=compute_pairwise(project),
    )


def check_project(project: Project) -> None:
    """Raise InvalidSnapshotError if the project has dangling references."""
    problems = validate_project(project)
    if problems:
        raise InvalidSnapshotError(problems)


# ============================================================================
# Members
# ============================================================================


def resolve_member(project: Project, name_or_id: str) -> Member:
    """
    Find a member by id, or by case-insensitive name.

    Raises:
        MemberNotFoundError: If nothing matches
    """
    member = project.find_member(name_or_id)
    if member:
        return member

    wanted = name_or_id.strip().lower()
    for member in project.members:
        if member.name.lower() == wanted:
            return member
    raise MemberNotFoundError(f"No member '{name_or_id}' in {project.name}")


def add_member(project: Project, name: str) -> Project:
    """Append a new active member."""
    name = name.strip()
    if not name:
        raise MemberNotFoundError("Member name must not be empty")
    member = Member(name=name)
    logger.info(f"Added member {name} ({member.id}) to {project.name}")
    return project.model_copy(update={"members": [*project.members, member]})


def rename_member(project: Project, member_id: str, name: str) -> Project:
    """Rename a member; a blank name leaves it unchanged."""
    member = resolve_member(project, member_id)
    name = name.strip()
    if not name:
        return project
    members = [
        m.model_copy(update={"name": name}) if m.id == member.id else m
        for m in project.members
    ]
    return project.model_copy(update={"members": members})


def toggle_member(project: Project, member_id: str) -> Project:
    """
    Flip a member between active and inactive.

    Members are never deleted so that historical expenses keep their ids.
    """
    member = resolve_member(project, member_id)
    members = [
        m.model_copy(update={"is_active": not m.is_active}) if m.id == member.id else m
        for m in project.members
    ]
    logger.info(
        f"Member {member.name} is now {'inactive' if member.is_active else 'active'}"
    )
    return project.model_copy(update={"members": members})


# ============================================================================
# Categories
# ============================================================================


def add_category(project: Project, name: str) -> Project:
    """Append a new category; a blank name leaves the project unchanged."""
    name = name.strip()
    if not name:
        return project
    return project.model_copy(
        update={"categories": [*project.categories, Category(name=name)]}
    )


def delete_category(project: Project, category_id: str) -> Project:
    """
    Remove a category.

    Raises:
        CategoryInUseError: If any expense still uses the category
    """
    if any(e.category_id == category_id for e in project.expenses):
        raise CategoryInUseError(project.category_name(category_id))
    categories = [c for c in project.categories if c.id != category_id]
    return project.model_copy(update={"categories": categories})


# ============================================================================
# Expenses
# ============================================================================


def add_expense(
    project: Project,
    *,
    amount: Decimal | float | str,
    payer_id: str,
    title: str = "",
    share_mode: ShareMode | str = ShareMode.EQUAL,
    shares: Iterable[ShareEntry] | None = None,
    category_id: str | None = None,
    date: dt.date | None = None,
    note: str = "",
) -> Project:
    """
    Append a new expense after validating it.

    When ``shares`` is omitted every active member is included with value 1.

    Raises:
        InvalidExpenseError: If the amount is not a positive finite number or
            no member is included
        MemberNotFoundError: If the payer is not a project member
    """
    value = clamp_money(amount)
    if value <= ZERO:
        raise InvalidExpenseError(f"Expense amount must be positive, got {amount!r}")

    payer = resolve_member(project, payer_id)

    if shares is None:
        share_list = [
            ShareEntry(member_id=m.id, type=ShareType.INCLUDED, value=Decimal("1"))
            for m in project.active_members
        ]
    else:
        share_list = list(shares)
    if not any(s.type == ShareType.INCLUDED for s in share_list):
        raise InvalidExpenseError("At least one member must be included")

    expense = Expense(
        title=title.strip() or "(untitled)",
        amount=value,
        payer_id=payer.id,
        category_id=category_id,
        date=date or dt.date.today(),
        note=note,
        share_mode=ShareMode(share_mode),
        shares=share_list,
    )
    logger.info(
        f"Added expense '{expense.title}' {value} paid by {payer.name} "
        f"({expense.share_mode.value})"
    )
    return project.model_copy(update={"expenses": [*project.expenses, expense]})


def delete_expense(project: Project, expense_id: str) -> Project:
    """Remove an expense by id."""
    expenses = [e for e in project.expenses if e.id != expense_id]
    return project.model_copy(update={"expenses": expenses})


def filter_expenses(
    project: Project,
    category_id: str | None = None,
    member_id: str | None = None,
    query: str = "",
) -> list[Expense]:
    """
    Filter expenses for display, newest first.

    Args:
        project: Project snapshot
        category_id: Only expenses in this category
        member_id: Only expenses this member paid for or is included in
        query: Case-insensitive substring of title or note

    Returns:
        Matching expenses sorted by date descending
    """
    needle = query.strip().lower()

    def matches(expense: Expense) -> bool:
        if category_id and expense.category_id != category_id:
            return False
        if member_id and not (
            expense.payer_id == member_id
            or member_id in expense.included_member_ids()
        ):
            return False
        if needle and needle not in f"{expense.title} {expense.note}".lower():
            return False
        return True

    return sorted(
        (e for e in project.expenses if matches(e)),
        key=lambda e: e.date,
        reverse=True,
    )


# ============================================================================
# Adjustments and incentives
# ============================================================================


def add_adjustment(
    project: Project,
    *,
    from_id: str,
    to_id: str,
    amount: Decimal | float | str,
    reason: str = "",
    date: dt.date | None = None,
) -> Project:
    """
    Append an adjustment: ``from_id`` owes ``to_id`` the amount.

    Raises:
        InvalidAdjustmentError: If from/to are the same member or the amount
            is not positive
        MemberNotFoundError: If either member is unknown
    """
    sender = resolve_member(project, from_id)
    receiver = resolve_member(project, to_id)
    if sender.id == receiver.id:
        raise InvalidAdjustmentError("Adjustment needs two different members")

    value = clamp_money(amount)
    if value <= ZERO:
        raise InvalidAdjustmentError(
            f"Adjustment amount must be positive, got {amount!r}"
        )

    adjustment = Adjustment(
        from_id=sender.id,
        to_id=receiver.id,
        amount=value,
        reason=reason.strip() or "adjustment",
        date=date or dt.date.today(),
    )
    logger.info(f"Added adjustment {sender.name} -> {receiver.name} {value}")
    return project.model_copy(
        update={"adjustments": [*project.adjustments, adjustment]}
    )


def delete_adjustment(project: Project, adjustment_id: str) -> Project:
    """Remove an adjustment by id."""
    adjustments = [a for a in project.adjustments if a.id != adjustment_id]
    return project.model_copy(update={"adjustments": adjustments})


def add_incentive(
    project: Project,
    *,
    title: str,
    incentive_type: IncentiveType | str = IncentiveType.NOTE,
    from_id: str | None = None,
    to_id: str | None = None,
    note: str = "",
    date: dt.date | None = None,
) -> Project:
    """Append a non-monetary incentive record."""
    incentive = Incentive(
        type=IncentiveType(incentive_type),
        from_id=resolve_member(project, from_id).id if from_id else None,
        to_id=resolve_member(project, to_id).id if to_id else None,
        title=title.strip() or "(record)",
        note=note,
        date=date or dt.date.today(),
    )
    return project.model_copy(update={"incentives": [*project.incentives, incentive]})


def delete_incentive(project: Project, incentive_id: str) -> Project:
    """Remove an incentive by id."""
    incentives = [i for i in project.incentives if i.id != incentive_id]
    return project.model_copy(update={"incentives": incentives})


# ============================================================================
# State-level service
# ============================================================================


class LedgerService:
    """Service for loading, editing and persisting the ledger state."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    def load_state(self) -> LedgerState:
        """Load the stored ledger state (sample data on first run)."""
        return self.db.load_state()

    def save_state(self, state: LedgerState) -> LedgerState:
        """Persist and return the state."""
        self.db.save_state(state)
        return state

    def replace_project(self, state: LedgerState, project: Project) -> LedgerState:
        """Swap in an edited project snapshot and persist."""
        state.get_project(project.id)
        projects = [project if p.id == project.id else p for p in state.projects]
        return self.save_state(state.model_copy(update={"projects": projects}))

    def create_project(
        self,
        state: LedgerState,
        name: str = "",
        member_names: Iterable[str] | None = None,
        currency_symbol: str | None = None,
        rounding_rule: RoundingRule | str | None = None,
    ) -> LedgerState:
        """
        Create a project, put it first and make it active.

        Blank inputs fall back to the defaults (members A and B, the
        configured currency symbol and rounding rule).
        """
        names = [n.strip() for n in (member_names or []) if n.strip()]
        project = Project(
            name=name.strip() or "新規プロジェクト",
            currency_symbol=(currency_symbol or "").strip()
            or self.settings.default_currency_symbol,
            rounding_rule=RoundingRule(
                rounding_rule or self.settings.default_rounding_rule
            ),
            members=[Member(name=n) for n in names or DEFAULT_MEMBER_NAMES],
            categories=default_categories(),
        )
        logger.info(f"Created project {project.name} ({project.id})")
        return self.save_state(
            state.model_copy(
                update={
                    "projects": [project, *state.projects],
                    "active_project_id": project.id,
                }
            )
        )

    def update_project_settings(
        self,
        state: LedgerState,
        project_id: str,
        name: str | None = None,
        currency_symbol: str | None = None,
        rounding_rule: RoundingRule | str | None = None,
    ) -> LedgerState:
        """Change a project's name, currency symbol or rounding rule."""
        project = state.get_project(project_id)
        update: dict = {}
        if name and name.strip():
            update["name"] = name.strip()
        if currency_symbol is not None:
            update["currency_symbol"] = currency_symbol.strip() or "¥"
        if rounding_rule is not None:
            update["rounding_rule"] = RoundingRule(rounding_rule)
        return self.replace_project(state, project.model_copy(update=update))

    def delete_project(self, state: LedgerState, project_id: str) -> LedgerState:
        """
        Delete a project.

        Raises:
            LastProjectError: If it is the only project
        """
        project = state.get_project(project_id)
        if len(state.projects) <= 1:
            raise LastProjectError("The last project cannot be deleted")

        projects = [p for p in state.projects if p.id != project.id]
        active_id = state.active_project_id
        if active_id == project.id:
            active_id = projects[0].id

        logger.info(f"Deleted project {project.name} ({project.id})")
        return self.save_state(
            state.model_copy(
                update={"projects": projects, "active_project_id": active_id}
            )
        )

    def set_active_project(self, state: LedgerState, project_id: str) -> LedgerState:
        """Make a project the active one."""
        project = state.get_project(project_id)
        return self.save_state(
            state.model_copy(update={"active_project_id": project.id})
        )

    def reset(self) -> LedgerState:
        """Discard all data and start over with the sample state."""
        self.db.delete_state()
        logger.info("Ledger reset to sample data")
        return self.save_state(default_state())

    def export(self, state: LedgerState, directory: Path | None = None) -> Path:
        """Export the state as a dated JSON file and remember where."""
        path = export_state(state, directory or self.settings.export_dir)
        self.db.set_config("last_export_path", str(path))
        return path

    def import_file(self, path: Path) -> LedgerState:
        """Replace the stored state with an exported JSON file."""
        state = import_state(path)
        if not state.projects:
            state = default_state()
        return self.save_state(state)
