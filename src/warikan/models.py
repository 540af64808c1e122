"""Pydantic domain models for Warikan.

The persisted document uses camelCase keys (``payerId``, ``shareMode`` ...),
so every model carries a camelCase alias generator while still accepting
snake_case field names from Python callers. Models are frozen: the ledger
engine only ever sees immutable snapshots, and the service layer derives new
snapshots with ``model_copy(update=...)``.
"""

import datetime as dt
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from .exceptions import ProjectNotFoundError

ZERO = Decimal("0")


def new_id() -> str:
    """Generate a short random identifier for ledger records."""
    return uuid4().hex[:12]


def clamp_money(value: Any) -> Decimal:
    """
    Coerce an arbitrary input into a finite Decimal.

    Missing, non-numeric and non-finite values become zero. Floats go through
    ``str()`` so that ``0.1`` stays ``Decimal("0.1")``.

    Args:
        value: Raw amount from a form, JSON document or Python caller

    Returns:
        Finite Decimal amount
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    return amount if amount.is_finite() else ZERO


def _money_to_json(value: Decimal) -> int | float | str:
    """
    Serialize money without losing digits.

    Integral amounts become JSON integers and amounts a double holds exactly
    become JSON floats. Anything finer is written as a decimal string, which
    ``clamp_money`` reads back unchanged.
    """
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


Money = Annotated[
    Decimal,
    BeforeValidator(clamp_money),
    PlainSerializer(_money_to_json, when_used="json"),
]


def _match_value(enum_cls: type[Enum], value: Any) -> Enum | None:
    """Case-insensitive lookup of an enum member by value."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().upper()
    for member in enum_cls:
        if member.value == normalized:
            return member
    return None


# ============================================================================
# Enumerations
# ============================================================================


class ShareMode(str, Enum):
    """How one expense's cost is distributed among included members."""

    EQUAL = "EQUAL"
    WEIGHT = "WEIGHT"
    PERCENT = "PERCENT"
    FIXED = "FIXED"
    UNKNOWN = "UNKNOWN"  # anything unrecognised; allocates nothing

    @classmethod
    def _missing_(cls, value: object) -> "ShareMode":
        return _match_value(cls, value) or cls.UNKNOWN  # type: ignore[return-value]


class ShareType(str, Enum):
    """Whether a member takes part in an expense."""

    INCLUDED = "INCLUDED"
    EXCLUDED = "EXCLUDED"

    @classmethod
    def _missing_(cls, value: object) -> "ShareType":
        return _match_value(cls, value) or cls.EXCLUDED  # type: ignore[return-value]


class RoundingRule(str, Enum):
    """Per-share rounding applied uniformly across a project."""

    NONE = "NONE"
    ROUND_10 = "ROUND_10"
    ROUND_100 = "ROUND_100"
    FLOOR_10 = "FLOOR_10"
    FLOOR_100 = "FLOOR_100"
    CEIL_10 = "CEIL_10"
    CEIL_100 = "CEIL_100"

    @classmethod
    def _missing_(cls, value: object) -> "RoundingRule":
        return _match_value(cls, value) or cls.NONE  # type: ignore[return-value]


class IncentiveType(str, Enum):
    """Kind of non-monetary favour recorded as an incentive."""

    DRIVE = "DRIVE"
    TREAT = "TREAT"
    HOST = "HOST"
    HELP = "HELP"
    NOTE = "NOTE"

    @classmethod
    def _missing_(cls, value: object) -> "IncentiveType":
        return _match_value(cls, value) or cls.NOTE  # type: ignore[return-value]


# Enum fields run through the enum constructor first so that unknown values
# hit the fallback member instead of failing validation.
ShareModeField = Annotated[ShareMode, BeforeValidator(lambda v: ShareMode(v))]
ShareTypeField = Annotated[ShareType, BeforeValidator(lambda v: ShareType(v))]
RoundingRuleField = Annotated[
    RoundingRule, BeforeValidator(lambda v: RoundingRule(v))
]
IncentiveTypeField = Annotated[
    IncentiveType, BeforeValidator(lambda v: IncentiveType(v))
]


class LedgerModel(BaseModel):
    """Base model: frozen, camelCase aliases, snake_case accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ============================================================================
# Project records
# ============================================================================


class Member(LedgerModel):
    """A participant in a project. Inactive members keep their id."""

    id: str = Field(default_factory=new_id)
    name: str
    is_active: bool = True


class Category(LedgerModel):
    """An expense category."""

    id: str = Field(default_factory=new_id)
    name: str


class ShareEntry(LedgerModel):
    """One member's participation in an expense.

    ``value`` means weight, percent or fixed amount depending on the
    expense's share mode and is ignored for EQUAL.
    """

    member_id: str
    type: ShareTypeField = ShareType.INCLUDED
    value: Money = ZERO


class Expense(LedgerModel):
    """An expense fronted by one payer and shared by included members."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    amount: Money = ZERO
    payer_id: str
    category_id: str | None = None
    date: dt.date = Field(default_factory=dt.date.today)
    note: str = ""
    share_mode: ShareModeField = ShareMode.EQUAL
    shares: list[ShareEntry] = Field(default_factory=list)

    def included_member_ids(self) -> list[str]:
        """Ids of members with an INCLUDED share."""
        return [s.member_id for s in self.shares if s.type == ShareType.INCLUDED]


class Adjustment(LedgerModel):
    """A manual transfer of balance: ``from_id`` owes ``to_id`` the amount."""

    id: str = Field(default_factory=new_id)
    date: dt.date = Field(default_factory=dt.date.today)
    from_id: str | None = None
    to_id: str | None = None
    amount: Money = ZERO
    reason: str = ""


class Incentive(LedgerModel):
    """A non-monetary thank-you record. Never affects balances."""

    id: str = Field(default_factory=new_id)
    date: dt.date = Field(default_factory=dt.date.today)
    type: IncentiveTypeField = IncentiveType.NOTE
    from_id: str | None = None
    to_id: str | None = None
    title: str = ""
    note: str = ""


class Project(LedgerModel):
    """A self-contained shared-expense ledger."""

    id: str = Field(default_factory=new_id)
    name: str = "新規プロジェクト"
    currency_symbol: str = "¥"
    rounding_rule: RoundingRuleField = RoundingRule.NONE
    members: list[Member] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    incentives: list[Incentive] = Field(default_factory=list)
    adjustments: list[Adjustment] = Field(default_factory=list)

    @property
    def active_members(self) -> list[Member]:
        """Members that take part in computations, in insertion order."""
        return [m for m in self.members if m.is_active]

    def find_member(self, member_id: str | None) -> Member | None:
        """Look up a member (active or not) by id."""
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def member_name(self, member_id: str | None) -> str:
        """Display name for a member id, or a placeholder if unknown."""
        member = self.find_member(member_id)
        return member.name if member else "(unknown)"

    def category_name(self, category_id: str | None) -> str:
        """Display name for a category id, or a placeholder if unset."""
        for category in self.categories:
            if category.id == category_id:
                return category.name
        return "(uncategorized)"


class LedgerState(LedgerModel):
    """The whole persisted document: every project plus the active one."""

    version: int = 1
    active_project_id: str | None = None
    projects: list[Project] = Field(default_factory=list)

    def active_project(self) -> Project:
        """Return the active project, falling back to the first one."""
        if not self.projects:
            raise ProjectNotFoundError(str(self.active_project_id))
        for project in self.projects:
            if project.id == self.active_project_id:
                return project
        return self.projects[0]

    def get_project(self, project_id: str) -> Project:
        """Return a project by id."""
        for project in self.projects:
            if project.id == project_id:
                return project
        raise ProjectNotFoundError(project_id)


# ============================================================================
# Engine results
# ============================================================================


class Transfer(LedgerModel):
    """A directed payment: ``from_id`` pays ``to_id`` the amount."""

    from_id: str
    to_id: str
    amount: Money


class BalanceSheet(LedgerModel):
    """Per-member totals keyed by active member id.

    ``balance`` is positive when the member is owed money and negative when
    they owe. ``adjusted`` is the part of ``balance`` that came from
    adjustments.
    """

    paid: dict[str, Money] = Field(default_factory=dict)
    owed: dict[str, Money] = Field(default_factory=dict)
    adjusted: dict[str, Money] = Field(default_factory=dict)
    balance: dict[str, Money] = Field(default_factory=dict)


class LedgerSummary(LedgerModel):
    """Everything the settle view shows for one project."""

    balances: BalanceSheet
    settlement: list[Transfer] = Field(default_factory=list)
    pairwise: list[Transfer] = Field(default_factory=list)


# ============================================================================
# Sample data
# ============================================================================


def default_categories() -> list[Category]:
    """Categories every new project starts with."""
    return [Category(name="食費"), Category(name="その他")]


def default_state() -> LedgerState:
    """A fresh ledger with one sample trip, used on first run and reset."""
    a, b, c = Member(name="A"), Member(name="B"), Member(name="C")
    categories = default_categories()
    project = Project(
        name="サンプル旅行",
        members=[a, b, c],
        categories=categories,
        expenses=[
            Expense(
                title="昼ごはん",
                amount=Decimal("3600"),
                payer_id=a.id,
                category_id=categories[0].id,
                share_mode=ShareMode.EQUAL,
                shares=[
                    ShareEntry(member_id=m.id, value=Decimal("1")) for m in (a, b, c)
                ],
            )
        ],
        incentives=[
            Incentive(
                type=IncentiveType.DRIVE,
                to_id=a.id,
                title="運転ありがとう",
                note="記録のみ（残高には影響しません）",
            )
        ],
    )
    return LedgerState(active_project_id=project.id, projects=[project])
