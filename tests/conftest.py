"""Shared fixtures for Warikan tests."""

from datetime import date
from decimal import Decimal

import pytest

from warikan.models import Expense, Member, Project, ShareEntry, ShareMode


def make_members(*names: str, inactive: tuple[str, ...] = ()) -> list[Member]:
    """Members whose id is the lower-cased name."""
    return [
        Member(id=name.lower(), name=name, is_active=name not in inactive)
        for name in names
    ]


def make_expense(
    amount: str | int,
    payer_id: str,
    share_mode: ShareMode = ShareMode.EQUAL,
    shares: dict[str, str | int] | None = None,
    **kwargs,
) -> Expense:
    """Expense with INCLUDED shares built from a {member_id: value} dict."""
    return Expense(
        amount=Decimal(str(amount)),
        payer_id=payer_id,
        share_mode=share_mode,
        shares=[
            ShareEntry(member_id=member_id, value=Decimal(str(value)))
            for member_id, value in (shares or {}).items()
        ],
        **kwargs,
    )


@pytest.fixture
def three_members() -> list[Member]:
    """Active members A, B and C."""
    return make_members("A", "B", "C")


@pytest.fixture
def lunch_project(three_members) -> Project:
    """A ¥3600 lunch paid by A and split equally by A, B and C."""
    return Project(
        id="trip",
        name="Trip",
        members=three_members,
        expenses=[
            make_expense(
                3600,
                "a",
                shares={"a": 1, "b": 1, "c": 1},
                title="Lunch",
                date=date(2025, 1, 15),
            )
        ],
    )
