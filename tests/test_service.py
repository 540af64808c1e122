"""Tests for project edits and the LedgerService."""

from datetime import date
from decimal import Decimal

import pytest

from warikan.config import Settings
from warikan.db import Database
from warikan.exceptions import (
    CategoryInUseError,
    InvalidAdjustmentError,
    InvalidExpenseError,
    InvalidSnapshotError,
    LastProjectError,
    MemberNotFoundError,
    ProjectNotFoundError,
)
from warikan.ledger.service import (
    LedgerService,
    add_adjustment,
    add_category,
    add_expense,
    add_incentive,
    add_member,
    check_project,
    delete_adjustment,
    delete_category,
    delete_expense,
    filter_expenses,
    rename_member,
    resolve_member,
    summarize,
    toggle_member,
)
from warikan.models import (
    Category,
    IncentiveType,
    RoundingRule,
    ShareEntry,
    ShareMode,
    ShareType,
)

from conftest import make_expense


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary directory."""
    return Settings(
        database_path=tmp_path / "data" / "warikan.db",
        export_dir=tmp_path / "exports",
    )


@pytest.fixture
def service(settings):
    """LedgerService over a temporary database."""
    db = Database(settings.database_path)
    yield LedgerService(settings, db)
    db.close()


class TestMembers:
    """Member edits on a project snapshot."""

    def test_resolve_by_id_or_name(self, lunch_project):
        """Members resolve by id or case-insensitive name."""
        assert resolve_member(lunch_project, "b").name == "B"
        assert resolve_member(lunch_project, "C").id == "c"
        with pytest.raises(MemberNotFoundError):
            resolve_member(lunch_project, "Zed")

    def test_add_member(self, lunch_project):
        """New members are appended and active."""
        updated = add_member(lunch_project, "  Dan ")
        assert updated.members[-1].name == "Dan"
        assert updated.members[-1].is_active
        assert len(lunch_project.members) == 3

    def test_blank_member_name_rejected(self, lunch_project):
        """Blank names are not added."""
        with pytest.raises(MemberNotFoundError):
            add_member(lunch_project, "   ")

    def test_rename_member(self, lunch_project):
        """Renaming keeps the id; blank names are ignored."""
        renamed = rename_member(lunch_project, "b", "Bea")
        assert renamed.find_member("b").name == "Bea"
        assert rename_member(lunch_project, "b", " ") == lunch_project

    def test_toggle_member_keeps_history(self, lunch_project):
        """Deactivated members drop out of balances but stay in the project."""
        updated = toggle_member(lunch_project, "c")
        sheet = summarize(updated).balances

        assert updated.find_member("c").is_active is False
        assert "c" not in sheet.balance
        assert sheet.balance == {"a": Decimal("2400"), "b": Decimal("-1200")}
        assert toggle_member(updated, "c").find_member("c").is_active


class TestCategories:
    """Category edits."""

    def test_add_category(self, lunch_project):
        """Blank names are ignored."""
        updated = add_category(lunch_project, "交通費")
        assert [c.name for c in updated.categories] == ["交通費"]
        assert add_category(lunch_project, "") == lunch_project

    def test_delete_unused_category(self, lunch_project):
        """Unused categories can be removed."""
        project = lunch_project.model_copy(
            update={"categories": [Category(id="food", name="Food")]}
        )
        assert delete_category(project, "food").categories == []

    def test_delete_category_in_use(self, lunch_project):
        """Categories referenced by an expense are kept."""
        expense = lunch_project.expenses[0].model_copy(update={"category_id": "food"})
        project = lunch_project.model_copy(
            update={
                "categories": [Category(id="food", name="Food")],
                "expenses": [expense],
            }
        )
        with pytest.raises(CategoryInUseError) as exc_info:
            delete_category(project, "food")
        assert exc_info.value.category_name == "Food"


class TestExpenses:
    """Expense creation and filtering."""

    def test_default_shares_include_active_members(self, lunch_project):
        """Without explicit shares every active member is included."""
        project = toggle_member(lunch_project, "c")
        updated = add_expense(project, amount="900", payer_id="B", title="Taxi")
        expense = updated.expenses[-1]

        assert expense.payer_id == "b"
        assert expense.included_member_ids() == ["a", "b"]
        assert expense.amount == Decimal("900")

    @pytest.mark.parametrize("amount", [0, -10, "abc", float("nan"), None])
    def test_invalid_amount(self, lunch_project, amount):
        """Non-positive or non-numeric amounts are rejected."""
        with pytest.raises(InvalidExpenseError):
            add_expense(lunch_project, amount=amount, payer_id="a")

    def test_no_included_member(self, lunch_project):
        """At least one member must be included."""
        shares = [ShareEntry(member_id="a", type=ShareType.EXCLUDED)]
        with pytest.raises(InvalidExpenseError):
            add_expense(lunch_project, amount=100, payer_id="a", shares=shares)

    def test_unknown_payer(self, lunch_project):
        """Payers must be project members."""
        with pytest.raises(MemberNotFoundError):
            add_expense(lunch_project, amount=100, payer_id="ghost")

    def test_blank_title_gets_placeholder(self, lunch_project):
        """Untitled expenses get a placeholder title."""
        updated = add_expense(lunch_project, amount=100, payer_id="a", title=" ")
        assert updated.expenses[-1].title == "(untitled)"

    def test_delete_expense(self, lunch_project):
        """Deleting the only expense zeroes every balance."""
        updated = delete_expense(lunch_project, lunch_project.expenses[0].id)
        assert updated.expenses == []
        assert all(v == 0 for v in summarize(updated).balances.balance.values())

    def test_filter_expenses(self, lunch_project):
        """Filters combine; results are newest first."""
        project = lunch_project.model_copy(
            update={
                "expenses": [
                    *lunch_project.expenses,
                    make_expense(
                        500,
                        "b",
                        shares={"b": 1},
                        title="Coffee",
                        note="station",
                        category_id="drinks",
                        date=date(2025, 2, 1),
                    ),
                ]
            }
        )

        assert [e.title for e in filter_expenses(project)] == ["Coffee", "Lunch"]
        assert [e.title for e in filter_expenses(project, member_id="c")] == ["Lunch"]
        assert [e.title for e in filter_expenses(project, category_id="drinks")] == [
            "Coffee"
        ]
        assert [e.title for e in filter_expenses(project, query="STATION")] == [
            "Coffee"
        ]
        assert filter_expenses(project, member_id="c", query="coffee") == []


class TestAdjustmentsAndIncentives:
    """Adjustment and incentive edits."""

    def test_adjustment_moves_balance(self, lunch_project):
        """A -> B 1200 means A owes B, cancelling B's share of the lunch."""
        updated = add_adjustment(
            lunch_project, from_id="A", to_id="B", amount=1200, reason="cash"
        )
        sheet = summarize(updated).balances

        assert sheet.balance == {
            "a": Decimal("1200"),
            "b": Decimal("0"),
            "c": Decimal("-1200"),
        }
        assert sheet.adjusted == {
            "a": Decimal("-1200"),
            "b": Decimal("1200"),
            "c": Decimal("0"),
        }

    def test_adjustment_same_member(self, lunch_project):
        """From and to must differ."""
        with pytest.raises(InvalidAdjustmentError):
            add_adjustment(lunch_project, from_id="a", to_id="A", amount=10)

    def test_adjustment_amount_must_be_positive(self, lunch_project):
        """Zero adjustments are rejected."""
        with pytest.raises(InvalidAdjustmentError):
            add_adjustment(lunch_project, from_id="a", to_id="b", amount=0)

    def test_delete_adjustment(self, lunch_project):
        """Deleting an adjustment restores the original balances."""
        updated = add_adjustment(lunch_project, from_id="b", to_id="a", amount=50)
        restored = delete_adjustment(updated, updated.adjustments[0].id)
        assert summarize(restored) == summarize(lunch_project)

    def test_incentive_does_not_affect_balances(self, lunch_project):
        """Incentives are records only."""
        updated = add_incentive(
            lunch_project,
            title="Drove all day",
            incentive_type="drive",
            to_id="a",
        )

        assert updated.incentives[0].type is IncentiveType.DRIVE
        assert updated.incentives[0].from_id is None
        assert summarize(updated) == summarize(lunch_project)


class TestEngine:
    """summarize and check_project."""

    def test_summarize(self, lunch_project):
        """Balances, settlement and pairwise agree on the lunch example."""
        summary = summarize(lunch_project)

        assert summary.balances.paid["a"] == Decimal("3600")
        assert [(t.from_id, t.to_id, t.amount) for t in summary.settlement] == [
            ("b", "a", Decimal("1200")),
            ("c", "a", Decimal("1200")),
        ]
        assert len(summary.pairwise) == 2

    def test_summarize_is_pure(self, lunch_project):
        """Repeated calls give identical results."""
        assert summarize(lunch_project) == summarize(lunch_project)

    def test_check_project(self, lunch_project):
        """Dangling references are reported together."""
        check_project(lunch_project)

        broken = lunch_project.model_copy(
            update={"expenses": [make_expense(100, "ghost", shares={"nobody": 1})]}
        )
        with pytest.raises(InvalidSnapshotError) as exc_info:
            check_project(broken)
        assert len(exc_info.value.problems) == 2


class TestLedgerService:
    """State-level operations with persistence."""

    def test_first_load_is_sample(self, service):
        """An empty database yields the sample project."""
        state = service.load_state()
        assert state.active_project().name == "サンプル旅行"

    def test_create_project(self, service):
        """New projects go first, become active and are saved."""
        state = service.load_state()
        state = service.create_project(
            state, "京都", ["Taro", " ", "Hanako"], "$", "ROUND_100"
        )
        project = state.active_project()

        assert state.projects[0] == project
        assert project.name == "京都"
        assert [m.name for m in project.members] == ["Taro", "Hanako"]
        assert project.currency_symbol == "$"
        assert project.rounding_rule is RoundingRule.ROUND_100
        assert [c.name for c in project.categories] == ["食費", "その他"]
        assert service.load_state() == state

    def test_create_project_defaults(self, service):
        """Blank inputs fall back to defaults."""
        state = service.create_project(service.load_state())
        project = state.active_project()

        assert project.name == "新規プロジェクト"
        assert [m.name for m in project.members] == ["A", "B"]
        assert project.currency_symbol == "¥"
        assert project.rounding_rule is RoundingRule.NONE

    def test_update_project_settings(self, service):
        """Settings edits are saved."""
        state = service.load_state()
        project_id = state.active_project().id
        state = service.update_project_settings(
            state, project_id, name="Renamed", rounding_rule="CEIL_10"
        )

        stored = service.load_state().get_project(project_id)
        assert stored.name == "Renamed"
        assert stored.rounding_rule is RoundingRule.CEIL_10
        assert stored.currency_symbol == "¥"

    def test_replace_project(self, service):
        """Edited projects replace the stored copy."""
        state = service.load_state()
        project = add_member(state.active_project(), "D")
        state = service.replace_project(state, project)
        assert len(service.load_state().active_project().members) == 4

    def test_delete_last_project(self, service):
        """The only project cannot be deleted."""
        state = service.load_state()
        with pytest.raises(LastProjectError):
            service.delete_project(state, state.active_project().id)

    def test_delete_active_project_switches(self, service):
        """Deleting the active project activates the first remaining one."""
        state = service.load_state()
        sample_id = state.active_project().id
        state = service.create_project(state, "New")
        state = service.delete_project(state, state.active_project_id)

        assert state.active_project_id == sample_id
        assert len(service.load_state().projects) == 1

    def test_set_active_project(self, service):
        """Switching projects is persisted; unknown ids raise."""
        state = service.load_state()
        sample_id = state.active_project().id
        state = service.create_project(state, "New")
        service.set_active_project(state, sample_id)

        assert service.load_state().active_project_id == sample_id
        with pytest.raises(ProjectNotFoundError):
            service.set_active_project(state, "nope")

    def test_reset(self, service):
        """Reset discards everything and stores a fresh sample."""
        state = service.create_project(service.load_state(), "Temp")
        state = service.reset()

        assert len(state.projects) == 1
        assert service.load_state() == state

    def test_export_and_import(self, service, settings):
        """Exports land in the configured directory and import back."""
        state = service.create_project(service.load_state(), "Export me")
        path = service.export(state)

        assert path.parent == settings.export_dir
        assert service.db.get_config("last_export_path") == str(path)

        service.reset()
        imported = service.import_file(path)
        assert imported == state
        assert service.load_state() == state
