"""CLI commands for managing a shared-expense ledger."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..config import load_settings
from ..db import Database
from ..exceptions import WarikanError
from ..models import (
    Category,
    IncentiveType,
    LedgerState,
    Project,
    RoundingRule,
    ShareEntry,
    ShareMode,
    ShareType,
    Transfer,
    clamp_money,
)
from . import service as ops
from .service import LedgerService
from .ui import confirm, select_member_interactive

app = typer.Typer(
    name="ledger",
    help="Record shared expenses and work out who owes whom",
)

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def ledger_session(verbose: bool = False) -> Iterator[LedgerService]:
    """
    Open the configured store and yield a service.

    Ledger errors are printed and turn into exit code 1; with ``verbose`` they
    are re-raised with their traceback.
    """
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db)
    except WarikanError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


# ============================================================================
# Formatting helpers
# ============================================================================


def format_money(amount: Decimal, symbol: str = "¥") -> str:
    """
    Format money rounded to whole units with thousands separators.

    Examples: ``¥3,600``, ``¥-1,200``.
    """
    value = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return f"{symbol}{value:,}"


def money_markup(amount: Decimal, symbol: str) -> str:
    """Green for credit, red for debt."""
    color = "green" if amount >= 0 else "red"
    return f"[{color}]{format_money(amount, symbol)}[/{color}]"


def resolve_project(state: LedgerState, ref: str) -> Project:
    """Find a project by id or case-insensitive name."""
    for project in state.projects:
        if project.id == ref or project.name.lower() == ref.strip().lower():
            return project
    return state.get_project(ref)


def parse_share_options(
    project: Project, options: list[str], share_mode: ShareMode
) -> list[ShareEntry] | None:
    """
    Turn ``NAME[=VALUE]`` options into shares covering every active member.

    Listed members are INCLUDED with the given value (1 when omitted); every
    other active member is EXCLUDED. No options means "everyone, value 1".
    For EQUAL the value is ignored by the engine.
    """
    if not options:
        return None

    values: dict[str, Decimal] = {}
    for option in options:
        name, _, raw = option.partition("=")
        member = ops.resolve_member(project, name)
        values[member.id] = clamp_money(raw) if raw else Decimal("1")

    shares = [
        ShareEntry(member_id=m.id, type=ShareType.INCLUDED, value=values[m.id])
        if m.id in values
        else ShareEntry(member_id=m.id, type=ShareType.EXCLUDED)
        for m in project.active_members
    ]
    # Inactive members named explicitly are still recorded
    active_ids = {m.id for m in project.active_members}
    shares.extend(
        ShareEntry(member_id=member_id, type=ShareType.INCLUDED, value=value)
        for member_id, value in values.items()
        if member_id not in active_ids
    )
    logger.debug(
        f"Parsed {len(values)} included shares for {share_mode.value} expense"
    )
    return shares


def display_balances(project: Project, summary) -> None:
    """Show paid/owed/adjusted/balance per active member."""
    symbol = project.currency_symbol
    sheet = summary.balances

    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Paid", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Adjusted", justify="right")
    table.add_column("Balance", justify="right")

    for member in project.active_members:
        table.add_row(
            member.name,
            format_money(sheet.paid[member.id], symbol),
            format_money(sheet.owed[member.id], symbol),
            format_money(sheet.adjusted[member.id], symbol),
            money_markup(sheet.balance[member.id], symbol),
        )

    console.print(table)


def display_transfers(
    project: Project, transfers: list[Transfer], title: str, empty: str
) -> None:
    """Show a list of transfers, or a note when there are none."""
    if not transfers:
        console.print(f"[dim]{empty}[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")
    for transfer in transfers:
        table.add_row(
            project.member_name(transfer.from_id),
            project.member_name(transfer.to_id),
            format_money(transfer.amount, project.currency_symbol),
        )
    console.print(table)


def _pick_member(project: Project, ref: str | None, label: str) -> str:
    """Resolve a member option, prompting when it was not given."""
    if ref:
        return ops.resolve_member(project, ref).id
    member_id = select_member_interactive(project.active_members, label)
    if member_id is None:
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(0)
    return member_id


def _pick_category(project: Project, ref: str) -> Category:
    """Resolve a category by id or name, exiting with status 1 if unknown."""
    for category in project.categories:
        if ref in (category.id, category.name):
            return category
    console.print(f"[yellow]No category '{ref}'.[/yellow]")
    raise typer.Exit(1)


def _parse_date(value: datetime | None):
    return value.date() if value else None


# ============================================================================
# Projects
# ============================================================================


@app.command()
def projects(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """List projects."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        active = state.active_project()

        table = Table(title="Projects", show_header=True, header_style="bold magenta")
        table.add_column("", width=1)
        table.add_column("Name", style="cyan")
        table.add_column("Currency")
        table.add_column("Rounding")
        table.add_column("Members", justify="right")
        table.add_column("Expenses", justify="right")
        table.add_column("ID", style="dim")

        for project in state.projects:
            table.add_row(
                "*" if project.id == active.id else "",
                project.name,
                project.currency_symbol,
                project.rounding_rule.value,
                str(len(project.active_members)),
                str(len(project.expenses)),
                project.id,
            )
        console.print(table)


@app.command()
def use(
    project: str = typer.Argument(..., help="Project name or id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Switch the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        target = resolve_project(state, project)
        service.set_active_project(state, target.id)
        console.print(f"[green]Active project: {target.name}[/green]")


@app.command("new-project")
def new_project(
    name: str = typer.Option("", "--name", "-n", help="Project name"),
    members: str = typer.Option(
        "", "--members", "-m", help="Comma-separated member names"
    ),
    currency: str = typer.Option("", "--currency", help="Currency symbol"),
    rounding: RoundingRule | None = typer.Option(
        None, "--rounding", help="Rounding rule for each share"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Create a project and make it active."""
    with ledger_session(verbose) as service:
        state = service.create_project(
            service.load_state(),
            name=name,
            member_names=members.split(","),
            currency_symbol=currency,
            rounding_rule=rounding,
        )
        project = state.active_project()
        console.print(
            f"[green]Created {project.name} with "
            f"{', '.join(m.name for m in project.members)}[/green]"
        )


@app.command("edit-project")
def edit_project(
    name: str | None = typer.Option(None, "--name", "-n"),
    currency: str | None = typer.Option(None, "--currency"),
    rounding: RoundingRule | None = typer.Option(None, "--rounding"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Change the active project's name, currency or rounding rule."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = state.active_project()
        state = service.update_project_settings(
            state,
            project.id,
            name=name,
            currency_symbol=currency,
            rounding_rule=rounding,
        )
        updated = state.get_project(project.id)
        console.print(
            f"[green]{updated.name}: {updated.currency_symbol} "
            f"{updated.rounding_rule.value}[/green]"
        )


@app.command("delete-project")
def delete_project(
    project: str = typer.Argument(..., help="Project name or id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Delete a project (the last one cannot be deleted)."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        target = resolve_project(state, project)
        if not yes and not confirm(f"Delete '{target.name}'?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.delete_project(state, target.id)
        console.print(f"[green]Deleted {target.name}[/green]")


# ============================================================================
# Members and categories
# ============================================================================


@app.command()
def members(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """List members of the active project, including inactive ones."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        table = Table(title="Members", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Status")
        table.add_column("ID", style="dim")
        for member in project.members:
            status = "active" if member.is_active else "[dim]inactive[/dim]"
            table.add_row(member.name, status, member.id)
        console.print(table)


@app.command("add-member")
def add_member(
    name: str = typer.Argument(..., help="Member name"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Add a member to the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        service.replace_project(state, ops.add_member(state.active_project(), name))
        console.print(f"[green]Added {name}[/green]")


@app.command("rename-member")
def rename_member(
    member: str = typer.Argument(..., help="Member name or id"),
    name: str = typer.Argument(..., help="New name"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Rename a member of the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = ops.rename_member(state.active_project(), member, name)
        service.replace_project(state, project)
        console.print(f"[green]Renamed {member} to {name}[/green]")


@app.command("toggle-member")
def toggle_member(
    member: str = typer.Argument(..., help="Member name or id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Deactivate (or reactivate) a member; their history is kept."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = ops.toggle_member(state.active_project(), member)
        service.replace_project(state, project)
        toggled = ops.resolve_member(project, member)
        status = "active" if toggled.is_active else "inactive"
        console.print(f"[green]{toggled.name} is now {status}[/green]")


@app.command()
def categories(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """List categories of the active project."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        for category in project.categories:
            used = sum(1 for e in project.expenses if e.category_id == category.id)
            console.print(f"  {category.name} [dim]({used} expenses)[/dim]")


@app.command("add-category")
def add_category(
    name: str = typer.Argument(..., help="Category name"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Add a category to the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        service.replace_project(state, ops.add_category(state.active_project(), name))
        console.print(f"[green]Added category {name}[/green]")


@app.command("delete-category")
def delete_category(
    name: str = typer.Argument(..., help="Category name or id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Delete a category that no expense uses."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = state.active_project()
        category = _pick_category(project, name)
        service.replace_project(state, ops.delete_category(project, category.id))
        console.print(f"[green]Deleted category {category.name}[/green]")


# ============================================================================
# Expenses, adjustments and incentives
# ============================================================================


@app.command()
def expenses(
    category: str | None = typer.Option(None, "--category", "-c", help="Category name"),
    member: str | None = typer.Option(None, "--member", "-m", help="Member name"),
    query: str = typer.Option("", "--query", "-q", help="Search title and note"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """List expenses of the active project, newest first."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()

        category_id = _pick_category(project, category).id if category else None
        member_id = ops.resolve_member(project, member).id if member else None

        rows = ops.filter_expenses(project, category_id, member_id, query)
        if not rows:
            console.print("[dim]No expenses.[/dim]")
            return

        table = Table(title="Expenses", show_header=True, header_style="bold magenta")
        table.add_column("Date")
        table.add_column("Title", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Payer")
        table.add_column("People", justify="right")
        table.add_column("Mode")
        table.add_column("Amount", justify="right")
        table.add_column("ID", style="dim")

        for expense in rows:
            people = len(expense.included_member_ids()) or len(project.active_members)
            table.add_row(
                expense.date.isoformat(),
                expense.title,
                project.category_name(expense.category_id),
                project.member_name(expense.payer_id),
                str(people),
                expense.share_mode.value,
                format_money(expense.amount, project.currency_symbol),
                expense.id,
            )
        console.print(table)


@app.command("add-expense")
def add_expense(
    amount: str = typer.Argument(..., help="Amount paid"),
    title: str = typer.Option("", "--title", "-t"),
    payer: str | None = typer.Option(
        None, "--payer", "-p", help="Payer name (prompted if omitted)"
    ),
    mode: ShareMode = typer.Option(ShareMode.EQUAL, "--mode", help="Share mode"),
    share: list[str] | None = typer.Option(
        None,
        "--share",
        "-s",
        help="NAME or NAME=VALUE; repeat per participant (default: everyone)",
    ),
    category: str | None = typer.Option(None, "--category", "-c"),
    date: datetime | None = typer.Option(None, "--date", formats=["%Y-%m-%d"]),
    note: str = typer.Option("", "--note"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Record an expense in the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = state.active_project()

        payer_id = _pick_member(project, payer, "Payer")
        category_id = None
        if category:
            category_id = _pick_category(project, category).id
        elif project.categories:
            category_id = project.categories[0].id

        project = ops.add_expense(
            project,
            amount=amount,
            payer_id=payer_id,
            title=title,
            share_mode=mode,
            shares=parse_share_options(project, share or [], mode),
            category_id=category_id,
            date=_parse_date(date),
            note=note,
        )
        service.replace_project(state, project)

        expense = project.expenses[-1]
        console.print(
            f"[green]Added {expense.title}: "
            f"{format_money(expense.amount, project.currency_symbol)} paid by "
            f"{project.member_name(expense.payer_id)}[/green]"
        )


@app.command("delete-expense")
def delete_expense(
    expense_id: str = typer.Argument(..., help="Expense id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Delete an expense from the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        service.replace_project(
            state, ops.delete_expense(state.active_project(), expense_id)
        )
        console.print(f"[green]Deleted expense {expense_id}[/green]")


@app.command()
def adjustments(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """List adjustments of the active project, newest first."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        if not project.adjustments:
            console.print("[dim]No adjustments yet.[/dim]")
            return

        table = Table(
            title="Adjustments", show_header=True, header_style="bold magenta"
        )
        table.add_column("Date")
        table.add_column("Reason", style="cyan")
        table.add_column("From -> To")
        table.add_column("Amount", justify="right")
        table.add_column("ID", style="dim")
        for adjustment in sorted(
            project.adjustments, key=lambda a: a.date, reverse=True
        ):
            table.add_row(
                adjustment.date.isoformat(),
                adjustment.reason,
                f"{project.member_name(adjustment.from_id)} -> "
                f"{project.member_name(adjustment.to_id)}",
                format_money(adjustment.amount, project.currency_symbol),
                adjustment.id,
            )
        console.print(table)


@app.command("add-adjustment")
def add_adjustment(
    amount: str = typer.Argument(..., help="Amount moved from --from to --to"),
    from_: str | None = typer.Option(None, "--from", help="Member who owes more"),
    to: str | None = typer.Option(None, "--to", help="Member who is owed more"),
    reason: str = typer.Option("", "--reason", "-r"),
    date: datetime | None = typer.Option(None, "--date", formats=["%Y-%m-%d"]),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Record a manual adjustment: FROM owes TO the amount."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = state.active_project()
        from_id = _pick_member(project, from_, "From")
        to_id = _pick_member(project, to, "To")
        project = ops.add_adjustment(
            project,
            from_id=from_id,
            to_id=to_id,
            amount=amount,
            reason=reason,
            date=_parse_date(date),
        )
        service.replace_project(state, project)
        console.print(
            f"[green]Adjustment {project.member_name(from_id)} -> "
            f"{project.member_name(to_id)} recorded[/green]"
        )


@app.command("delete-adjustment")
def delete_adjustment(
    adjustment_id: str = typer.Argument(..., help="Adjustment id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Delete an adjustment from the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        service.replace_project(
            state, ops.delete_adjustment(state.active_project(), adjustment_id)
        )
        console.print(f"[green]Deleted adjustment {adjustment_id}[/green]")


@app.command()
def incentives(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """List thank-you records (they never change balances)."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        if not project.incentives:
            console.print("[dim]No records yet.[/dim]")
            return
        for item in sorted(project.incentives, key=lambda i: i.date, reverse=True):
            parties = " -> ".join(
                project.member_name(member_id)
                for member_id in (item.from_id, item.to_id)
                if member_id
            )
            console.print(
                f"  {item.date.isoformat()} [cyan]{item.title}[/cyan] "
                f"[dim]{item.type.value}[/dim] {parties} [dim]({item.id})[/dim]"
            )
            if item.note:
                console.print(f"    [dim]{item.note}[/dim]")


@app.command("add-incentive")
def add_incentive(
    title: str = typer.Argument(..., help="What happened"),
    kind: IncentiveType = typer.Option(IncentiveType.NOTE, "--type"),
    from_: str | None = typer.Option(None, "--from"),
    to: str | None = typer.Option(None, "--to"),
    note: str = typer.Option("", "--note"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Record a non-monetary favour."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        project = ops.add_incentive(
            state.active_project(),
            title=title,
            incentive_type=kind,
            from_id=from_,
            to_id=to,
            note=note,
        )
        service.replace_project(state, project)
        console.print(f"[green]Recorded {title}[/green]")


@app.command("delete-incentive")
def delete_incentive(
    incentive_id: str = typer.Argument(..., help="Record id"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Delete a thank-you record from the active project."""
    with ledger_session(verbose) as service:
        state = service.load_state()
        service.replace_project(
            state, ops.delete_incentive(state.active_project(), incentive_id)
        )
        console.print(f"[green]Deleted record {incentive_id}[/green]")


# ============================================================================
# Results
# ============================================================================


@app.command()
def balances(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Show each member's balance in the active project."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        display_balances(project, ops.summarize(project))


@app.command()
def settle(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Show balances and the transfers that settle them."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        summary = ops.summarize(project)

        console.print(f"\n[bold]{project.name}[/bold]")
        display_balances(project, summary)
        console.print()
        display_transfers(
            project,
            summary.settlement,
            "Settlement",
            "No transfers needed; everyone is even.",
        )


@app.command()
def pairs(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Show the net debt between each pair of members."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        display_transfers(
            project,
            ops.summarize(project).pairwise,
            "Pairwise net",
            "No pairwise debts.",
        )


@app.command()
def check(verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Check the active project for dangling member or category references."""
    with ledger_session(verbose) as service:
        project = service.load_state().active_project()
        ops.check_project(project)
        console.print(f"[green]✓ {project.name} is consistent[/green]")


# ============================================================================
# Import / export
# ============================================================================


@app.command()
def export(
    directory: Path | None = typer.Option(
        None, "--dir", "-d", help="Target directory (default: WARIKAN_EXPORT_DIR)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Export all projects to a dated JSON file."""
    with ledger_session(verbose) as service:
        path = service.export(service.load_state(), directory)
        console.print(f"[green]Exported to {path}[/green]")


@app.command("import")
def import_(
    path: Path = typer.Argument(..., help="Exported JSON file"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Replace all data with an exported JSON file."""
    with ledger_session(verbose) as service:
        if not yes and not confirm("Replace all current data?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        state = service.import_file(path)
        console.print(f"[green]Imported {len(state.projects)} projects[/green]")
