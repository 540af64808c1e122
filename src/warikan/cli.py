"""CLI for Warikan."""

import typer

from .ledger.cli import app as ledger_app
from .ledger.cli import console, ledger_session
from .ledger.ui import confirm

app = typer.Typer(
    name="warikan",
    help="Split shared expenses fairly and settle up with few transfers",
)

app.add_typer(ledger_app, name="ledger", help="Projects, expenses and settlement")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Erase all data and start over with the sample project."""
    if not yes and not confirm("Erase all projects and start over?"):
        console.print("[yellow]Cancelled.[/yellow]")
        return
    with ledger_session(verbose) as service:
        state = service.reset()
        console.print(
            f"[green]Reset. Active project: {state.active_project().name}[/green]"
        )


if __name__ == "__main__":
    app()
