"""Schema evolution CLI commands."""

import typer
from rich.table import Table

from .utils import console, get_schema_engine, handle_errors

schema_app = typer.Typer(help="🧬 Schema evolution commands")


@schema_app.command("status")
def status() -> None:
    """Show every transformation and whether it has been applied."""
    engine = get_schema_engine()
    with handle_errors("read schema status"):
        entries = engine.status()
        current = engine.current_version()

    table = Table(title="Schema Status")
    table.add_column("Version", style="cyan", justify="right")
    table.add_column("Transformation", style="white")
    table.add_column("Status")
    table.add_column("Applied At")

    for entry in entries:
        table.add_row(
            str(entry.version),
            entry.name,
            "[green]Applied[/green]" if entry.applied else "[yellow]Pending[/yellow]",
            entry.applied_at.strftime("%Y-%m-%d %H:%M:%S") if entry.applied_at else "",
        )

    console.print(table)
    console.print(f"Current version: [bold]{current}[/bold] of {engine.head}")


@schema_app.command("upgrade")
def upgrade(
    target: int | None = typer.Option(None, "--target", "-t", help="Stop at this version"),
) -> None:
    """Apply pending transformations in order."""
    engine = get_schema_engine()
    with handle_errors("upgrade schema"):
        try:
            applied = engine.upgrade(target)
        except ValueError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(code=1) from e

    if not applied:
        console.print("[green]✓ Schema is up to date[/green]")
        return
    for version in applied:
        console.print(f"[green]✓[/green] Applied version {version}")


@schema_app.command("downgrade")
def downgrade(
    target: int = typer.Argument(..., help="Version to revert to (0 reverts everything)"),
) -> None:
    """Revert transformations, newest first, down to TARGET."""
    engine = get_schema_engine()
    with handle_errors("downgrade schema"):
        try:
            reverted = engine.downgrade(target)
        except ValueError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(code=1) from e

    if not reverted:
        console.print(f"[yellow]Already at version {target} or below[/yellow]")
        return
    for version in reverted:
        console.print(f"[green]✓[/green] Reverted version {version}")


@schema_app.command("forward")
def forward() -> None:
    """Apply the next pending transformation."""
    with handle_errors("apply transformation"):
        version = get_schema_engine().apply_next_forward()
    if version is None:
        console.print("[green]✓ Schema is up to date[/green]")
    else:
        console.print(f"[green]✓[/green] Applied version {version}")


@schema_app.command("reverse")
def reverse() -> None:
    """Revert the most recently applied transformation."""
    with handle_errors("revert transformation"):
        version = get_schema_engine().apply_last_reverse()
    if version is None:
        console.print("[yellow]No applied transformations[/yellow]")
    else:
        console.print(f"[green]✓[/green] Reverted version {version}")
