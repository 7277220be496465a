"""Database CLI commands."""

import typer

from src.authlink.runtime.init_db import init_db

from .utils import console, get_db, handle_errors

db_app = typer.Typer(help="🗄️  Database commands")


@db_app.command("init")
def init(
    upgrade: bool | None = typer.Option(
        None,
        "--upgrade/--no-upgrade",
        help="Apply the schema history after creating tables (default: schema_evolution.auto_upgrade)",
    ),
) -> None:
    """Create the tables and optionally bring the schema to head."""
    with handle_errors("initialize database"):
        init_db(get_db(), upgrade)
    console.print("[green]✅ Database initialized[/green]")


@db_app.command("check")
def check() -> None:
    """Check that the database is reachable."""
    if get_db().health_check():
        console.print("[green]✅ Database is reachable[/green]")
    else:
        console.print("[red]❌ Database is not reachable[/red]")
        raise typer.Exit(code=1)
