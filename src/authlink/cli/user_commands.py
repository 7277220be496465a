"""User management CLI commands."""

import json

import typer
from rich.prompt import Confirm
from rich.table import Table

from .utils import console, flag, get_credential_service, handle_errors, parse_json_option

users_app = typer.Typer(help="👤 User management commands")


@users_app.command("create")
def create_user(
    profile: str | None = typer.Option(None, "--profile", "-p", help="Profile metadata as a JSON object"),
    uid: str | None = typer.Option(None, "--uid", help="Use this id instead of a generated one"),
) -> None:
    """Create a user without credentials."""
    metadata = parse_json_option(profile, "--profile")
    with handle_errors("create user"):
        user = get_credential_service().create_user(metadata, uid)
    console.print(f"[green]✅ Created user {user.uid}[/green]")


@users_app.command("list")
def list_users() -> None:
    """List all users."""
    with handle_errors("list users"):
        users = get_credential_service().list_users()

    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Created", style="green")
    table.add_column("Profile", style="white")
    for user in users:
        table.add_row(
            user.uid,
            user.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            json.dumps(user.profile) if user.profile is not None else "",
        )
    console.print(table)


@users_app.command("show")
def show_user(uid: str = typer.Argument(..., help="User id")) -> None:
    """Show a user with its credentials and which of them are linked."""
    service = get_credential_service()
    with handle_errors("show user"):
        user = service.get_user(uid)
        credentials = service.list_credentials(uid)
        link = service.get_link(uid)

    console.print(f"[bold]User {user.uid}[/bold]")
    if user.profile is not None:
        console.print(f"Profile: {json.dumps(user.profile)}")

    pointers = link.pointers if link else {}
    table = Table(title="Credentials")
    table.add_column("Method", style="cyan")
    table.add_column("ID", style="white")
    table.add_column("Identifier", style="green")
    table.add_column("Active", justify="center")
    table.add_column("Verified", justify="center")
    table.add_column("Disabled", justify="center")
    for instance in credentials:
        table.add_row(
            instance.method,
            instance.cid,
            instance.identifier,
            flag(pointers.get(instance.method) == instance.cid),
            flag(instance.verified),
            flag(instance.disabled),
        )
    console.print(table)


@users_app.command("can-delete")
def can_delete(uid: str = typer.Argument(..., help="User id")) -> None:
    """Report whether the user has no active credential left."""
    with handle_errors("check user"):
        deletable = get_credential_service().can_delete_user(uid)
    if deletable:
        console.print(f"[green]User {uid} can be deleted[/green]")
    else:
        console.print(f"[yellow]User {uid} still has active credentials[/yellow]")
        raise typer.Exit(code=1)


@users_app.command("delete")
def delete_user(
    uid: str = typer.Argument(..., help="User id"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Delete a user whose credentials are all unlinked."""
    if not force and not Confirm.ask(f"Are you sure you want to delete user '{uid}'?"):
        console.print("[yellow]Deletion cancelled[/yellow]")
        return
    with handle_errors("delete user"):
        get_credential_service().delete_user(uid)
    console.print(f"[green]✅ Deleted user {uid}[/green]")
