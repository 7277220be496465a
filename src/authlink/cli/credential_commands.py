"""Credential management CLI commands."""

import json

import typer
from rich.prompt import Confirm
from rich.table import Table

from src.authlink.entities.core.credential import CredentialInstance

from .utils import console, flag, get_credential_service, handle_errors, parse_json_option

credentials_app = typer.Typer(help="🔑 Credential management commands")


def _print_instance(instance: CredentialInstance) -> None:
    table = Table(title=f"Credential {instance.cid}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Method", instance.method)
    table.add_row("User", instance.uid)
    table.add_row("Identifier", instance.identifier)
    table.add_row("Verified", flag(instance.verified))
    table.add_row("Disabled", flag(instance.disabled))
    table.add_row("Attributes", json.dumps(instance.attributes))
    table.add_row("Created", str(instance.created))
    table.add_row("Last Update", str(instance.last_update))
    table.add_row("Last Authentication", str(instance.last_authentication or "never"))
    console.print(table)


@credentials_app.command("methods")
def list_methods() -> None:
    """List the credential methods known to the current schema."""
    with handle_errors("list methods"):
        methods = get_credential_service().list_methods()

    if not methods:
        console.print("[yellow]No credential methods; run 'schema upgrade' first[/yellow]")
        return

    table = Table(title="Credential Methods")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Identifier", style="white")
    table.add_column("Fields", style="white")
    for method in methods:
        table.add_row(
            method.name,
            str(method.kind),
            method.identifier_label,
            ", ".join(sorted(method.field_defaults)),
        )
    console.print(table)


@credentials_app.command("register")
def register(
    uid: str = typer.Argument(..., help="Owning user id"),
    method: str = typer.Argument(..., help="Credential method"),
    identifier: str = typer.Argument(..., help="Username, email or provider id"),
    secret: str = typer.Option(..., "--secret", "-s", help="Secret material, already hashed"),
    attributes: str | None = typer.Option(None, "--attributes", "-a", help="Method fields as a JSON object"),
    link: bool = typer.Option(False, "--link", help="Make the new credential active"),
) -> None:
    """Register a credential for a user."""
    extra = parse_json_option(attributes, "--attributes")
    service = get_credential_service()
    with handle_errors("register credential"):
        if link:
            cid = service.register_and_link(uid, method, identifier, secret.encode(), extra)
        else:
            cid = service.register(uid, method, identifier, secret.encode(), extra)
    console.print(f"[green]✅ Registered {method} credential {cid}[/green]")


@credentials_app.command("show")
def show(cid: str = typer.Argument(..., help="Credential id")) -> None:
    """Show one credential instance."""
    with handle_errors("show credential"):
        instance = get_credential_service().get_credential(cid)
    _print_instance(instance)


@credentials_app.command("link")
def link(
    uid: str = typer.Argument(..., help="User id"),
    method: str = typer.Argument(..., help="Credential method"),
    cid: str = typer.Argument(..., help="Credential id to make active"),
) -> None:
    """Make a credential the active one for its method."""
    with handle_errors("link credential"):
        previous = get_credential_service().link(uid, method, cid)
    console.print(f"[green]✅ Linked {method} credential {cid}[/green]")
    if previous and previous != cid:
        console.print(f"[dim]Replaced {previous}; it was kept[/dim]")


@credentials_app.command("unlink")
def unlink(
    uid: str = typer.Argument(..., help="User id"),
    method: str = typer.Argument(..., help="Credential method"),
) -> None:
    """Clear the active credential of a method without deleting it."""
    with handle_errors("unlink credential"):
        previous = get_credential_service().unlink(uid, method)
    if previous is None:
        console.print(f"[yellow]No active {method} credential[/yellow]")
    else:
        console.print(f"[green]✅ Unlinked {method} credential {previous}[/green]")


@credentials_app.command("revoke")
def revoke(
    uid: str = typer.Argument(..., help="User id"),
    method: str = typer.Argument(..., help="Credential method"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Unlink and delete the active credential of a method."""
    if not force and not Confirm.ask(f"Revoke the {method} credential of user '{uid}'?"):
        console.print("[yellow]Revocation cancelled[/yellow]")
        return
    with handle_errors("revoke credential"):
        cid = get_credential_service().revoke(uid, method)
    console.print(f"[green]✅ Revoked {method} credential {cid}[/green]")


@credentials_app.command("disable")
def disable(cid: str = typer.Argument(..., help="Credential id")) -> None:
    """Disable a credential; it stays linked."""
    with handle_errors("disable credential"):
        get_credential_service().set_disabled(cid, True)
    console.print(f"[green]✅ Disabled credential {cid}[/green]")


@credentials_app.command("enable")
def enable(cid: str = typer.Argument(..., help="Credential id")) -> None:
    """Re-enable a disabled credential."""
    with handle_errors("enable credential"):
        get_credential_service().set_disabled(cid, False)
    console.print(f"[green]✅ Enabled credential {cid}[/green]")


@credentials_app.command("verify")
def verify(cid: str = typer.Argument(..., help="Credential id")) -> None:
    """Mark a credential as verified."""
    with handle_errors("verify credential"):
        get_credential_service().mark_verified(cid)
    console.print(f"[green]✅ Verified credential {cid}[/green]")


@credentials_app.command("delete")
def delete(
    cid: str = typer.Argument(..., help="Credential id"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Delete a credential, clearing any pointer to it."""
    if not force and not Confirm.ask(f"Delete credential '{cid}'?"):
        console.print("[yellow]Deletion cancelled[/yellow]")
        return
    with handle_errors("delete credential"):
        get_credential_service().delete_credential(cid)
    console.print(f"[green]✅ Deleted credential {cid}[/green]")
