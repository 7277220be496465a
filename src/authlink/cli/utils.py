"""Shared utilities for CLI commands."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from src.authlink.core.errors import AuthLinkError
from src.authlink.core.services.credential import CredentialService
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.schema import SchemaEvolutionEngine

# Initialize Rich console for colored output
console = Console()


@lru_cache
def get_db() -> DbSessionService:
    """Database service for the configured database, created once per process."""
    return DbSessionService()


def get_credential_service() -> CredentialService:
    return CredentialService(get_db())


def get_schema_engine() -> SchemaEvolutionEngine:
    return SchemaEvolutionEngine(get_db())


@contextmanager
def handle_errors(action: str) -> Iterator[None]:
    """Print domain errors and exit non-zero instead of dumping a traceback."""
    try:
        yield
    except AuthLinkError as e:
        console.print(f"[red]❌ Failed to {action}: {escape(e.message)}[/red]")
        if e.details:
            console.print(f"[dim]{escape(json.dumps(e.details, default=str))}[/dim]")
        raise typer.Exit(code=1) from e


def parse_json_option(value: str | None, option: str) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        console.print(f"[red]❌ {option} must be valid JSON: {e.msg}[/red]")
        raise typer.Exit(code=1) from e
    if not isinstance(parsed, dict):
        console.print(f"[red]❌ {option} must be a JSON object[/red]")
        raise typer.Exit(code=1)
    return parsed


def flag(value: bool) -> str:
    return "✅" if value else "❌"
