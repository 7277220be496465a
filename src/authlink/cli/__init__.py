"""Main CLI application module."""

import typer

from src.authlink.runtime.log_setup import configure_logging

from .credential_commands import credentials_app
from .db_commands import db_app
from .schema_commands import schema_app
from .user_commands import users_app

# Create the main CLI application
app = typer.Typer(
    help="🔐 authlink CLI - users, linked credentials and schema evolution",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(db_app, name="db")
app.add_typer(schema_app, name="schema")
app.add_typer(users_app, name="users")
app.add_typer(credentials_app, name="credentials")


def main() -> None:
    """Main entry point for the CLI."""
    configure_logging()
    app()


if __name__ == "__main__":
    main()
