"""Typer CLI root application with serve command."""

import typer

from lead_intake.core.config import get_settings
from lead_intake.core.logging import setup_logging

app = typer.Typer(name="lead-intake", help="Buyer lead intake CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "lead_intake.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from lead_intake.cli.buyers_cmd import buyers_app
    from lead_intake.cli.db_cmd import db_app
    from lead_intake.cli.user_cmd import user_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(user_app, name="user", help="User management commands")
    app.add_typer(buyers_app, name="buyers", help="Buyer CSV import/export commands")


_register_subcommands()
