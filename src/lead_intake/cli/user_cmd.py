"""User management CLI commands."""

import asyncio

import typer

user_app = typer.Typer()


@user_app.command("create")
def create_user(
    email: str = typer.Option(..., prompt=True, help="Email address"),
    name: str | None = typer.Option(None, "--name", help="Display name"),
    if_not_exists: bool = typer.Option(
        False,
        "--if-not-exists",
        help="Exit successfully if user already exists (idempotent mode)",
    ),
) -> None:
    """Create a user who can log in with this email."""
    asyncio.run(_create_user(email, name, if_not_exists=if_not_exists))


async def _create_user(email: str, name: str | None, *, if_not_exists: bool = False) -> None:
    """Async implementation of user creation."""
    from lead_intake.core.config import get_settings
    from lead_intake.core.database import dispose_engine, get_session_factory, init_engine
    from lead_intake.services.auth_service import create_user

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            user = await create_user(session, email, name)
            typer.echo(f"User '{user.email}' created with id {user.id}")
    except ValueError as e:
        if if_not_exists and "already exists" in str(e):
            typer.echo(f"User '{email}' already exists, skipping (--if-not-exists)")
            return
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()
