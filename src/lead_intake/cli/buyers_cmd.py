"""Buyer CSV import/export CLI commands."""

import asyncio
from pathlib import Path

import typer

buyers_app = typer.Typer()


@buyers_app.command("import")
def import_buyers(
    file_path: Path = typer.Argument(..., help="CSV file with a header row", exists=True, readable=True),
    owner_email: str = typer.Option(..., "--owner-email", help="Email of the user who will own the imported buyers"),
) -> None:
    """Import buyers from a CSV file; any invalid row rejects the whole file."""
    asyncio.run(_import_buyers(file_path, owner_email))


async def _import_buyers(file_path: Path, owner_email: str) -> None:
    """Async implementation of CSV import."""
    from lead_intake.core.config import get_settings
    from lead_intake.core.database import dispose_engine, get_session_factory, init_engine
    from lead_intake.lib.importer import CsvParseError
    from lead_intake.services.auth_service import get_or_create_demo_user
    from lead_intake.services.import_service import import_csv_text

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            owner = await get_or_create_demo_user(session, owner_email)
            text = file_path.read_text(encoding="utf-8-sig")
            result = await import_csv_text(session, text, owner.id, max_rows=settings.import_max_rows)
    except CsvParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    finally:
        await dispose_engine()

    if not result.ok:
        typer.echo(f"Import rejected: {len(result.errors)} invalid row(s), {result.valid_rows} valid", err=True)
        for error in result.errors:
            typer.echo(f"  Row {error.row}: {error.message}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Imported {result.imported} buyers")


@buyers_app.command("export")
def export_buyers(
    output: Path | None = typer.Option(None, "--output", help="Output file (defaults to stdout)"),
    city: str | None = typer.Option(None, "--city", help="Filter by city"),
    property_type: str | None = typer.Option(None, "--property-type", help="Filter by property type"),
    status_filter: str | None = typer.Option(None, "--status", help="Filter by status"),
    timeline: str | None = typer.Option(None, "--timeline", help="Filter by timeline"),
    search: str | None = typer.Option(None, "--search", help="Match name, phone or email"),
) -> None:
    """Export buyers to CSV."""
    asyncio.run(_export_buyers(output, city, property_type, status_filter, timeline, search))


async def _export_buyers(
    output: Path | None,
    city: str | None,
    property_type: str | None,
    status_filter: str | None,
    timeline: str | None,
    search: str | None,
) -> None:
    """Async implementation of CSV export."""
    from lead_intake.core.config import get_settings
    from lead_intake.core.database import dispose_engine, get_session_factory, init_engine
    from lead_intake.services.export_service import export_buyers_csv

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            content = await export_buyers_csv(
                session,
                search=search,
                city=city,
                property_type=property_type,
                status=status_filter,
                timeline=timeline,
            )
    finally:
        await dispose_engine()

    if output is None:
        typer.echo(content, nl=False)
    else:
        output.write_text(content, encoding="utf-8")
        typer.echo(f"Exported to {output}")
