"""CSV export writer for buyer leads."""

import csv
import io
from collections.abc import Iterable
from typing import Any

from lead_intake.lib.importer.rules import CSV_COLUMNS

# Characters that trigger formula execution in spreadsheet applications
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _sanitize_cell(value: object) -> object:
    """Sanitize a cell value to prevent CSV formula injection.

    Prefixes values starting with formula-triggering characters with
    a single quote to prevent execution in spreadsheet applications.

    Args:
        value: The cell value to sanitize.

    Returns:
        The sanitized value.
    """
    if isinstance(value, str) and value and value[0] in _FORMULA_PREFIXES:
        return f"'{value}"
    return value


def render_csv(
    rows: Iterable[dict[str, Any]],
    *,
    columns: list[str] | None = None,
) -> str:
    """Render rows as CSV text with every field double-quoted.

    Internal quotes are doubled, ``None`` renders as an empty field and
    lines end with ``\\n``.

    Args:
        rows: Iterable of dicts keyed by column name.
        columns: Column names to include. Defaults to CSV_COLUMNS.

    Returns:
        The CSV document, header first.
    """
    cols = columns or CSV_COLUMNS
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=cols,
        extrasaction="ignore",
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )
    # Header names are plain identifiers; keep them unquoted
    buffer.write(",".join(cols) + "\n")

    for row in rows:
        sanitized = {k: _sanitize_cell("" if v is None else v) for k, v in row.items()}
        writer.writerow(sanitized)

    return buffer.getvalue()
