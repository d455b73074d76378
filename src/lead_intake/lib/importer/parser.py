"""CSV row parser for buyer imports.

Splits raw CSV text into header-keyed rows of text cells. Uses the pandas
tokenizer so quoted cells may contain commas, quotes and newlines. Does not
look at cell contents; that is the validator's job.
"""

import csv
import io

import pandas as pd
from loguru import logger

MAX_IMPORT_ROWS = 200


class CsvParseError(ValueError):
    """Raised when CSV input cannot be turned into rows."""


class EmptyInputError(CsvParseError):
    """Raised when the input has no non-blank lines."""


class BatchTooLargeError(CsvParseError):
    """Raised when the input has more data rows than allowed."""

    def __init__(self, row_count: int, max_rows: int) -> None:
        super().__init__(f"Maximum {max_rows} rows allowed")
        self.row_count = row_count
        self.max_rows = max_rows


class MalformedCsvError(CsvParseError):
    """Raised when the input is not a usable CSV table (unterminated quote, duplicate header)."""


def _check_header(body: str) -> None:
    try:
        names = [name.strip() for name in next(csv.reader(io.StringIO(body), skipinitialspace=True))]
    except csv.Error as exc:
        msg = f"Malformed CSV: {exc}"
        raise MalformedCsvError(msg) from exc

    duplicates = sorted({name for name in names if name and names.count(name) > 1})
    if duplicates:
        msg = f"Duplicate column names: {', '.join(duplicates)}"
        raise MalformedCsvError(msg)


def parse_csv(text: str, *, max_rows: int = MAX_IMPORT_ROWS) -> list[dict[str, str]]:
    """Parse CSV text into a list of header-keyed rows.

    The first non-blank line is the header; its order defines the column to
    field mapping for every row. Whitespace-only lines are skipped, header
    names and cells are trimmed, and rows shorter than the header are padded
    with empty strings. Reading stops one row past ``max_rows``.

    Args:
        text: The raw file contents.
        max_rows: Maximum number of data rows accepted.

    Returns:
        List of dicts mapping header name -> cell text, in file order.

    Raises:
        EmptyInputError: If there are no non-blank lines.
        BatchTooLargeError: If there are more than ``max_rows`` data rows.
        MalformedCsvError: If the tokenizer cannot parse the input or the
            header repeats a column name.
    """
    text = text.removeprefix("\ufeff")
    # A line of bare delimiters is a row; only whitespace-only lines are dropped
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        msg = "Empty file"
        raise EmptyInputError(msg)
    body = "\n".join(lines)

    _check_header(body)

    try:
        frame = pd.read_csv(
            io.StringIO(body),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            index_col=False,
            nrows=max_rows + 1,
        )
    except pd.errors.EmptyDataError as exc:
        msg = "Empty file"
        raise EmptyInputError(msg) from exc
    except pd.errors.ParserError as exc:
        msg = f"Malformed CSV: {exc}"
        raise MalformedCsvError(msg) from exc

    if len(frame) > max_rows:
        raise BatchTooLargeError(len(frame), max_rows)

    frame.columns = [str(c).strip() for c in frame.columns]
    frame = frame.fillna("").astype(str).map(str.strip)

    logger.debug(f"Parsed CSV with {len(frame.columns)} columns and {len(frame)} data rows")
    return frame.to_dict(orient="records")
