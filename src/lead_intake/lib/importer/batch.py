"""Batch validation of parsed CSV rows.

Validates every row and collects all failures so the caller can report them
in one response. The result is all-or-nothing: callers import only when
``ok`` is true.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from lead_intake.lib.importer.rules import BuyerFields
from lead_intake.lib.importer.validator import validate_csv_row

# Row numbers are 1-based and the header occupies row 1
_FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class RowError:
    """A failed CSV row and why it failed."""

    row: int
    message: str


@dataclass
class BatchValidationResult:
    """Outcome of validating a batch of rows."""

    records: list[BuyerFields] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def valid_count(self) -> int:
        """How many rows passed validation (whether or not the batch is importable)."""
        return len(self.records)


def validate_batch(rows: Sequence[dict[str, str]]) -> BatchValidationResult:
    """Validate parsed CSV rows.

    Args:
        rows: Header-keyed rows from ``parse_csv``.

    Returns:
        BatchValidationResult with normalized records in row order and one
        RowError per failing row.
    """
    result = BatchValidationResult()
    for index, row in enumerate(rows):
        record, errors = validate_csv_row(row)
        if record is not None:
            result.records.append(record)
        else:
            result.errors.append(
                RowError(
                    row=index + _FIRST_DATA_ROW,
                    message="; ".join(str(e) for e in errors),
                )
            )
    return result
