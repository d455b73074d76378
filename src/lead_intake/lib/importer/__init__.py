"""Importer library public API.

Provides buyer CSV parsing, record validation, batch validation and
field-level diffing.
"""

from lead_intake.lib.importer.batch import BatchValidationResult, RowError, validate_batch
from lead_intake.lib.importer.differ import diff_records
from lead_intake.lib.importer.parser import (
    BatchTooLargeError,
    CsvParseError,
    EmptyInputError,
    MalformedCsvError,
    parse_csv,
)
from lead_intake.lib.importer.validator import (
    FieldError,
    RecordValidationError,
    validate_create,
    validate_csv_row,
    validate_update,
)

__all__ = [
    "BatchTooLargeError",
    "BatchValidationResult",
    "CsvParseError",
    "EmptyInputError",
    "FieldError",
    "MalformedCsvError",
    "RecordValidationError",
    "RowError",
    "diff_records",
    "parse_csv",
    "validate_batch",
    "validate_create",
    "validate_csv_row",
    "validate_update",
]
