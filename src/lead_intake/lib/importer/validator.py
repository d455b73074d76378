"""Buyer record validation.

Runs the per-field rules from ``rules.py`` and, only when those all pass,
the cross-field rules. Every failure names exactly one field by its external
(camelCase) name so callers can render a targeted error. Nothing here touches
storage.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from lead_intake.lib.importer.rules import (
    BHK_REQUIRED_TYPES,
    FIELD_ALIASES,
    BuyerCsvRow,
    BuyerFields,
)

# Fields an update payload may never set
PROTECTED_FIELDS: frozenset[str] = frozenset(
    {"id", "owner_id", "ownerId", "updated_at", "updatedAt", "created_at", "createdAt"}
)

_EXTERNAL_NAMES = frozenset(FIELD_ALIASES.values())

# Friendlier messages than the generic Pydantic ones; "missing" keeps Pydantic's text
_FIELD_MESSAGES: dict[str, str] = {
    "fullName": "Full name must be between 2 and 80 characters",
    "phone": "Phone must be 10-15 digits",
    "email": "Invalid email format",
    "budgetMin": "Budget must be a non-negative whole number",
    "budgetMax": "Budget must be a non-negative whole number",
    "notes": "Notes must be at most 1000 characters",
}


@dataclass(frozen=True)
class FieldError:
    """One validation failure scoped to a single field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class RecordValidationError(ValueError):
    """Raised by the service layer when a record fails validation."""

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = errors


def _external_name(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "__root__"
    name = str(loc[0])
    if name in _EXTERNAL_NAMES:
        return name
    return FIELD_ALIASES.get(name, name)


def _field_errors(exc: ValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        field = _external_name(err["loc"])
        message = err["msg"] if err["type"] == "missing" else _FIELD_MESSAGES.get(field, err["msg"])
        errors.append(FieldError(field=field, message=message))
    return errors


def _check_bhk_required(record: BuyerFields) -> FieldError | None:
    if record.property_type in BHK_REQUIRED_TYPES and record.bhk is None:
        return FieldError("bhk", "BHK is required for Apartment and Villa properties")
    return None


def _check_budget_range(record: BuyerFields) -> FieldError | None:
    if record.budget_min is not None and record.budget_max is not None and record.budget_max < record.budget_min:
        return FieldError("budgetMax", "Maximum budget must be greater than or equal to minimum budget")
    return None


CROSS_FIELD_RULES: tuple[Callable[[BuyerFields], FieldError | None], ...] = (
    _check_bhk_required,
    _check_budget_range,
)


def _validate(model: type[BuyerFields], payload: Mapping[str, Any]) -> tuple[BuyerFields | None, list[FieldError]]:
    try:
        record = model.model_validate(dict(payload))
    except ValidationError as exc:
        return None, _field_errors(exc)

    errors = [err for rule in CROSS_FIELD_RULES if (err := rule(record)) is not None]
    if errors:
        return None, errors
    return record, []


def validate_create(payload: Mapping[str, Any]) -> tuple[BuyerFields | None, list[FieldError]]:
    """Validate a typed create payload.

    Args:
        payload: Field name (camelCase or snake_case) -> value.

    Returns:
        Tuple of (normalized record or None, list of field errors).
    """
    return _validate(BuyerFields, payload)


def validate_update(
    stored: Mapping[str, Any],
    payload: Mapping[str, Any],
) -> tuple[BuyerFields | None, list[FieldError]]:
    """Validate an update by merging ``payload`` over the stored record.

    Cross-field rules therefore see the record as it would be after the
    update, not just the changed fields. Protected keys in the payload are
    dropped.

    Args:
        stored: The current record as a snake_case dict.
        payload: The incoming changes (camelCase or snake_case keys).

    Returns:
        Tuple of (normalized merged record or None, list of field errors).
    """
    merged = {name: stored[name] for name in FIELD_ALIASES if name in stored}
    for key, value in payload.items():
        if key in PROTECTED_FIELDS:
            continue
        name = next((n for n, alias in FIELD_ALIASES.items() if alias == key), key)
        merged[name] = value
    return _validate(BuyerFields, merged)


def validate_csv_row(row: Mapping[str, str]) -> tuple[BuyerFields | None, list[FieldError]]:
    """Validate one parsed CSV row (all values are strings).

    Args:
        row: Header name -> cell text.

    Returns:
        Tuple of (normalized record or None, list of field errors).
    """
    return _validate(BuyerCsvRow, row)


def changed_fields(payload: Mapping[str, Any]) -> set[str]:
    """Return the snake_case names of buyer fields present in ``payload``."""
    names = set()
    for key in payload:
        if key in PROTECTED_FIELDS:
            continue
        if key in FIELD_ALIASES:
            names.add(key)
        else:
            names.update(n for n, alias in FIELD_ALIASES.items() if alias == key)
    return names
