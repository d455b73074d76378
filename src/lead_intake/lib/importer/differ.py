"""Field-level change detection between a stored buyer and a validated update."""

from typing import Any

# Identity, ownership and bookkeeping columns are never part of a change set
EXCLUDED_FIELDS: frozenset[str] = frozenset({"id", "owner_id", "updated_at", "created_at"})


def diff_records(
    existing: dict[str, Any],
    incoming: dict[str, Any],
    compare_fields: list[str] | None = None,
) -> dict[str, dict[str, Any]]:
    """Detect field-level changes between the stored record and an update.

    Args:
        existing: The current database record as a dict.
        incoming: The validated update values as a dict.
        compare_fields: Fields to compare (None = every key of ``incoming``).

    Returns:
        Dictionary of field_name -> {"old": old_value, "new": new_value} for
        changed fields. Empty when nothing differs.
    """
    if compare_fields is None:
        compare_fields = [k for k in incoming if not k.startswith("_")]

    changes: dict[str, dict[str, Any]] = {}
    for field in compare_fields:
        if field in EXCLUDED_FIELDS:
            continue
        old_val = existing.get(field)
        new_val = incoming.get(field)
        if old_val != new_val:
            changes[field] = {"old": old_val, "new": new_val}

    return changes
