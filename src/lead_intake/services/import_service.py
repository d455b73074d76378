"""Import service — turns CSV text into buyers in a single all-or-nothing batch.

Parsing and validation happen entirely before the database is touched. If
any row fails, nothing is written and every row's error is returned.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.lib.importer import RowError, parse_csv, validate_batch
from lead_intake.lib.importer.parser import MAX_IMPORT_ROWS
from lead_intake.lib.importer.rules import BuyerFields
from lead_intake.models.base import utcnow
from lead_intake.models.buyer import Buyer
from lead_intake.services.buyer_service import unit_of_work
from lead_intake.services.history_service import CREATED_VIA_IMPORT, creation_diff, record_history


@dataclass
class ImportResult:
    """Outcome of an import attempt.

    ``imported`` is zero whenever ``errors`` is non-empty.
    """

    imported: int = 0
    errors: list[RowError] = field(default_factory=list)
    valid_rows: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors


async def import_batch(
    session: AsyncSession,
    records: Sequence[BuyerFields],
    actor_id: uuid.UUID,
) -> int:
    """Insert validated records owned by the acting user in one transaction.

    Each buyer is followed by its "Imported from CSV" history entry. Any
    failure rolls back the whole batch.

    Args:
        session: Database session.
        records: Normalized records from ``validate_batch``.
        actor_id: The importing user's ID; becomes the owner of every row.

    Returns:
        Number of buyers inserted.

    Raises:
        PersistenceError: If any insert fails; nothing is committed.
    """
    if not records:
        return 0

    async with unit_of_work(session, "import buyers"):
        for record in records:
            now = utcnow()
            buyer = Buyer(
                id=uuid.uuid4(),
                owner_id=actor_id,
                created_at=now,
                updated_at=now,
                **record.model_dump(mode="json"),
            )
            session.add(buyer)
            await session.flush()
            record_history(session, buyer_id=buyer.id, changed_by=actor_id, diff=creation_diff(CREATED_VIA_IMPORT))

    logger.info(f"User {actor_id} imported {len(records)} buyers")
    return len(records)


async def import_csv_text(
    session: AsyncSession,
    text: str,
    actor_id: uuid.UUID,
    *,
    max_rows: int = MAX_IMPORT_ROWS,
) -> ImportResult:
    """Parse, validate and import a CSV document.

    Args:
        session: Database session.
        text: The raw CSV contents.
        actor_id: The importing user's ID.
        max_rows: Maximum number of data rows accepted.

    Returns:
        ImportResult. When any row fails, ``imported`` is 0, ``errors`` lists
        every failing row and ``valid_rows`` counts the rows that passed.

    Raises:
        CsvParseError: If the text is empty, too large or malformed.
        PersistenceError: If the insert fails.
    """
    rows = parse_csv(text, max_rows=max_rows)
    validation = validate_batch(rows)

    if not validation.ok:
        logger.warning(
            f"Rejected import by user {actor_id}: {len(validation.errors)} of {len(rows)} rows failed validation"
        )
        return ImportResult(imported=0, errors=validation.errors, valid_rows=validation.valid_count)

    imported = await import_batch(session, validation.records, actor_id)
    return ImportResult(imported=imported, valid_rows=validation.valid_count)
