"""Buyer history service.

Appends change-set entries and reads them back newest first. Entries are
never updated or deleted here; they only disappear when their buyer does.
"""

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.models.base import utcnow
from lead_intake.models.buyer_history import BuyerHistory

CREATED_VIA_FORM = "New buyer created"
CREATED_VIA_IMPORT = "Imported from CSV"

RECENT_HISTORY_LIMIT = 5


def creation_diff(note: str) -> dict[str, dict[str, Any]]:
    """Change set recorded when a buyer is first created."""
    return {"created": {"old": None, "new": note}}


def record_history(
    session: AsyncSession,
    *,
    buyer_id: uuid.UUID,
    changed_by: uuid.UUID,
    diff: dict[str, dict[str, Any]],
) -> BuyerHistory:
    """Stage a history entry in the caller's transaction.

    Does not flush or commit; the entry becomes visible together with the
    buyer write it describes.

    Args:
        session: The database session.
        buyer_id: The buyer the change applies to.
        changed_by: The acting user's ID.
        diff: Change set mapping field -> {"old": ..., "new": ...}.

    Returns:
        The pending BuyerHistory instance.
    """
    entry = BuyerHistory(
        buyer_id=buyer_id,
        changed_by=changed_by,
        changed_at=utcnow(),
        diff=diff,
    )
    session.add(entry)
    return entry


async def list_history(
    session: AsyncSession,
    buyer_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[BuyerHistory], int]:
    """Page through a buyer's history, newest first.

    Args:
        session: The database session.
        buyer_id: The buyer whose history to read.
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (history entries, total count).
    """
    total = (
        await session.execute(select(func.count(BuyerHistory.id)).where(BuyerHistory.buyer_id == buyer_id))
    ).scalar_one()

    offset = (page - 1) * page_size
    query = (
        select(BuyerHistory)
        .where(BuyerHistory.buyer_id == buyer_id)
        .order_by(BuyerHistory.changed_at.desc(), BuyerHistory.id)
        .offset(offset)
        .limit(page_size)
    )
    result = await session.execute(query)
    return list(result.scalars().all()), total


async def recent_history(
    session: AsyncSession,
    buyer_id: uuid.UUID,
    limit: int = RECENT_HISTORY_LIMIT,
) -> list[BuyerHistory]:
    """Return the most recent history entries for a buyer."""
    result = await session.execute(
        select(BuyerHistory)
        .where(BuyerHistory.buyer_id == buyer_id)
        .order_by(BuyerHistory.changed_at.desc(), BuyerHistory.id)
        .limit(limit)
    )
    return list(result.scalars().all())
