"""Export service — renders the filtered buyer list as a CSV document."""

from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.lib.exporter import render_csv
from lead_intake.lib.importer.rules import FIELD_ALIASES
from lead_intake.models.buyer import Buyer
from lead_intake.services.buyer_service import apply_filters

TAG_SEPARATOR = ";"


def buyer_to_export_row(buyer: Buyer) -> dict[str, Any]:
    """Map a buyer to a row keyed by the external (camelCase) column names."""
    row = {alias: getattr(buyer, name) for name, alias in FIELD_ALIASES.items()}
    row["tags"] = TAG_SEPARATOR.join(buyer.tags or [])
    return row


async def export_buyers_csv(
    session: AsyncSession,
    *,
    search: str | None = None,
    city: str | None = None,
    property_type: str | None = None,
    status: str | None = None,
    timeline: str | None = None,
) -> str:
    """Export every buyer matching the listing filters as CSV.

    Rows are ordered by ``updated_at`` ascending, then ``id``.

    Args:
        session: Database session.
        search: Substring to match against name, phone or email.
        city: Exact city filter.
        property_type: Exact property type filter.
        status: Exact status filter.
        timeline: Exact timeline filter.

    Returns:
        The CSV document as text.
    """
    query = apply_filters(
        select(Buyer),
        search=search,
        city=city,
        property_type=property_type,
        status=status,
        timeline=timeline,
    ).order_by(Buyer.updated_at.asc(), Buyer.id)
    result = await session.execute(query)
    buyers = result.scalars().all()

    logger.info(f"Exported {len(buyers)} buyers to CSV")
    return render_csv(buyer_to_export_row(b) for b in buyers)
