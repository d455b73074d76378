"""Buyer service — CRUD with ownership checks, optimistic concurrency and change history.

Every write runs as one unit of work: the buyer row and its history entry
commit together or not at all.
"""

import uuid
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from lead_intake.lib.importer import RecordValidationError, diff_records, validate_create, validate_update
from lead_intake.lib.importer.rules import FIELD_ALIASES
from lead_intake.lib.importer.validator import changed_fields
from lead_intake.models.base import utcnow
from lead_intake.models.buyer import Buyer
from lead_intake.services.history_service import CREATED_VIA_FORM, creation_diff, record_history

# Columns the listing may be sorted by; id is always appended as a tiebreaker
SORTABLE_COLUMNS: dict[str, Any] = {
    "updated_at": Buyer.updated_at,
    "created_at": Buyer.created_at,
    "full_name": Buyer.full_name,
    "budget_min": Buyer.budget_min,
    "budget_max": Buyer.budget_max,
    "status": Buyer.status,
}


class BuyerNotFoundError(ValueError):
    """Raised when a buyer does not exist or is not owned by the acting user."""

    def __init__(self, buyer_id: uuid.UUID) -> None:
        super().__init__("Buyer not found or access denied")
        self.buyer_id = buyer_id


class ConcurrencyConflictError(ValueError):
    """Raised when the caller's concurrency token no longer matches storage."""

    def __init__(self, buyer_id: uuid.UUID) -> None:
        super().__init__("Record changed, please refresh")
        self.buyer_id = buyer_id


class PersistenceError(RuntimeError):
    """Raised when the storage layer fails; the unit of work has been rolled back."""


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def buyer_to_dict(buyer: Buyer) -> dict[str, Any]:
    """Snapshot of a buyer's validated fields, keyed by attribute name."""
    return {name: getattr(buyer, name) for name in FIELD_ALIASES}


@asynccontextmanager
async def unit_of_work(session: AsyncSession, action: str) -> AsyncIterator[None]:
    """Commit on success, roll back on any failure.

    Storage errors are wrapped in PersistenceError; domain errors raised
    inside the block propagate unchanged after the rollback.
    """
    try:
        yield
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(f"Failed to {action}: {exc}")
        msg = f"Failed to {action}"
        raise PersistenceError(msg) from exc
    except BaseException:
        await session.rollback()
        raise


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------


def apply_filters(
    query: Select,
    *,
    search: str | None = None,
    city: str | None = None,
    property_type: str | None = None,
    status: str | None = None,
    timeline: str | None = None,
) -> Select:
    """Apply the listing/export filters to a buyer query.

    ``search`` is a case-insensitive substring match on name, phone or email.
    """
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Buyer.full_name.ilike(pattern),
                Buyer.phone.ilike(pattern),
                Buyer.email.ilike(pattern),
            )
        )
    if city:
        query = query.where(Buyer.city == city)
    if property_type:
        query = query.where(Buyer.property_type == property_type)
    if status:
        query = query.where(Buyer.status == status)
    if timeline:
        query = query.where(Buyer.timeline == timeline)
    return query


async def list_buyers(
    session: AsyncSession,
    *,
    search: str | None = None,
    city: str | None = None,
    property_type: str | None = None,
    status: str | None = None,
    timeline: str | None = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Buyer], int]:
    """List buyers with optional filters, sorting and pagination.

    Args:
        session: Database session.
        search: Substring to match against name, phone or email.
        city: Exact city filter.
        property_type: Exact property type filter.
        status: Exact status filter.
        timeline: Exact timeline filter.
        sort_by: One of SORTABLE_COLUMNS.
        sort_order: "asc" or "desc".
        page: Page number (1-based).
        page_size: Items per page.

    Returns:
        Tuple of (buyers, total count).

    Raises:
        ValueError: If ``sort_by`` or ``sort_order`` is not recognised.
    """
    if sort_by not in SORTABLE_COLUMNS:
        msg = f"Cannot sort by '{sort_by}'"
        raise ValueError(msg)
    if sort_order not in ("asc", "desc"):
        msg = f"Invalid sort order '{sort_order}'"
        raise ValueError(msg)

    filters = {"search": search, "city": city, "property_type": property_type, "status": status, "timeline": timeline}
    count_query = apply_filters(select(func.count(Buyer.id)), **filters)
    total = (await session.execute(count_query)).scalar_one()

    column = SORTABLE_COLUMNS[sort_by]
    order = column.asc() if sort_order == "asc" else column.desc()
    offset = (page - 1) * page_size
    query = apply_filters(select(Buyer), **filters).order_by(order, Buyer.id).offset(offset).limit(page_size)
    result = await session.execute(query)
    buyers = list(result.scalars().all())

    logger.info(f"Listed {len(buyers)} buyers (total={total}, page={page})")
    return buyers, total


async def get_buyer(session: AsyncSession, buyer_id: uuid.UUID) -> Buyer | None:
    """Get a single buyer by ID.

    Args:
        session: Database session.
        buyer_id: The buyer UUID.

    Returns:
        The Buyer or None if not found.
    """
    result = await session.execute(select(Buyer).where(Buyer.id == buyer_id))
    return result.scalar_one_or_none()


async def _get_owned_buyer(session: AsyncSession, buyer_id: uuid.UUID, actor_id: uuid.UUID) -> Buyer:
    result = await session.execute(
        select(Buyer)
        .where(Buyer.id == buyer_id, Buyer.owner_id == actor_id)
        .execution_options(populate_existing=True)
    )
    buyer = result.scalar_one_or_none()
    if buyer is None:
        raise BuyerNotFoundError(buyer_id)
    return buyer


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


async def create_buyer(
    session: AsyncSession,
    actor_id: uuid.UUID,
    payload: Mapping[str, Any],
) -> Buyer:
    """Validate and insert a buyer owned by the acting user, plus its creation entry.

    Args:
        session: Database session.
        actor_id: The acting user's ID; becomes the owner.
        payload: Buyer fields (camelCase or snake_case keys).

    Returns:
        The created Buyer.

    Raises:
        RecordValidationError: If the payload fails validation.
        PersistenceError: If the insert fails.
    """
    record, errors = validate_create(payload)
    if record is None:
        raise RecordValidationError(errors)

    now = utcnow()
    buyer = Buyer(
        id=uuid.uuid4(),
        owner_id=actor_id,
        created_at=now,
        updated_at=now,
        **record.model_dump(mode="json"),
    )
    async with unit_of_work(session, "create buyer"):
        session.add(buyer)
        await session.flush()
        record_history(session, buyer_id=buyer.id, changed_by=actor_id, diff=creation_diff(CREATED_VIA_FORM))

    logger.info(f"User {actor_id} created buyer {buyer.id}")
    return buyer


async def update_buyer(
    session: AsyncSession,
    buyer_id: uuid.UUID,
    actor_id: uuid.UUID,
    prior_updated_at: datetime,
    payload: Mapping[str, Any],
) -> tuple[Buyer, dict[str, dict[str, Any]]]:
    """Apply an update under ownership and optimistic-concurrency checks.

    Order of checks: existence/ownership, then the concurrency token, then
    validation of the merged record. Nothing is written unless all pass.
    A history entry is added only when at least one field changed; the
    timestamp is refreshed either way.

    Args:
        session: Database session.
        buyer_id: The buyer to update.
        actor_id: The acting user's ID.
        prior_updated_at: The ``updated_at`` the caller last read.
        payload: Changed fields (camelCase or snake_case keys).

    Returns:
        Tuple of (updated Buyer, change set).

    Raises:
        BuyerNotFoundError: If the buyer is missing or owned by someone else.
        ConcurrencyConflictError: If the record changed since the caller read it.
        RecordValidationError: If the merged record fails validation.
        PersistenceError: If the write fails.
    """
    async with unit_of_work(session, "update buyer"):
        buyer = await _get_owned_buyer(session, buyer_id, actor_id)

        if as_utc(buyer.updated_at) != as_utc(prior_updated_at):
            logger.warning(f"Concurrency conflict updating buyer {buyer_id} for user {actor_id}")
            raise ConcurrencyConflictError(buyer_id)

        stored = buyer_to_dict(buyer)
        record, errors = validate_update(stored, payload)
        if record is None:
            raise RecordValidationError(errors)

        normalized = record.model_dump(mode="json")
        incoming = {name: normalized[name] for name in changed_fields(payload)}
        changes = diff_records(stored, incoming)

        for name, value in normalized.items():
            setattr(buyer, name, value)
        buyer.updated_at = utcnow()

        if changes:
            record_history(session, buyer_id=buyer.id, changed_by=actor_id, diff=changes)

        try:
            await session.flush()
        except StaleDataError as exc:
            # Another writer committed between our read and this UPDATE
            logger.warning(f"Concurrent write detected while updating buyer {buyer_id}")
            raise ConcurrencyConflictError(buyer_id) from exc

    logger.info(f"User {actor_id} updated buyer {buyer_id} ({len(changes)} field(s) changed)")
    return buyer, changes


async def delete_buyer(
    session: AsyncSession,
    buyer_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> None:
    """Delete a buyer owned by the acting user; its history cascades.

    Args:
        session: Database session.
        buyer_id: The buyer to delete.
        actor_id: The acting user's ID.

    Raises:
        BuyerNotFoundError: If the buyer is missing or owned by someone else.
        PersistenceError: If the delete fails.
    """
    async with unit_of_work(session, "delete buyer"):
        buyer = await _get_owned_buyer(session, buyer_id, actor_id)
        await session.delete(buyer)
        try:
            await session.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflictError(buyer_id) from exc

    logger.info(f"User {actor_id} deleted buyer {buyer_id}")
