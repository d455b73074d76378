"""Buyer lead API endpoints.

Listing, reads and export are open to any authenticated user; create is
throttled per user, and update/delete are additionally restricted to the
buyer's owner.
"""

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, Response
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.core.config import Settings, get_settings
from lead_intake.core.dependencies import get_async_session, get_current_user, rate_limit_writes
from lead_intake.lib.importer import CsvParseError, RecordValidationError
from lead_intake.lib.importer.rules import BuyerStatus, City, PropertyType, Timeline
from lead_intake.models.user import User
from lead_intake.schemas.buyer import (
    BuyerDetailResponse,
    BuyerHistoryResponse,
    BuyerResponse,
    BuyerUpdateRequest,
    ImportErrorResponse,
    ImportResponse,
    ImportRowErrorResponse,
    PaginatedBuyerResponse,
    PaginatedHistoryResponse,
)
from lead_intake.schemas.common import ErrorResponse, FieldErrorDetail, PaginationMeta
from lead_intake.services.buyer_service import (
    SORTABLE_COLUMNS,
    BuyerNotFoundError,
    ConcurrencyConflictError,
    PersistenceError,
    create_buyer,
    delete_buyer,
    get_buyer,
    list_buyers,
    update_buyer,
)
from lead_intake.services.export_service import export_buyers_csv
from lead_intake.services.history_service import list_history, recent_history
from lead_intake.services.import_service import import_csv_text

buyers_router = APIRouter(prefix="/buyers", tags=["buyers"])

_SORT_PATTERN = "^(" + "|".join(SORTABLE_COLUMNS) + ")$"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validation_response(exc: RecordValidationError) -> JSONResponse:
    body = ErrorResponse(
        detail="Validation failed",
        errors=[FieldErrorDetail(field=e.field, message=e.message) for e in exc.errors],
    )
    return JSONResponse(status_code=422, content=body.model_dump(exclude_none=True))


def _persistence_failure(exc: PersistenceError) -> HTTPException:
    logger.error(f"Persistence failure: {exc.__cause__ or exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@buyers_router.get("", response_model=PaginatedBuyerResponse)
async def list_buyers_endpoint(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(get_current_user)],
    search: Annotated[str | None, Query(max_length=100, description="Match name, phone or email")] = None,
    city: Annotated[City | None, Query()] = None,
    property_type: Annotated[PropertyType | None, Query()] = None,
    status_filter: Annotated[BuyerStatus | None, Query(alias="status")] = None,
    timeline: Annotated[Timeline | None, Query()] = None,
    sort_by: Annotated[str, Query(pattern=_SORT_PATTERN)] = "updated_at",
    sort_order: Annotated[str, Query(pattern="^(asc|desc)$")] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 10,
) -> PaginatedBuyerResponse:
    """List buyers with filters, search, sorting and pagination."""
    items, total = await list_buyers(
        session,
        search=search,
        city=city,
        property_type=property_type,
        status=status_filter,
        timeline=timeline,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return PaginatedBuyerResponse(
        items=[BuyerResponse.model_validate(b) for b in items],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@buyers_router.get("/export")
async def export_buyers_endpoint(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(get_current_user)],
    search: Annotated[str | None, Query(max_length=100)] = None,
    city: Annotated[City | None, Query()] = None,
    property_type: Annotated[PropertyType | None, Query()] = None,
    status_filter: Annotated[BuyerStatus | None, Query(alias="status")] = None,
    timeline: Annotated[Timeline | None, Query()] = None,
) -> Response:
    """Download the filtered buyer list as CSV."""
    content = await export_buyers_csv(
        session,
        search=search,
        city=city,
        property_type=property_type,
        status=status_filter,
        timeline=timeline,
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="buyers.csv"'},
    )


@buyers_router.get("/{buyer_id}", response_model=BuyerDetailResponse)
async def get_buyer_endpoint(
    buyer_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(get_current_user)],
) -> BuyerDetailResponse:
    """Get a buyer with its five most recent history entries."""
    buyer = await get_buyer(session, buyer_id)
    if buyer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Buyer not found")
    entries = await recent_history(session, buyer_id)
    return BuyerDetailResponse(
        **BuyerResponse.model_validate(buyer).model_dump(),
        history=[BuyerHistoryResponse.model_validate(e) for e in entries],
    )


@buyers_router.get("/{buyer_id}/history", response_model=PaginatedHistoryResponse)
async def list_history_endpoint(
    buyer_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    _current_user: Annotated[User, Depends(get_current_user)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PaginatedHistoryResponse:
    """Page through a buyer's change history, newest first."""
    if await get_buyer(session, buyer_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Buyer not found")
    items, total = await list_history(session, buyer_id, page=page, page_size=page_size)
    return PaginatedHistoryResponse(
        items=[BuyerHistoryResponse.model_validate(e) for e in items],
        pagination=PaginationMeta.build(total, page, page_size),
    )


# ---------------------------------------------------------------------------
# Write endpoints
# ---------------------------------------------------------------------------


@buyers_router.post(
    "",
    response_model=BuyerResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def create_buyer_endpoint(
    payload: Annotated[dict[str, Any], Body()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(rate_limit_writes("create", "create_rate_limit_per_minute"))],
) -> BuyerResponse | JSONResponse:
    """Create a buyer owned by the current user."""
    try:
        buyer = await create_buyer(session, current_user.id, payload)
    except RecordValidationError as exc:
        return _validation_response(exc)
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
    return BuyerResponse.model_validate(buyer)


@buyers_router.post(
    "/import",
    response_model=ImportResponse,
    responses={400: {"model": ImportErrorResponse}},
)
async def import_buyers_endpoint(
    file: Annotated[UploadFile, File(description="CSV file with a header row")],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImportResponse | JSONResponse:
    """Import up to ``IMPORT_MAX_ROWS`` buyers; any invalid row rejects the whole file."""
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be UTF-8 encoded") from exc

    try:
        result = await import_csv_text(session, text, current_user.id, max_rows=settings.import_max_rows)
    except CsvParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc

    if not result.ok:
        body = ImportErrorResponse(
            detail="Validation failed",
            errors=[ImportRowErrorResponse(row=e.row, message=e.message) for e in result.errors],
            valid_rows=result.valid_rows,
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())
    return ImportResponse(imported=result.imported)


@buyers_router.put(
    "/{buyer_id}",
    response_model=BuyerResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_buyer_endpoint(
    buyer_id: uuid.UUID,
    request: BuyerUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(rate_limit_writes("update", "update_rate_limit_per_minute"))],
) -> BuyerResponse | JSONResponse:
    """Update a buyer owned by the current user.

    The body must carry the ``updatedAt`` value the caller last read.
    """
    try:
        buyer, _changes = await update_buyer(session, buyer_id, current_user.id, request.updated_at, request.changes)
    except BuyerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConcurrencyConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RecordValidationError as exc:
        return _validation_response(exc)
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
    return BuyerResponse.model_validate(buyer)


@buyers_router.delete("/{buyer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_buyer_endpoint(
    buyer_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> None:
    """Delete a buyer owned by the current user, together with its history."""
    try:
        await delete_buyer(session, buyer_id, current_user.id)
    except BuyerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConcurrencyConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _persistence_failure(exc) from exc
