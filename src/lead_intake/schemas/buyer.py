"""Buyer Pydantic v2 schemas.

Request bodies are kept loose on purpose: the buyer rules (strict integer
budgets, cross-field checks, CSV coercion) live in
``lead_intake.lib.importer`` and are applied by the service layer so every
entry point reports the same field errors.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lead_intake.schemas.common import PaginationMeta


def _ensure_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class BuyerUpdateRequest(BaseModel):
    """Partial update: any buyer fields plus the concurrency token.

    Buyer fields are collected as extras and validated by the service.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    updated_at: datetime = Field(description="The updatedAt value last read by the caller")

    @property
    def changes(self) -> dict[str, Any]:
        """The buyer fields supplied in the request."""
        return dict(self.model_extra or {})


class BuyerResponse(BaseModel):
    """A buyer lead."""

    id: UUID
    owner_id: UUID
    full_name: str
    email: str | None = None
    phone: str
    city: str
    property_type: str
    bhk: str | None = None
    purpose: str
    budget_min: int | None = None
    budget_max: int | None = None
    timeline: str
    source: str
    status: str
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)


class BuyerHistoryResponse(BaseModel):
    """One change-set entry."""

    id: UUID
    buyer_id: UUID
    changed_by: UUID
    changed_at: datetime
    diff: dict[str, dict[str, Any]]

    model_config = {"from_attributes": True}

    @field_validator("changed_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)


class BuyerDetailResponse(BuyerResponse):
    """A buyer with its most recent history entries."""

    history: list[BuyerHistoryResponse] = Field(default_factory=list)


class PaginatedBuyerResponse(BaseModel):
    """Paginated list of buyers."""

    items: list[BuyerResponse]
    pagination: PaginationMeta


class PaginatedHistoryResponse(BaseModel):
    """Paginated list of history entries."""

    items: list[BuyerHistoryResponse]
    pagination: PaginationMeta


class ImportRowErrorResponse(BaseModel):
    """A failed CSV row."""

    row: int = Field(description="1-based line number; the header is row 1")
    message: str


class ImportResponse(BaseModel):
    """Successful import."""

    imported: int


class ImportErrorResponse(BaseModel):
    """Rejected import: nothing was written."""

    detail: str
    errors: list[ImportRowErrorResponse]
    valid_rows: int
