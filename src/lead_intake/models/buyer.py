"""Buyer model — a prospective property buyer (lead)."""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from lead_intake.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from lead_intake.models.buyer_history import BuyerHistory


class Buyer(Base, UUIDMixin, TimestampMixin):
    """A buyer lead owned by the user who created or imported it.

    Categorical columns hold the string values of the enums in
    ``lead_intake.lib.importer.rules``; the validator is the only writer.

    Attributes:
        owner_id: The only user allowed to update or delete the lead.
        bhk: Bedroom code, present iff property_type is Apartment or Villa.
        tags: Sorted, de-duplicated list of free-form labels.
        updated_at: Last-modified time, used as the concurrency token.
    """

    __tablename__ = "buyers"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str] = mapped_column(String(15), nullable=False)
    city: Mapped[str] = mapped_column(String(20), nullable=False)
    property_type: Mapped[str] = mapped_column(String(20), nullable=False)
    bhk: Mapped[str | None] = mapped_column(String(10), nullable=True)
    purpose: Mapped[str] = mapped_column(String(10), nullable=False)
    budget_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    budget_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timeline: Mapped[str] = mapped_column(String(20), nullable=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="New", server_default="New")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Relationships
    history: Mapped[list["BuyerHistory"]] = relationship(  # noqa: F821
        back_populates="buyer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_buyers_owner_id", "owner_id"),
        Index("ix_buyers_city_property_type", "city", "property_type"),
        Index("ix_buyers_status", "status"),
        Index("ix_buyers_full_name", "full_name"),
    )

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        # UPDATE/DELETE carry "WHERE updated_at = <value read>"; the service sets the new value
        return {"version_id_col": cls.__table__.c.updated_at, "version_id_generator": False}
