"""BuyerHistory model — append-only change log for buyer leads."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lead_intake.models.base import Base, JSONType, UUIDMixin, utcnow

if TYPE_CHECKING:
    from lead_intake.models.buyer import Buyer


class BuyerHistory(Base, UUIDMixin):
    """Immutable record of one create or update of a buyer. Write-only.

    ``diff`` maps field name to ``{"old": ..., "new": ...}``. Creation entries
    use the single key ``created``. Rows cascade when their buyer is deleted.
    """

    __tablename__ = "buyer_history"

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=False,
    )
    changed_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    diff: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    buyer: Mapped["Buyer"] = relationship(back_populates="history", lazy="noload")  # noqa: F821

    __table_args__ = (Index("ix_buyer_history_buyer_changed_at", "buyer_id", "changed_at"),)
