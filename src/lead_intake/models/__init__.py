"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from lead_intake.models.buyer import Buyer
from lead_intake.models.buyer_history import BuyerHistory
from lead_intake.models.user import User

__all__ = [
    "Buyer",
    "BuyerHistory",
    "User",
]
