"""Per-field rules for one buyer record, declared as Pydantic v2 models.

``BuyerFields`` is the typed form used for programmatic create/update.
``BuyerCsvRow`` accepts the all-text cells of an imported CSV row and coerces
them before the same rules apply. Cross-field rules live in
``lead_intake.lib.importer.validator`` and only run once these pass.
"""

import enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class City(enum.StrEnum):
    """Cities the team covers."""

    CHANDIGARH = "Chandigarh"
    MOHALI = "Mohali"
    ZIRAKPUR = "Zirakpur"
    PANCHKULA = "Panchkula"
    OTHER = "Other"


class PropertyType(enum.StrEnum):
    """Kind of property the buyer wants."""

    APARTMENT = "Apartment"
    VILLA = "Villa"
    PLOT = "Plot"
    OFFICE = "Office"
    RETAIL = "Retail"


class Bhk(enum.StrEnum):
    """Bedroom code for residential property types."""

    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    STUDIO = "Studio"


class Purpose(enum.StrEnum):
    BUY = "Buy"
    RENT = "Rent"


class Timeline(enum.StrEnum):
    """How soon the buyer intends to act."""

    ZERO_TO_THREE_MONTHS = "0-3m"
    THREE_TO_SIX_MONTHS = "3-6m"
    OVER_SIX_MONTHS = ">6m"
    EXPLORING = "Exploring"


class Source(enum.StrEnum):
    """Where the lead came from."""

    WEBSITE = "Website"
    REFERRAL = "Referral"
    WALK_IN = "Walk-in"
    CALL = "Call"
    OTHER = "Other"


class BuyerStatus(enum.StrEnum):
    """Pipeline stage of a lead."""

    NEW = "New"
    QUALIFIED = "Qualified"
    CONTACTED = "Contacted"
    VISITED = "Visited"
    NEGOTIATION = "Negotiation"
    CONVERTED = "Converted"
    DROPPED = "Dropped"


# Property types for which a bedroom code is mandatory
BHK_REQUIRED_TYPES: frozenset[PropertyType] = frozenset({PropertyType.APARTMENT, PropertyType.VILLA})

PHONE_PATTERN = r"^\d{10,15}$"
NOTES_MAX_LENGTH = 1000

Budget = Annotated[int, Field(ge=0, strict=True)]


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, drop empties, de-duplicate and sort a tag list."""
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


class BuyerFields(BaseModel):
    """A normalized buyer record: the per-field rules for typed input.

    Keys may be given in camelCase (``fullName``) or snake_case
    (``full_name``). Unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    full_name: str = Field(min_length=2, max_length=80)
    email: EmailStr | None = None
    phone: str = Field(pattern=PHONE_PATTERN)
    city: City
    property_type: PropertyType
    bhk: Bhk | None = None
    purpose: Purpose
    budget_min: Budget | None = None
    budget_max: Budget | None = None
    timeline: Timeline
    source: Source
    status: BuyerStatus = BuyerStatus.NEW
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)
    tags: list[str] = Field(default_factory=list)

    @field_validator("email", "notes", mode="before")
    @classmethod
    def _blank_as_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class BuyerCsvRow(BuyerFields):
    """CSV-mode rules: every cell arrives as text and is coerced first.

    * empty budget cells are absent, anything else must be a whole number
    * tags are one comma-separated cell
    * an empty bhk or status cell is treated as absent
    """

    @field_validator("budget_min", "budget_max", mode="before")
    @classmethod
    def _parse_budget(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        text = v.strip()
        if text == "":
            return None
        try:
            return int(text)
        except ValueError:
            msg = "Budget must be a whole number"
            raise ValueError(msg) from None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("bhk", mode="before")
    @classmethod
    def _blank_bhk(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("status", mode="before")
    @classmethod
    def _blank_status(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return BuyerStatus.NEW
        return v


# snake_case attribute name -> external camelCase name
FIELD_ALIASES: dict[str, str] = {name: info.alias or name for name, info in BuyerFields.model_fields.items()}

# Export/import column order
CSV_COLUMNS: list[str] = [
    "fullName",
    "email",
    "phone",
    "city",
    "propertyType",
    "bhk",
    "purpose",
    "budgetMin",
    "budgetMax",
    "timeline",
    "source",
    "notes",
    "tags",
    "status",
]

REQUIRED_CSV_COLUMNS: frozenset[str] = frozenset(
    {"fullName", "phone", "city", "propertyType", "purpose", "timeline", "source"}
)
