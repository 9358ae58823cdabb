from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ListingSubmission(BaseModel):
    """
    A complete, validated listing draft.

    This is the payload attached to a payment intent; it is frozen so the copy
    handed to the orchestrator cannot drift from what the payer confirmed.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=10_000)

    address: str = Field(min_length=1, max_length=300)
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=1, max_length=60)
    zip_code: str = Field(min_length=1, max_length=20)
    college_ref: str | None = Field(default=None, max_length=200)

    rent: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    bedrooms: int = Field(ge=0, le=100)
    bathrooms: Decimal = Field(gt=0, max_digits=4, decimal_places=1)
    available_date: date

    # ordered, first one is the primary photo
    images: tuple[str, ...] = Field(min_length=1)
    amenities: tuple[str, ...] = ()

    @field_validator("title", "description", "address", "city", "state", "zip_code", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("amenities", mode="after")
    @classmethod
    def unique_amenities(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # amenities are a set of tags; keep a stable order for storage
        return tuple(sorted({a.strip() for a in v if a and a.strip()}))


class ListingDraftUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    college_ref: str | None = None
    rent: str | float | None = None
    bedrooms: str | int | None = None
    bathrooms: str | float | None = None
    available_date: str | None = None
    images: list[str] | None = None
    amenities: list[str] | None = None


class ListingDraftCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=120)
    fields: ListingDraftUpdate = Field(default_factory=ListingDraftUpdate)


class ListingDraftOut(BaseModel):
    id: str
    user_id: str
    fields: dict
    submittable: bool
    errors: list[dict] = Field(default_factory=list)


class DraftSubmitRequest(BaseModel):
    amount_minor_units: int | None = None
    currency: str | None = None
    description: str | None = None


class ListingUpdate(BaseModel):
    """Landlord edits to a published listing. Payment linkage and featured flag are not editable."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=10_000)
    address: str | None = Field(default=None, min_length=1, max_length=300)
    city: str | None = Field(default=None, min_length=1, max_length=120)
    state: str | None = Field(default=None, min_length=1, max_length=60)
    zip_code: str | None = Field(default=None, min_length=1, max_length=20)
    college_id: str | None = Field(default=None, max_length=200)

    rent: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    bedrooms: int | None = Field(default=None, ge=0, le=100)
    bathrooms: Decimal | None = Field(default=None, gt=0, max_digits=4, decimal_places=1)
    available_from: date | None = None

    images: list[str] | None = Field(default=None, min_length=1)
    amenities: list[str] | None = None
    available: bool | None = None

    @field_validator("title", "description", "address", "city", "state", "zip_code", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("amenities", mode="after")
    @classmethod
    def unique_amenities(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return sorted({a.strip() for a in v if a and a.strip()})

    @model_validator(mode="after")
    def no_nulls_for_required_columns(self):
        # only college_id may be cleared
        for name in self.model_fields_set:
            if name != "college_id" and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    landlord_id: str
    title: str
    description: str
    address: str
    city: str
    state: str
    zip_code: str
    college_id: str | None
    rent: Decimal
    bedrooms: int
    bathrooms: Decimal
    available_from: date
    images: list[str]
    amenities: list[str]
    available: bool
    featured: bool
    payment_intent_id: str
    created_at: datetime
    updated_at: datetime
