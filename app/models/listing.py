from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.ids import gen_id

from app.models.base import Base, AuditMixin, JsonDocument


class Listing(AuditMixin, Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lst"))

    landlord_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    address: Mapped[str] = mapped_column(String(300), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(60), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    college_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    rent: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[Decimal] = mapped_column(Numeric(4, 1), nullable=False)
    available_from: Mapped[date] = mapped_column(Date, nullable=False)

    # first image is the primary photo
    images: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    amenities: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)

    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # exactly one listing per paid intent
    payment_intent_id: Mapped[str] = mapped_column(
        String(120), ForeignKey("payment_intents.payment_intent_id"), nullable=False, unique=True
    )
