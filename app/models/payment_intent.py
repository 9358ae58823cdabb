from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.core.ids import gen_id

from app.models.base import AuditMixin, Base, JsonDocument


class PaymentIntent(AuditMixin, Base):
    """
    Local mirror of a gateway payment intent.

    The gateway stays the source of truth for status; this row carries the
    listing payload the payer is buying and, once published, the listing id.
    """

    __tablename__ = "payment_intents"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("pay"))

    # gateway-assigned id (pi_...)
    payment_intent_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # minor units
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    description: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # "created" | "requires_action" | "succeeded" | "failed"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="created")
    # raw gateway status, e.g. "requires_payment_method"
    gateway_status: Mapped[str | None] = mapped_column(String(60), nullable=True)

    listing_data: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    draft_id: Mapped[str | None] = mapped_column(String(80), nullable=True)

    listing_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)

    needs_reconciliation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    # last time the background sweep asked the gateway about this intent
    last_swept_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # set when the landlord deleted the published listing; the payment stays consumed
    listing_removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @validates("listing_data")
    def _freeze_listing_data(self, key, value):
        if self.listing_data is not None and value != self.listing_data:
            raise ValueError("listing_data is immutable once attached")
        return value

    @validates("listing_id")
    def _link_once(self, key, value):
        if self.listing_id is not None and value != self.listing_id:
            raise ValueError(f"payment intent {self.payment_intent_id} already linked to {self.listing_id}")
        return value
