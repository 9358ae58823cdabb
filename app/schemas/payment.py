from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.listing import ListingOut, ListingSubmission


PaymentStatus = Literal["created", "requires_action", "succeeded", "failed"]


class CreateIntentRequest(BaseModel):
    # validated by the orchestrator so rejections carry a reason code
    amount: int
    user_id: str = ""
    currency: str = "usd"
    description: str | None = Field(default=None, max_length=300)
    listing_data: ListingSubmission


class CreateIntentResponse(BaseModel):
    id: str
    client_secret: str
    amount: int
    currency: str
    status: PaymentStatus
    gateway_status: str | None


class ConfirmIntentRequest(BaseModel):
    payment_intent_id: str = Field(min_length=1, max_length=120)
    user_id: str | None = None
    # publish the listing when the gateway reports success
    publish: bool = True


class ConfirmIntentResponse(BaseModel):
    payment_intent_id: str
    status: PaymentStatus
    gateway_status: str | None
    listing: ListingOut | None = None
    message: str


class PaymentIntentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_intent_id: str
    user_id: str
    amount: int
    currency: str
    status: PaymentStatus
    gateway_status: str | None
    description: str | None
    listing_id: str | None
    needs_reconciliation: bool
    last_error: str | None
    created_at: datetime
    updated_at: datetime


class PaymentHistoryItem(PaymentIntentOut):
    # summary of the published listing, when there is one
    property: dict | None = None


class PaymentHistoryOut(BaseModel):
    payments: list[PaymentHistoryItem]


class ReturnLinkRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2000)


class ReturnOutcomeOut(BaseModel):
    state: str
    payment_intent_id: str | None
    status: PaymentStatus | None
    listing: ListingOut | None = None
    notice: str | None


class PaymentClientConfig(BaseModel):
    backend: str
    currency: str
    listing_fee_minor_units: int
    minimum_amount_minor_units: int
    success_url: str
    cancel_url: str
    college_search_debounce_ms: int


class MockStatusRequest(BaseModel):
    status: Literal["succeeded", "requires_action", "payment_failed", "canceled", "processing"]
