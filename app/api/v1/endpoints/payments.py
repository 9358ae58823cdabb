import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.gateways.base import PaymentGateway
from app.gateways.registry import get_payment_gateway
from app.models.listing import Listing
from app.models.payment_intent import PaymentIntent
from app.schemas.listing import ListingOut
from app.schemas.payment import (
    ConfirmIntentRequest,
    ConfirmIntentResponse,
    CreateIntentRequest,
    CreateIntentResponse,
    PaymentClientConfig,
    PaymentHistoryItem,
    PaymentHistoryOut,
    ReturnLinkRequest,
    ReturnOutcomeOut,
)
from app.services.listing_drafts import ListingDraftStore, get_draft_store
from app.services.payments import MIN_AMOUNT_MINOR_UNITS, confirm_intent, create_intent, get_intent, payment_history
from app.services.publisher import publish_listing
from app.services.rate_limit import limit_payment_requests
from app.services.errors import PaymentRejected
from app.services.reconciler import ReturnOutcome, ReturnState, event_from_deep_link, handle_return

log = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(limit_payment_requests)])


async def _discard_draft_for(db: AsyncSession, store: ListingDraftStore, intent_id: str) -> None:
    # the draft is only dropped once its listing is live
    record = await get_intent(db, intent_id)
    if record is not None and record.listing_id:
        store.discard(record.draft_id)


def _property_summary(listing: Listing | None) -> dict | None:
    if listing is None:
        return None
    return {
        "id": listing.id,
        "title": listing.title,
        "address": listing.address,
        "city": listing.city,
        "state": listing.state,
        "rent": str(listing.rent),
    }


def _history_item(record: PaymentIntent, listing: Listing | None) -> PaymentHistoryItem:
    return PaymentHistoryItem(
        payment_intent_id=record.payment_intent_id,
        user_id=record.user_id,
        amount=record.amount,
        currency=record.currency,
        status=record.status,
        gateway_status=record.gateway_status,
        description=record.description,
        listing_id=record.listing_id,
        needs_reconciliation=record.needs_reconciliation,
        last_error=record.last_error,
        created_at=record.created_at,
        updated_at=record.updated_at,
        property=_property_summary(listing),
    )


@router.post("/payments/create-intent", response_model=CreateIntentResponse)
async def create_payment_intent(
    payload: CreateIntentRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
) -> CreateIntentResponse:
    created = await create_intent(
        db,
        gateway=gateway,
        submission=payload.listing_data,
        amount_minor_units=payload.amount,
        user_id=payload.user_id,
        currency=payload.currency,
        description=payload.description,
    )
    record = created.record
    return CreateIntentResponse(
        id=record.payment_intent_id,
        client_secret=created.client_secret,
        amount=record.amount,
        currency=record.currency,
        status=record.status,
        gateway_status=record.gateway_status,
    )


@router.post("/payments/confirm", response_model=ConfirmIntentResponse)
async def confirm_payment(
    payload: ConfirmIntentRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    store: ListingDraftStore = Depends(get_draft_store),
    db: AsyncSession = Depends(get_db),
) -> ConfirmIntentResponse:
    confirmed = await confirm_intent(
        db,
        gateway=gateway,
        intent_id=payload.payment_intent_id,
        user_id=payload.user_id,
    )

    listing = None
    if payload.publish and confirmed.status == "succeeded":
        listing = (await publish_listing(db, intent_id=confirmed.payment_intent_id)).listing
        await _discard_draft_for(db, store, confirmed.payment_intent_id)

    if listing is not None:
        message = "Payment confirmed and listing published"
    else:
        message = f"Payment status: {confirmed.status}"

    return ConfirmIntentResponse(
        payment_intent_id=confirmed.payment_intent_id,
        status=confirmed.status,
        gateway_status=confirmed.gateway_status,
        listing=ListingOut.model_validate(listing) if listing is not None else None,
        message=message,
    )


@router.post("/payments/{intent_id}/publish", response_model=ListingOut)
async def publish_paid_listing(
    intent_id: str,
    store: ListingDraftStore = Depends(get_draft_store),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    result = await publish_listing(db, intent_id=intent_id)
    await _discard_draft_for(db, store, intent_id)
    return ListingOut.model_validate(result.listing)


@router.get("/payments/history/{user_id}", response_model=PaymentHistoryOut)
async def get_payment_history(user_id: str, db: AsyncSession = Depends(get_db)) -> PaymentHistoryOut:
    rows = await payment_history(db, user_id)
    return PaymentHistoryOut(payments=[_history_item(record, listing) for record, listing in rows])


@router.get("/payments/config", response_model=PaymentClientConfig)
async def payment_client_config() -> PaymentClientConfig:
    scheme = settings.deep_link_scheme
    return PaymentClientConfig(
        backend=settings.payment_backend,
        currency=settings.payment_currency,
        listing_fee_minor_units=settings.listing_fee_minor_units,
        minimum_amount_minor_units=MIN_AMOUNT_MINOR_UNITS,
        success_url=f"{scheme}://payment/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{scheme}://payment/cancel",
        college_search_debounce_ms=settings.college_search_debounce_ms,
    )


@router.post("/payments/return", response_model=ReturnOutcomeOut)
async def payment_return(
    payload: ReturnLinkRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    store: ListingDraftStore = Depends(get_draft_store),
    db: AsyncSession = Depends(get_db),
) -> ReturnOutcomeOut:
    """The app forwards the deep link it was opened with after the hosted payment page."""
    event = event_from_deep_link(payload.url, scheme=settings.deep_link_scheme)
    try:
        outcome = await handle_return(db, gateway=gateway, event=event)
    except PaymentRejected as e:
        if e.code != "payment_not_found":
            raise
        # a link for a payment we never created is noise, not a user error
        log.warning("payment return for unknown intent %s ignored", event.intent_id)
        outcome = ReturnOutcome(state=ReturnState.redirected_unknown)

    if outcome.listing is not None and outcome.intent_id:
        await _discard_draft_for(db, store, outcome.intent_id)

    return ReturnOutcomeOut(
        state=outcome.state.value,
        payment_intent_id=outcome.intent_id,
        status=outcome.status,
        listing=ListingOut.model_validate(outcome.listing) if outcome.listing is not None else None,
        notice=outcome.notice,
    )
