import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.gateways.base import PaymentGateway
from app.gateways.registry import get_payment_gateway
from app.services.errors import PaymentRejected
from app.services.listing_drafts import ListingDraftStore, get_draft_store
from app.services.payments import get_intent
from app.services.reconciler import ReturnState, event_from_webhook, handle_return

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    store: ListingDraftStore = Depends(get_draft_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Webhook transport for payment returns.

    A bad signature is rejected (400). Bodies we cannot use are acknowledged so
    the provider stops redelivering them. Gateway outages surface as 503 and
    the provider retries.
    """
    payload = await request.body()
    try:
        event = gateway.construct_event(payload, stripe_signature)
    except ValueError:
        log.warning("[STRIPE WEBHOOK] malformed payload (%d bytes)", len(payload))
        return {"received": True, "handled": False}

    log.info("[STRIPE WEBHOOK] received %s", event.get("type"))
    ret = event_from_webhook(event)
    if ret.state == ReturnState.redirected_unknown:
        log.info("[STRIPE WEBHOOK] unhandled event type: %s", event.get("type"))
        return {"received": True, "handled": False}

    try:
        outcome = await handle_return(db, gateway=gateway, event=ret)
    except PaymentRejected as e:
        if e.code != "payment_not_found":
            raise
        log.warning("[STRIPE WEBHOOK] no local record for intent %s", ret.intent_id)
        return {"received": True, "handled": False}

    if outcome.listing is not None and outcome.intent_id:
        record = await get_intent(db, outcome.intent_id)
        if record is not None:
            store.discard(record.draft_id)

    return {
        "received": True,
        "handled": True,
        "payment_intent_id": outcome.intent_id,
        "status": outcome.status,
        "notice": outcome.notice,
    }
