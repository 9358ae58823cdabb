from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs, urlsplit

from sqlalchemy.ext.asyncio import AsyncSession

from app.gateways.base import PaymentGateway
from app.models.base import utcnow
from app.models.listing import Listing
from app.services.audit import audit
from app.services.errors import PublishRejected
from app.services.payments import confirm_intent, get_intent
from app.services.publisher import publish_listing


log = logging.getLogger(__name__)


class ReturnState(str, enum.Enum):
    awaiting_redirect = "awaiting_redirect"
    redirected_success = "redirected_success"
    redirected_cancel = "redirected_cancel"
    redirected_failure = "redirected_failure"
    redirected_unknown = "redirected_unknown"


@dataclass(frozen=True)
class ReturnEvent:
    """
    A payer coming back from the hosted payment page, whatever the transport.

    intent_id is the gateway payment intent id when the transport carries it;
    session_id is a hosted checkout session id that still needs resolving.
    """

    state: ReturnState
    source: str  # "deep_link" | "webhook" | "sweeper"
    intent_id: str | None = None
    session_id: str | None = None
    listing_ref: str | None = None
    raw: str | None = None


@dataclass(frozen=True)
class ReturnOutcome:
    state: ReturnState
    intent_id: str | None = None
    status: str | None = None
    listing: Listing | None = None
    # user-visible notice: published | payment_pending | payment_failed | cancelled | listing_removed
    notice: str | None = None


def _first(qs: dict[str, list[str]], key: str) -> str | None:
    values = qs.get(key) or []
    v = values[0].strip() if values else ""
    return v or None


def event_from_deep_link(url: str, *, scheme: str) -> ReturnEvent:
    """
    Parse `{scheme}://payment/success?session_id=..&listing_id=..` or
    `{scheme}://payment/cancel?listing_id=..`. Anything else is unknown.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return ReturnEvent(state=ReturnState.redirected_unknown, source="deep_link", raw=url)

    if parts.scheme.lower() != scheme.lower():
        return ReturnEvent(state=ReturnState.redirected_unknown, source="deep_link", raw=url)

    # custom schemes put "payment" in the netloc: offcampus://payment/success
    path = "/".join(p.strip("/") for p in (parts.netloc, parts.path) if p.strip("/")).lower()
    qs = parse_qs(parts.query)
    listing_ref = _first(qs, "listing_id")

    if path == "payment/success":
        intent_id = _first(qs, "payment_intent")
        session_id = _first(qs, "session_id")
        # we hand out success URLs that carry the intent id as session_id
        if intent_id is None and session_id and not session_id.startswith("cs_"):
            intent_id, session_id = session_id, None
        if intent_id is None and session_id is None:
            return ReturnEvent(state=ReturnState.redirected_unknown, source="deep_link", raw=url)
        return ReturnEvent(
            state=ReturnState.redirected_success,
            source="deep_link",
            intent_id=intent_id,
            session_id=session_id,
            listing_ref=listing_ref,
            raw=url,
        )

    if path == "payment/cancel":
        return ReturnEvent(
            state=ReturnState.redirected_cancel,
            source="deep_link",
            intent_id=_first(qs, "payment_intent"),
            listing_ref=listing_ref,
            raw=url,
        )

    return ReturnEvent(state=ReturnState.redirected_unknown, source="deep_link", raw=url)


_WEBHOOK_STATES = {
    "payment_intent.succeeded": ReturnState.redirected_success,
    "checkout.session.completed": ReturnState.redirected_success,
    "payment_intent.payment_failed": ReturnState.redirected_failure,
    "payment_intent.canceled": ReturnState.redirected_failure,
}


def event_from_webhook(event: Any) -> ReturnEvent:
    """Map a decoded gateway webhook `{type, data: {object: {...}}}` to a ReturnEvent."""
    if not isinstance(event, dict):
        return ReturnEvent(state=ReturnState.redirected_unknown, source="webhook")

    event_type = event.get("type")
    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    state = _WEBHOOK_STATES.get(event_type) if isinstance(event_type, str) else None

    if state is None or not isinstance(obj, dict):
        return ReturnEvent(state=ReturnState.redirected_unknown, source="webhook", raw=str(event_type))

    if event_type == "checkout.session.completed":
        metadata = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
        intent_id = obj.get("payment_intent")
        session_id = obj.get("id")
        if not intent_id and not session_id:
            return ReturnEvent(state=ReturnState.redirected_unknown, source="webhook", raw=event_type)
        return ReturnEvent(
            state=state,
            source="webhook",
            intent_id=intent_id if isinstance(intent_id, str) else None,
            session_id=session_id if isinstance(session_id, str) else None,
            listing_ref=metadata.get("listing_id"),
            raw=event_type,
        )

    intent_id = obj.get("id")
    if not isinstance(intent_id, str) or not intent_id:
        return ReturnEvent(state=ReturnState.redirected_unknown, source="webhook", raw=event_type)
    return ReturnEvent(state=state, source="webhook", intent_id=intent_id, raw=event_type)


async def handle_return(db: AsyncSession, *, gateway: PaymentGateway, event: ReturnEvent) -> ReturnOutcome:
    """
    Single entry point for payment returns.

    success: confirm with the gateway, publish if it succeeded. Deep link and
    webhook both land here, so the second arrival only re-observes the listing.
    cancel: nothing changes. failure: same path, so a late failure event for a
    payment the gateway reports as succeeded still publishes. unknown: ignored.
    Gateway and publish errors propagate; they are not swallowed here.
    """
    if event.state == ReturnState.redirected_unknown:
        log.warning("ignoring unrecognised payment return from %s: %r", event.source, event.raw)
        return ReturnOutcome(state=event.state)

    if event.state == ReturnState.redirected_cancel:
        log.info("payment cancelled by payer: intent=%s listing_ref=%s", event.intent_id, event.listing_ref)
        return ReturnOutcome(state=event.state, intent_id=event.intent_id, notice="cancelled")

    intent_id = event.intent_id
    if intent_id is None and event.session_id:
        intent_id = await gateway.resolve_checkout_session(event.session_id)
    if not intent_id:
        log.warning("payment return without a resolvable intent: source=%s session=%s", event.source, event.session_id)
        return ReturnOutcome(state=ReturnState.redirected_unknown)

    # webhooks arrive out of order; only the status just fetched decides
    confirmed = await confirm_intent(db, gateway=gateway, intent_id=intent_id)
    if event.state == ReturnState.redirected_failure and confirmed.status != "failed":
        log.info("failure event for intent %s but gateway reports %s", intent_id, confirmed.status)

    if confirmed.status == "failed":
        return ReturnOutcome(state=event.state, intent_id=intent_id, status=confirmed.status, notice="payment_failed")

    if confirmed.status != "succeeded":
        return ReturnOutcome(state=event.state, intent_id=intent_id, status=confirmed.status, notice="payment_pending")

    try:
        published = await publish_listing(db, intent_id=intent_id)
    except PublishRejected as e:
        if e.code != "listing_removed":
            raise
        log.info("payment intent %s returned after its listing was deleted", intent_id)
        return ReturnOutcome(state=event.state, intent_id=intent_id, status=confirmed.status, notice="listing_removed")
    return ReturnOutcome(
        state=event.state,
        intent_id=intent_id,
        status=confirmed.status,
        listing=published.listing,
        notice="published",
    )


async def reconcile_intent(db: AsyncSession, *, gateway: PaymentGateway, intent_id: str) -> ReturnOutcome:
    """
    Run the success path for an intent nobody came back for (or one flagged earlier).

    Clears the reconciliation flag once the intent is linked to a listing and
    stamps last_swept_at so the sweeper backs off unpaid intents.
    """
    event = ReturnEvent(state=ReturnState.redirected_success, source="sweeper", intent_id=intent_id)
    outcome = await handle_return(db, gateway=gateway, event=event)

    record = await get_intent(db, intent_id)
    if record is not None:
        record.last_swept_at = utcnow()
        await db.commit()

    if outcome.listing is not None:
        if record is not None and record.needs_reconciliation:
            record.needs_reconciliation = False
            record.last_error = None
            await audit(
                db,
                actor="internal",
                action="payment.reconciled",
                target_type="payment_intent",
                target_id=intent_id,
                detail={"listing_id": outcome.listing.id},
            )
            await db.commit()
            log.info("payment intent %s reconciled with listing %s", intent_id, outcome.listing.id)

    return outcome
