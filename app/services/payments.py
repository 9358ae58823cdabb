from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.gateways.base import PaymentGateway
from app.models.listing import Listing
from app.models.payment_intent import PaymentIntent
from app.schemas.listing import ListingSubmission
from app.services.audit import audit
from app.services.errors import PaymentRejected


log = logging.getLogger(__name__)

# $0.50; the gateway refuses smaller charges
MIN_AMOUNT_MINOR_UNITS = 50

_FAILED_GATEWAY_STATUSES = {"canceled", "payment_failed", "failed"}


def normalize_status(gateway_status: str | None) -> str:
    """Collapse the gateway's status vocabulary into created | requires_action | succeeded | failed."""
    if gateway_status == "succeeded":
        return "succeeded"
    if gateway_status in _FAILED_GATEWAY_STATUSES:
        return "failed"
    if gateway_status == "requires_action":
        return "requires_action"
    return "created"


@dataclass(frozen=True)
class CreatedIntent:
    record: PaymentIntent
    # needed by the client to finish the payment UI; never persisted
    client_secret: str


@dataclass(frozen=True)
class ConfirmResult:
    payment_intent_id: str
    status: str
    gateway_status: str
    changed: bool


async def get_intent(db: AsyncSession, intent_id: str) -> PaymentIntent | None:
    stmt = select(PaymentIntent).where(PaymentIntent.payment_intent_id == intent_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_intent(
    db: AsyncSession,
    *,
    gateway: PaymentGateway,
    submission: ListingSubmission,
    amount_minor_units: int,
    user_id: str | None,
    currency: str | None = None,
    description: str | None = None,
    draft_id: str | None = None,
) -> CreatedIntent:
    """
    Open a charge with the gateway and record it locally with the listing attached.

    Validation failures raise PaymentRejected (amount_too_low, missing_user).
    If the gateway is unreachable GatewayUnavailable propagates and nothing is stored.
    """
    if amount_minor_units is None or amount_minor_units < MIN_AMOUNT_MINOR_UNITS:
        raise PaymentRejected("amount_too_low", "Invalid amount. Minimum $0.50 required.")
    if not user_id or not user_id.strip():
        raise PaymentRejected("missing_user", "User ID is required.")

    user_id = user_id.strip()
    currency = (currency or settings.payment_currency).lower()
    description = description or settings.listing_fee_description

    charge = await gateway.create_charge(
        amount_minor_units=amount_minor_units,
        currency=currency,
        description=description,
        metadata={"user_id": user_id, "listing_title": submission.title},
    )

    record = PaymentIntent(
        payment_intent_id=charge.id,
        user_id=user_id,
        amount=amount_minor_units,
        currency=currency,
        description=description,
        status=normalize_status(charge.status),
        gateway_status=charge.status,
        listing_data=submission.model_dump(mode="json"),
        draft_id=draft_id,
    )
    db.add(record)
    await audit(
        db,
        actor=user_id,
        action="payment.intent_created",
        target_type="payment_intent",
        target_id=charge.id,
        detail={"amount": amount_minor_units, "currency": currency, "draft_id": draft_id},
    )
    try:
        await db.commit()
    except Exception:
        # the gateway charge exists but we have no row for it
        log.exception("payment intent %s created at gateway but could not be stored", charge.id)
        await db.rollback()
        raise

    log.info("payment intent created: id=%s user=%s amount=%s %s", charge.id, user_id, amount_minor_units, currency)
    return CreatedIntent(record=record, client_secret=charge.client_secret or "")


async def confirm_intent(
    db: AsyncSession,
    *,
    gateway: PaymentGateway,
    intent_id: str,
    user_id: str | None = None,
) -> ConfirmResult:
    """
    Re-read the intent's status from the gateway and mirror it locally.

    Safe to call any number of times. The local status is never used to decide
    anything here; when the gateway cannot be reached the row is left as is.
    """
    record = await get_intent(db, intent_id)
    if record is None or (user_id and record.user_id != user_id):
        raise PaymentRejected("payment_not_found", "Payment record not found.")

    charge = await gateway.retrieve_charge(intent_id)
    status = normalize_status(charge.status)

    changed = record.status != status or record.gateway_status != charge.status
    if changed:
        previous = record.status
        record.status = status
        record.gateway_status = charge.status
        await audit(
            db,
            actor="gateway",
            action="payment.status_changed",
            target_type="payment_intent",
            target_id=intent_id,
            detail={"from": previous, "to": status, "gateway_status": charge.status},
        )
        await db.commit()
        log.info("payment intent %s: %s -> %s", intent_id, previous, status)

    return ConfirmResult(
        payment_intent_id=intent_id,
        status=status,
        gateway_status=charge.status,
        changed=changed,
    )


async def payment_history(db: AsyncSession, user_id: str) -> list[tuple[PaymentIntent, Listing | None]]:
    stmt = (
        select(PaymentIntent, Listing)
        .outerjoin(Listing, Listing.payment_intent_id == PaymentIntent.payment_intent_id)
        .where(PaymentIntent.user_id == user_id)
        .order_by(PaymentIntent.created_at.desc())
    )
    rows = (await db.execute(stmt)).all()
    return [(intent, listing) for intent, listing in rows]


async def intents_needing_reconciliation(db: AsyncSession) -> list[PaymentIntent]:
    stmt = (
        select(PaymentIntent)
        .where(PaymentIntent.needs_reconciliation.is_(True))
        .order_by(PaymentIntent.updated_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def stale_unlinked_intent_ids(
    db: AsyncSession,
    *,
    older_than: datetime,
    newer_than: datetime | None = None,
    swept_before: datetime | None = None,
    limit: int = 100,
) -> list[str]:
    """
    Intents nobody came back for: not failed, never published, not already flagged.

    With swept_before, intents the sweep already asked about after that moment
    are left alone until the next recheck.
    """
    stmt = (
        select(PaymentIntent.payment_intent_id)
        .where(
            PaymentIntent.listing_id.is_(None),
            PaymentIntent.needs_reconciliation.is_(False),
            PaymentIntent.status != "failed",
            PaymentIntent.created_at < older_than,
        )
        .order_by(PaymentIntent.created_at.asc())
        .limit(limit)
    )
    if newer_than is not None:
        stmt = stmt.where(PaymentIntent.created_at >= newer_than)
    if swept_before is not None:
        stmt = stmt.where(or_(PaymentIntent.last_swept_at.is_(None), PaymentIntent.last_swept_at < swept_before))
    return list((await db.execute(stmt)).scalars().all())
