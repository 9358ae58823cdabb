from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.listing import Listing
from app.schemas.listing import ListingSubmission
from app.services.audit import audit
from app.services.errors import PublishRejected, ReconciliationRequired
from app.services.payments import get_intent


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    listing: Listing
    # False when the listing already existed (re-publish or lost race)
    created: bool


def listing_from_submission(submission: ListingSubmission, *, landlord_id: str, payment_intent_id: str) -> Listing:
    return Listing(
        landlord_id=landlord_id,
        title=submission.title,
        description=submission.description,
        address=submission.address,
        city=submission.city,
        state=submission.state,
        zip_code=submission.zip_code,
        college_id=submission.college_ref,
        rent=submission.rent,
        bedrooms=submission.bedrooms,
        bathrooms=submission.bathrooms,
        available_from=submission.available_date,
        images=list(submission.images),
        amenities=list(submission.amenities),
        available=True,
        payment_intent_id=payment_intent_id,
    )


async def get_listing(db: AsyncSession, listing_id: str) -> Listing | None:
    return (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()


async def get_listing_for_intent(db: AsyncSession, intent_id: str) -> Listing | None:
    stmt = select(Listing).where(Listing.payment_intent_id == intent_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def flag_for_reconciliation(db: AsyncSession, *, intent_id: str, error: str) -> None:
    """Mark an intent as paid-but-unpublished (or similar) so ops can pick it up."""
    try:
        record = await get_intent(db, intent_id)
        if record is None:
            return
        record.needs_reconciliation = True
        record.last_error = error[:2000]
        await audit(
            db,
            actor="internal",
            action="payment.reconciliation_required",
            target_type="payment_intent",
            target_id=intent_id,
            detail={"error": error[:500]},
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("could not flag payment intent %s for reconciliation", intent_id)
    log.error("payment intent %s needs reconciliation: %s", intent_id, error)


async def _adopt_existing(db: AsyncSession, intent_id: str) -> PublishResult:
    # Another publisher inserted the listing first; make sure the intent points at it.
    listing = await get_listing_for_intent(db, intent_id)
    if listing is None:
        await flag_for_reconciliation(db, intent_id=intent_id, error="listing insert conflicted but no listing found")
        raise ReconciliationRequired("Payment succeeded but the listing could not be created.", intent_id=intent_id)

    record = await get_intent(db, intent_id)
    if record is not None and record.listing_id is None:
        record.listing_id = listing.id
        await db.commit()
        log.info("payment intent %s linked to concurrently published listing %s", intent_id, listing.id)

    return PublishResult(listing=listing, created=False)


async def publish_listing(db: AsyncSession, *, intent_id: str) -> PublishResult:
    """
    Turn a paid intent into a live listing.

    The listing insert and the intent link are committed together. Uniqueness of
    properties.payment_intent_id is what keeps concurrent publishers (deep link
    and webhook, possibly in different processes) from creating two listings;
    the loser adopts the winner's row.
    """
    record = await get_intent(db, intent_id)
    if record is None:
        raise PublishRejected("payment_not_found", "Payment record not found.")

    if record.listing_id:
        listing = await get_listing(db, record.listing_id)
        if listing is None and record.listing_removed_at is not None:
            raise PublishRejected("listing_removed", "The listing paid for with this payment was deleted.")
        if listing is None:
            await flag_for_reconciliation(db, intent_id=intent_id, error=f"linked listing {record.listing_id} is missing")
            raise ReconciliationRequired("Payment is linked to a listing that does not exist.", intent_id=intent_id)
        return PublishResult(listing=listing, created=False)

    if record.status != "succeeded":
        raise PublishRejected("payment_not_completed", "Payment not completed successfully.")

    try:
        submission = ListingSubmission.model_validate(record.listing_data or {})
    except ValidationError as e:
        await flag_for_reconciliation(db, intent_id=intent_id, error=f"attached listing data is invalid: {e.error_count()} errors")
        raise ReconciliationRequired("Payment succeeded but the listing data is unusable.", intent_id=intent_id) from e

    listing = listing_from_submission(submission, landlord_id=record.user_id, payment_intent_id=intent_id)
    db.add(listing)

    try:
        await db.flush()
        record.listing_id = listing.id
        await audit(
            db,
            actor=record.user_id,
            action="listing.published",
            target_type="listing",
            target_id=listing.id,
            detail={"payment_intent_id": intent_id},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.info("payment intent %s already consumed by another publisher", intent_id)
        return await _adopt_existing(db, intent_id)
    except SQLAlchemyError as e:
        await db.rollback()
        await flag_for_reconciliation(db, intent_id=intent_id, error=f"publish failed: {type(e).__name__}: {e}")
        raise ReconciliationRequired("Payment succeeded but failed to create listing.", intent_id=intent_id) from e

    log.info("listing published: listing=%s intent=%s landlord=%s", listing.id, intent_id, record.user_id)
    return PublishResult(listing=listing, created=True)
