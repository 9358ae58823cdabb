from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.listing import Listing
from app.schemas.listing import ListingUpdate
from app.services.audit import audit
from app.services.errors import ListingNotFound
from app.services.payments import get_intent


log = logging.getLogger(__name__)


async def search_listings(
    db: AsyncSession,
    *,
    college_id: str | None = None,
    city: str | None = None,
    state: str | None = None,
    min_rent: Decimal | None = None,
    max_rent: Decimal | None = None,
    bedrooms: int | None = None,
    bathrooms: Decimal | None = None,
    available: bool | None = True,
    limit: int = 50,
    offset: int = 0,
) -> list[Listing]:
    """
    Browse published listings; featured first, then newest.

    city and state match case-insensitive substrings, bedrooms and bathrooms
    are minimums, and available=None returns listings in either state.
    """
    stmt = select(Listing)
    if available is not None:
        stmt = stmt.where(Listing.available.is_(available))
    if college_id:
        stmt = stmt.where(Listing.college_id == college_id)
    if city and city.strip():
        stmt = stmt.where(Listing.city.icontains(city.strip(), autoescape=True))
    if state and state.strip():
        stmt = stmt.where(Listing.state.icontains(state.strip(), autoescape=True))
    if min_rent is not None:
        stmt = stmt.where(Listing.rent >= min_rent)
    if max_rent is not None:
        stmt = stmt.where(Listing.rent <= max_rent)
    if bedrooms is not None:
        stmt = stmt.where(Listing.bedrooms >= bedrooms)
    if bathrooms is not None:
        stmt = stmt.where(Listing.bathrooms >= bathrooms)

    stmt = stmt.order_by(Listing.featured.desc(), Listing.created_at.desc()).limit(limit).offset(offset)
    return list((await db.execute(stmt)).scalars().all())


async def listings_for_landlord(db: AsyncSession, landlord_id: str) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.landlord_id == landlord_id)
        .order_by(Listing.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def _owned_listing(db: AsyncSession, *, listing_id: str, landlord_id: str) -> Listing:
    # another landlord's listing looks exactly like a missing one
    stmt = select(Listing).where(Listing.id == listing_id, Listing.landlord_id == landlord_id)
    listing = (await db.execute(stmt)).scalar_one_or_none()
    if listing is None:
        raise ListingNotFound(listing_id)
    return listing


async def update_listing(db: AsyncSession, *, listing_id: str, landlord_id: str, changes: ListingUpdate) -> Listing:
    listing = await _owned_listing(db, listing_id=listing_id, landlord_id=landlord_id)

    updates = changes.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(listing, field, value)

    if updates:
        await audit(
            db,
            actor=landlord_id,
            action="listing.updated",
            target_type="listing",
            target_id=listing_id,
            detail={"fields": sorted(updates)},
        )
        await db.commit()
        await db.refresh(listing)
        log.info("listing %s updated by %s: %s", listing_id, landlord_id, ", ".join(sorted(updates)))

    return listing


async def delete_listing(db: AsyncSession, *, listing_id: str, landlord_id: str) -> None:
    """
    Remove a landlord's listing.

    The paying intent keeps its listing_id so the payment cannot publish a
    second listing; listing_removed_at tells later returns why it is gone.
    """
    listing = await _owned_listing(db, listing_id=listing_id, landlord_id=landlord_id)

    record = await get_intent(db, listing.payment_intent_id)
    if record is not None:
        record.listing_removed_at = utcnow()

    await db.delete(listing)
    await audit(
        db,
        actor=landlord_id,
        action="listing.deleted",
        target_type="listing",
        target_id=listing_id,
        detail={"payment_intent_id": listing.payment_intent_id},
    )
    await db.commit()
    log.info("listing %s deleted by %s", listing_id, landlord_id)
