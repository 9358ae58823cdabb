import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.models.listing import Listing
from app.services.errors import PublishRejected, ReconciliationRequired
from app.services.payments import confirm_intent, get_intent
from app.services.publisher import listing_from_submission, publish_listing

from fixtures_seed import listing_submission, seed_intent


async def _listing_count(db) -> int:
    return (await db.execute(select(func.count()).select_from(Listing))).scalar_one()


@pytest.mark.asyncio
async def test_unknown_intent_is_rejected(db_session):
    with pytest.raises(PublishRejected) as ei:
        await publish_listing(db_session, intent_id="pi_missing")
    assert ei.value.code == "payment_not_found"
    assert ei.value.status_code == 404


@pytest.mark.asyncio
async def test_unpaid_intent_is_not_published(db_session, gateway):
    intent_id = await seed_intent(db_session, gateway)

    with pytest.raises(PublishRejected) as ei:
        await publish_listing(db_session, intent_id=intent_id)
    assert ei.value.code == "payment_not_completed"
    assert await _listing_count(db_session) == 0


@pytest.mark.asyncio
async def test_publish_copies_every_field(db_session, gateway):
    intent_id = await seed_intent(db_session, gateway, user_id="landlord-7", status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)

    result = await publish_listing(db_session, intent_id=intent_id)
    listing = result.listing
    submitted = listing_submission()

    assert result.created is True
    assert listing.landlord_id == "landlord-7"
    assert listing.title == submitted.title
    assert listing.description == submitted.description
    assert listing.address == submitted.address
    assert listing.city == submitted.city
    assert listing.state == submitted.state
    assert listing.zip_code == submitted.zip_code
    assert listing.college_id == "stanford"
    assert listing.rent == Decimal("1850.00")
    assert listing.bedrooms == 2
    assert listing.bathrooms == Decimal("1.5")
    assert listing.available_from == date(2026, 9, 1)
    assert listing.images == list(submitted.images)
    assert listing.amenities == ["laundry", "parking"]
    assert listing.available is True
    assert listing.featured is False
    assert listing.payment_intent_id == intent_id

    record = await get_intent(db_session, intent_id)
    assert record.listing_id == listing.id


@pytest.mark.asyncio
async def test_republish_returns_the_same_listing(db_session, gateway):
    intent_id = await seed_intent(db_session, gateway, status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)

    first = await publish_listing(db_session, intent_id=intent_id)
    second = await publish_listing(db_session, intent_id=intent_id)

    assert second.created is False
    assert second.listing.id == first.listing.id
    assert await _listing_count(db_session) == 1


@pytest.mark.asyncio
async def test_losing_publisher_adopts_existing_listing(db_session, session_factory, gateway):
    intent_id = await seed_intent(db_session, gateway, status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)

    # another process inserted the listing but has not linked the intent yet
    async with session_factory() as other:
        record = await get_intent(other, intent_id)
        winner = listing_from_submission(listing_submission(), landlord_id=record.user_id, payment_intent_id=intent_id)
        other.add(winner)
        await other.commit()
        winner_id = winner.id

    result = await publish_listing(db_session, intent_id=intent_id)

    assert result.created is False
    assert result.listing.id == winner_id
    assert await _listing_count(db_session) == 1
    record = await get_intent(db_session, intent_id)
    assert record.listing_id == winner_id


@pytest.mark.asyncio
async def test_dangling_link_is_flagged_for_reconciliation(db_session, gateway):
    intent_id = await seed_intent(db_session, gateway, status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)

    record = await get_intent(db_session, intent_id)
    record.listing_id = "lst_gone"
    await db_session.commit()

    with pytest.raises(ReconciliationRequired) as ei:
        await publish_listing(db_session, intent_id=intent_id)
    assert ei.value.intent_id == intent_id

    record = await get_intent(db_session, intent_id)
    assert record.needs_reconciliation is True
    assert "lst_gone" in record.last_error


@pytest.mark.asyncio
async def test_listing_cannot_be_relinked(db_session, gateway):
    intent_id = await seed_intent(db_session, gateway, status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)
    published = await publish_listing(db_session, intent_id=intent_id)

    record = await get_intent(db_session, intent_id)
    with pytest.raises(ValueError):
        record.listing_id = "lst_other"
    assert record.listing_id == published.listing.id


@pytest.mark.asyncio
async def test_concurrent_publishers_create_exactly_one_listing(db_session, session_factory, gateway):
    intent_id = await seed_intent(db_session, gateway, status="succeeded")
    await confirm_intent(db_session, gateway=gateway, intent_id=intent_id)

    async def _publish():
        async with session_factory() as s:
            res = await publish_listing(s, intent_id=intent_id)
            return res.listing.id, res.created

    results = await asyncio.gather(_publish(), _publish())

    assert {listing_id for listing_id, _ in results} == {results[0][0]}
    assert sorted(created for _, created in results) == [False, True]
    assert await _listing_count(db_session) == 1
