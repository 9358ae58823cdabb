from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.listing import ListingOut, ListingUpdate
from app.services.listings import delete_listing, listings_for_landlord, search_listings, update_listing
from app.services.publisher import get_listing

router = APIRouter()


@router.get("/listings", response_model=list[ListingOut])
async def browse_listings(
    college_id: str | None = Query(default=None, max_length=200),
    city: str | None = Query(default=None, max_length=120),
    state: str | None = Query(default=None, max_length=60),
    min_rent: Decimal | None = Query(default=None, ge=0),
    max_rent: Decimal | None = Query(default=None, ge=0),
    bedrooms: int | None = Query(default=None, ge=0),
    bathrooms: Decimal | None = Query(default=None, ge=0),
    available: bool = Query(default=True),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    rows = await search_listings(
        db,
        college_id=college_id,
        city=city,
        state=state,
        min_rent=min_rent,
        max_rent=max_rent,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        available=available,
        limit=limit,
        offset=offset,
    )
    return [ListingOut.model_validate(r) for r in rows]


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_listing_by_id(listing_id: str, db: AsyncSession = Depends(get_db)) -> ListingOut:
    listing = await get_listing(db, listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingOut.model_validate(listing)


@router.patch("/listings/{listing_id}", response_model=ListingOut)
async def edit_listing(
    listing_id: str,
    payload: ListingUpdate,
    landlord_id: str = Query(min_length=1, max_length=120),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = await update_listing(db, listing_id=listing_id, landlord_id=landlord_id, changes=payload)
    return ListingOut.model_validate(listing)


@router.delete("/listings/{listing_id}", status_code=204)
async def remove_listing(
    listing_id: str,
    landlord_id: str = Query(min_length=1, max_length=120),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await delete_listing(db, listing_id=listing_id, landlord_id=landlord_id)
    return Response(status_code=204)


@router.get("/landlords/{user_id}/listings", response_model=list[ListingOut])
async def landlord_listings(user_id: str, db: AsyncSession = Depends(get_db)) -> list[ListingOut]:
    rows = await listings_for_landlord(db, user_id)
    return [ListingOut.model_validate(r) for r in rows]
