import asyncio
from typing import Any

from app.schemas.listing import ListingSubmission
from app.services.college_directory import DirectoryLookupError
from app.services.payments import confirm_intent, create_intent
from app.services.publisher import publish_listing


DIRECTORY_RECORDS: list[dict[str, Any]] = [
    {
        "name": "Stanford University",
        "state-province": "California",
        "country": "United States",
        "domains": ["stanford.edu"],
        "web_pages": ["https://www.stanford.edu/"],
    },
    {
        "name": "University of Michigan",
        "state-province": "Michigan",
        "country": "United States",
        "domains": ["umich.edu"],
        "web_pages": ["https://umich.edu/"],
    },
    {
        "name": "Stanly Community College",
        "state-province": "North Carolina",
        "country": "United States",
        "domains": ["stanly.edu"],
        "web_pages": ["https://www.stanly.edu/"],
    },
    {
        "name": "Michigan Technological University",
        "state-province": "Michigan",
        "country": "United States",
        "domains": ["mtu.edu"],
        "web_pages": [],
    },
]


class FakeDirectory:
    """Stands in for CollegeDirectoryClient; matches on a case-insensitive substring."""

    def __init__(self, records: list[dict[str, Any]] | None = None):
        self.records = list(DIRECTORY_RECORDS if records is None else records)
        self.calls: list[tuple[str | None, str | None]] = []
        self.failing = False
        # name -> Event; a search for that name blocks until the event is set
        self.gates: dict[str, asyncio.Event] = {}

    async def search(self, *, name: str | None = None, country: str | None = None) -> list[dict[str, Any]]:
        self.calls.append((name, country))
        gate = self.gates.get(name or "")
        if gate is not None:
            await gate.wait()
        if self.failing:
            raise DirectoryLookupError("directory lookup failed: timeout", retryable=True)
        if not name:
            return list(self.records)
        q = name.strip().lower()
        return [r for r in self.records if q in r["name"].lower()]


def listing_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": "Sunny 2BR near campus",
        "description": "Walk to class, in-unit laundry, quiet street.",
        "address": "123 College Ave",
        "city": "Palo Alto",
        "state": "CA",
        "zip_code": "94301",
        "college_ref": "stanford",
        "rent": "1850.00",
        "bedrooms": 2,
        "bathrooms": "1.5",
        "available_date": "2026-09-01",
        "images": ["https://img.example.com/a.jpg", "https://img.example.com/b.jpg"],
        "amenities": ["parking", "laundry"],
    }
    payload.update(overrides)
    return payload


def listing_submission(**overrides: Any) -> ListingSubmission:
    return ListingSubmission.model_validate(listing_payload(**overrides))


async def seed_intent(db, gateway, *, user_id: str = "landlord-1", amount: int = 2500, status: str | None = None, **overrides: Any) -> str:
    """Create an intent through the orchestrator; optionally move the gateway charge to `status`."""
    created = await create_intent(
        db,
        gateway=gateway,
        submission=listing_submission(**overrides),
        amount_minor_units=amount,
        user_id=user_id,
    )
    intent_id = created.record.payment_intent_id
    if status is not None:
        gateway.set_status(intent_id, status)
    return intent_id


async def seed_listing(db, gateway, *, user_id: str = "landlord-1", **overrides: Any):
    """Pay for and publish a listing; returns the Listing row."""
    intent_id = await seed_intent(db, gateway, user_id=user_id, status="succeeded", **overrides)
    await confirm_intent(db, gateway=gateway, intent_id=intent_id)
    return (await publish_listing(db, intent_id=intent_id)).listing
