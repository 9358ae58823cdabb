from decimal import Decimal

import pytest

from app.services.errors import DraftIncomplete, DraftNotFound
from app.services.listing_drafts import ListingDraftStore

from fixtures_seed import listing_payload


def test_new_draft_reports_every_missing_field():
    store = ListingDraftStore()
    draft = store.create("landlord-1", title="Room")

    errors = store.validate(draft.id)
    fields = {e["field"] for e in errors}
    assert "title" not in fields
    assert {"description", "address", "rent", "bedrooms", "available_date", "images"} <= fields


def test_blank_text_counts_as_missing():
    store = ListingDraftStore()
    draft = store.create("landlord-1", **listing_payload(title="   "))

    errors = store.validate(draft.id)
    assert [e["field"] for e in errors] == ["title"]
    assert errors[0]["message"] == "Please enter a title for your listing"


@pytest.mark.parametrize(
    "field,value,message",
    [
        ("rent", "abc", "Please enter a valid rent amount"),
        ("rent", "0", "Please enter a valid rent amount"),
        ("bedrooms", "-1", "Please enter a valid number of bedrooms"),
        ("bathrooms", "0", "Please enter a valid number of bathrooms"),
        ("images", [], "Please add at least one photo of your property"),
    ],
)
def test_invalid_values_are_reported_with_field_messages(field, value, message):
    store = ListingDraftStore()
    draft = store.create("landlord-1", **listing_payload(**{field: value}))

    errors = store.validate(draft.id)
    assert len(errors) == 1
    assert errors[0]["field"] == field
    assert errors[0]["message"] == message


def test_submit_returns_frozen_snapshot():
    store = ListingDraftStore()
    draft = store.create("landlord-1", **listing_payload())

    submission = store.submit(draft.id)
    store.update(draft.id, title="Changed after submit", rent="999")

    assert submission.title == "Sunny 2BR near campus"
    assert submission.rent == Decimal("1850.00")
    assert submission.amenities == ("laundry", "parking")
    assert store.submit(draft.id).title == "Changed after submit"


def test_submit_incomplete_draft_raises_with_errors():
    store = ListingDraftStore()
    draft = store.create("landlord-1")

    with pytest.raises(DraftIncomplete) as ei:
        store.submit(draft.id)
    assert ei.value.code == "draft_incomplete"
    assert ei.value.details


def test_update_rejects_unknown_fields():
    store = ListingDraftStore()
    draft = store.create("landlord-1")

    with pytest.raises(DraftIncomplete) as ei:
        store.update(draft.id, colour="blue")
    assert ei.value.details[0]["field"] == "colour"


def test_discard_forgets_draft():
    store = ListingDraftStore()
    draft = store.create("landlord-1")

    assert store.discard(draft.id) is True
    assert store.discard(draft.id) is False
    assert store.discard(None) is False
    assert len(store) == 0
    with pytest.raises(DraftNotFound):
        store.get(draft.id)


@pytest.mark.asyncio
async def test_draft_endpoints_roundtrip(client, draft_store):
    r = await client.post("/v1/drafts", json={"user_id": "landlord-1", "fields": {"title": "Loft"}})
    assert r.status_code == 201, r.text
    draft = r.json()
    assert draft["submittable"] is False
    assert draft["fields"] == {"title": "Loft"}

    body = listing_payload()
    body.pop("title")
    r = await client.patch(f"/v1/drafts/{draft['id']}", json=body)
    assert r.status_code == 200, r.text
    assert r.json()["submittable"] is True

    r = await client.get(f"/v1/drafts/{draft['id']}/validation")
    assert r.json() == {"draft_id": draft["id"], "submittable": True, "errors": []}

    r = await client.delete(f"/v1/drafts/{draft['id']}")
    assert r.json()["discarded"] is True

    r = await client.get(f"/v1/drafts/{draft['id']}")
    assert r.status_code == 404
    assert r.json()["code"] == "draft_not_found"
