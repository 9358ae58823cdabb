from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from app.core.ids import gen_id
from app.schemas.listing import ListingSubmission
from app.services.errors import DraftIncomplete, DraftNotFound


log = logging.getLogger(__name__)

DRAFT_FIELDS = (
    "title",
    "description",
    "address",
    "city",
    "state",
    "zip_code",
    "college_ref",
    "rent",
    "bedrooms",
    "bathrooms",
    "available_date",
    "images",
    "amenities",
)

_FIELD_MESSAGES = {
    "title": "Please enter a title for your listing",
    "description": "Please enter a description",
    "address": "Please enter the complete address",
    "city": "Please enter the complete address",
    "state": "Please enter the complete address",
    "zip_code": "Please enter the ZIP code",
    "rent": "Please enter a valid rent amount",
    "bedrooms": "Please enter a valid number of bedrooms",
    "bathrooms": "Please enter a valid number of bathrooms",
    "available_date": "Please enter the available date",
    "images": "Please add at least one photo of your property",
}


@dataclass
class ListingDraft:
    id: str
    user_id: str
    values: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for name in DRAFT_FIELDS:
            v = self.values.get(name)
            # blank form fields count as missing
            if isinstance(v, str) and not v.strip():
                v = None
            if v is not None:
                payload[name] = v
        return payload


def validate_draft(draft: ListingDraft) -> tuple[ListingSubmission | None, list[dict[str, Any]]]:
    try:
        return ListingSubmission.model_validate(draft.as_payload()), []
    except ValidationError as e:
        errors: list[dict[str, Any]] = []
        seen: set[str] = set()
        for err in e.errors():
            name = str(err["loc"][0]) if err.get("loc") else "__root__"
            if name in seen:
                continue
            seen.add(name)
            errors.append({
                "field": name,
                "type": err.get("type"),
                "message": _FIELD_MESSAGES.get(name, err.get("msg")),
            })
        return None, errors


class ListingDraftStore:
    """
    In-process holder for listings being edited.

    Drafts are transient: they live until they are discarded or the process
    restarts. submit() hands back a frozen copy; later edits never reach a
    payment that was already created from it.
    """

    def __init__(self):
        self._drafts: dict[str, ListingDraft] = {}

    def create(self, user_id: str, **values: Any) -> ListingDraft:
        draft = ListingDraft(id=gen_id("drf"), user_id=user_id)
        self._drafts[draft.id] = draft
        if values:
            self.update(draft.id, **values)
        return draft

    def get(self, draft_id: str) -> ListingDraft:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise DraftNotFound(draft_id)
        return draft

    def update(self, draft_id: str, **values: Any) -> ListingDraft:
        draft = self.get(draft_id)
        unknown = sorted(set(values) - set(DRAFT_FIELDS))
        if unknown:
            raise DraftIncomplete([{"field": k, "type": "unknown_field", "message": f"Unknown field {k}"} for k in unknown])

        for name, v in values.items():
            if name in ("images", "amenities") and v is not None:
                v = list(v)
            draft.values[name] = v
        return draft

    def validate(self, draft_id: str) -> list[dict[str, Any]]:
        _, errors = validate_draft(self.get(draft_id))
        return errors

    def submit(self, draft_id: str) -> ListingSubmission:
        submission, errors = validate_draft(self.get(draft_id))
        if submission is None:
            raise DraftIncomplete(errors)
        return submission

    def discard(self, draft_id: str | None) -> bool:
        if not draft_id:
            return False
        removed = self._drafts.pop(draft_id, None) is not None
        if removed:
            log.info("draft discarded: draft_id=%s", draft_id)
        return removed

    def __len__(self) -> int:
        return len(self._drafts)


_store = ListingDraftStore()


def get_draft_store() -> ListingDraftStore:
    return _store
