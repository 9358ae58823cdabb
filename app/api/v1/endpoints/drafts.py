from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.gateways.base import PaymentGateway
from app.gateways.registry import get_payment_gateway
from app.schemas.listing import DraftSubmitRequest, ListingDraftCreate, ListingDraftOut, ListingDraftUpdate
from app.schemas.payment import CreateIntentResponse
from app.services.listing_drafts import ListingDraft, ListingDraftStore, get_draft_store, validate_draft
from app.services.payments import create_intent
from app.services.rate_limit import limit_payment_requests

router = APIRouter()


def _draft_out(draft: ListingDraft) -> ListingDraftOut:
    submission, errors = validate_draft(draft)
    return ListingDraftOut(
        id=draft.id,
        user_id=draft.user_id,
        fields=dict(draft.values),
        submittable=submission is not None,
        errors=errors,
    )


@router.post("/drafts", response_model=ListingDraftOut, status_code=201)
async def create_draft(
    payload: ListingDraftCreate,
    store: ListingDraftStore = Depends(get_draft_store),
) -> ListingDraftOut:
    draft = store.create(payload.user_id.strip(), **payload.fields.model_dump(exclude_unset=True))
    return _draft_out(draft)


@router.get("/drafts/{draft_id}", response_model=ListingDraftOut)
async def get_draft(draft_id: str, store: ListingDraftStore = Depends(get_draft_store)) -> ListingDraftOut:
    return _draft_out(store.get(draft_id))


@router.patch("/drafts/{draft_id}", response_model=ListingDraftOut)
async def update_draft(
    draft_id: str,
    payload: ListingDraftUpdate,
    store: ListingDraftStore = Depends(get_draft_store),
) -> ListingDraftOut:
    draft = store.update(draft_id, **payload.model_dump(exclude_unset=True))
    return _draft_out(draft)


@router.get("/drafts/{draft_id}/validation")
async def validate_draft_fields(draft_id: str, store: ListingDraftStore = Depends(get_draft_store)) -> dict:
    errors = store.validate(draft_id)
    return {"draft_id": draft_id, "submittable": not errors, "errors": errors}


@router.delete("/drafts/{draft_id}")
async def discard_draft(draft_id: str, store: ListingDraftStore = Depends(get_draft_store)) -> dict:
    return {"draft_id": draft_id, "discarded": store.discard(draft_id)}


@router.post(
    "/drafts/{draft_id}/submit",
    response_model=CreateIntentResponse,
    dependencies=[Depends(limit_payment_requests)],
)
async def submit_draft(
    draft_id: str,
    payload: DraftSubmitRequest,
    store: ListingDraftStore = Depends(get_draft_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
) -> CreateIntentResponse:
    """Freeze the draft and open the listing-fee payment for it. The draft stays until publication."""
    draft = store.get(draft_id)
    submission = store.submit(draft_id)

    amount = payload.amount_minor_units if payload.amount_minor_units is not None else settings.listing_fee_minor_units
    created = await create_intent(
        db,
        gateway=gateway,
        submission=submission,
        amount_minor_units=amount,
        user_id=draft.user_id,
        currency=payload.currency,
        description=payload.description,
        draft_id=draft.id,
    )
    record = created.record
    return CreateIntentResponse(
        id=record.payment_intent_id,
        client_secret=created.client_secret,
        amount=record.amount,
        currency=record.currency,
        status=record.status,
        gateway_status=record.gateway_status,
    )
