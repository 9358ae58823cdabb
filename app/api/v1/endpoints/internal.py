from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.gateways.base import PaymentGateway
from app.gateways.mock import MockPaymentGateway
from app.gateways.registry import get_payment_gateway
from app.schemas.payment import MockStatusRequest, PaymentIntentOut, ReturnOutcomeOut
from app.schemas.listing import ListingOut
from app.services.internal_admin import require_internal_admin
from app.services.payments import intents_needing_reconciliation
from app.services.reconciler import reconcile_intent

router = APIRouter(dependencies=[Depends(require_internal_admin)])


@router.get("/internal/reconciliation", response_model=list[PaymentIntentOut])
async def list_reconciliation_queue(db: AsyncSession = Depends(get_db)) -> list[PaymentIntentOut]:
    rows = await intents_needing_reconciliation(db)
    return [PaymentIntentOut.model_validate(r) for r in rows]


@router.post("/internal/payments/{intent_id}/reconcile", response_model=ReturnOutcomeOut)
async def reconcile_payment(
    intent_id: str,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
) -> ReturnOutcomeOut:
    outcome = await reconcile_intent(db, gateway=gateway, intent_id=intent_id)
    return ReturnOutcomeOut(
        state=outcome.state.value,
        payment_intent_id=outcome.intent_id,
        status=outcome.status,
        listing=ListingOut.model_validate(outcome.listing) if outcome.listing is not None else None,
        notice=outcome.notice,
    )


@router.post("/internal/mock-gateway/{intent_id}/status")
async def set_mock_gateway_status(
    intent_id: str,
    payload: MockStatusRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    """Simulate the payer finishing (or abandoning) the hosted payment page."""
    if not isinstance(gateway, MockPaymentGateway):
        raise HTTPException(status_code=404, detail="Mock gateway is not enabled")
    charge = gateway.set_status(intent_id, payload.status)
    return {"payment_intent_id": charge.id, "gateway_status": charge.status}
