from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import stripe

from app.gateways.base import GatewayCharge
from app.services.errors import GatewayError, GatewayUnavailable, WebhookSignatureError


log = logging.getLogger(__name__)


def _translate(e: stripe.StripeError) -> Exception:
    if isinstance(e, (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)):
        return GatewayUnavailable(f"stripe: {e.user_message or e}")
    if isinstance(e, stripe.InvalidRequestError) and e.code == "resource_missing":
        return GatewayError("charge_not_found", str(e.user_message or e))
    return GatewayError("gateway_rejected", str(e.user_message or e))


def _charge(pi: Any) -> GatewayCharge:
    return GatewayCharge(
        id=pi.id,
        status=pi.status,
        amount=pi.amount,
        currency=pi.currency,
        client_secret=pi.client_secret,
        metadata=dict(pi.metadata or {}),
    )


class StripePaymentGateway:
    """
    Stripe-backed gateway. The SDK is synchronous, so calls run in a worker thread.
    """

    backend = "live"

    def __init__(self, *, secret_key: str, webhook_secret: str | None = None):
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY not configured")
        self._api_key = secret_key
        self._webhook_secret = webhook_secret or None

    async def _call(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as e:
            log.error("[STRIPE] %s failed: %s", getattr(fn, "__qualname__", fn), e)
            raise _translate(e) from e

    async def create_charge(
        self,
        *,
        amount_minor_units: int,
        currency: str,
        description: str,
        metadata: dict[str, str],
    ) -> GatewayCharge:
        pi = await self._call(
            stripe.PaymentIntent.create,
            amount=amount_minor_units,
            currency=currency,
            description=description,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )
        return _charge(pi)

    async def retrieve_charge(self, charge_id: str) -> GatewayCharge:
        pi = await self._call(stripe.PaymentIntent.retrieve, charge_id)
        return _charge(pi)

    async def resolve_checkout_session(self, session_id: str) -> str | None:
        session = await self._call(stripe.checkout.Session.retrieve, session_id)
        pi = session.payment_intent
        if pi is None:
            return None
        return pi if isinstance(pi, str) else pi.id

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        if self._webhook_secret:
            try:
                stripe.Webhook.construct_event(payload, signature or "", self._webhook_secret)
            except stripe.SignatureVerificationError as e:
                raise WebhookSignatureError() from e
        else:
            # Dev mode: parse without verification
            log.warning("[STRIPE WEBHOOK] STRIPE_WEBHOOK_SECRET not set; skipping signature check")

        event = json.loads(payload)
        if not isinstance(event, dict):
            raise ValueError("webhook body is not a JSON object")
        return event
