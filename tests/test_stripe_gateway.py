import json
from types import SimpleNamespace

import pytest
import stripe

from app.gateways.stripe_gateway import StripePaymentGateway
from app.services.errors import GatewayError, GatewayUnavailable, WebhookSignatureError


def test_requires_secret_key():
    with pytest.raises(ValueError):
        StripePaymentGateway(secret_key="")


def test_webhook_with_bad_signature_is_rejected():
    gw = StripePaymentGateway(secret_key="sk_test_x", webhook_secret="whsec_test")
    body = json.dumps({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}).encode()

    with pytest.raises(WebhookSignatureError) as ei:
        gw.construct_event(body, "t=1,v1=deadbeef")
    assert ei.value.code == "invalid_signature"


def test_webhook_without_secret_is_parsed_unverified():
    gw = StripePaymentGateway(secret_key="sk_test_x")
    event = gw.construct_event(b'{"type": "payment_intent.succeeded"}', None)
    assert event["type"] == "payment_intent.succeeded"


@pytest.mark.asyncio
async def test_connection_errors_are_retryable(monkeypatch):
    def _boom(*args, **kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _boom)
    gw = StripePaymentGateway(secret_key="sk_test_x")

    with pytest.raises(GatewayUnavailable) as ei:
        await gw.retrieve_charge("pi_1")
    assert ei.value.retryable is True


@pytest.mark.asyncio
async def test_missing_resource_maps_to_charge_not_found(monkeypatch):
    def _missing(*args, **kwargs):
        raise stripe.InvalidRequestError("No such payment_intent", param="intent", code="resource_missing")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _missing)
    gw = StripePaymentGateway(secret_key="sk_test_x")

    with pytest.raises(GatewayError) as ei:
        await gw.retrieve_charge("pi_1")
    assert ei.value.code == "charge_not_found"


@pytest.mark.asyncio
async def test_retrieve_passes_api_key_and_maps_fields(monkeypatch):
    seen = {}

    def _retrieve(intent_id, **kwargs):
        seen["id"] = intent_id
        seen["api_key"] = kwargs.get("api_key")
        return SimpleNamespace(
            id=intent_id,
            status="succeeded",
            amount=2500,
            currency="usd",
            client_secret="pi_1_secret",
            metadata={"user_id": "landlord-1"},
        )

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _retrieve)
    gw = StripePaymentGateway(secret_key="sk_test_x")

    charge = await gw.retrieve_charge("pi_1")
    assert seen == {"id": "pi_1", "api_key": "sk_test_x"}
    assert charge.status == "succeeded"
    assert charge.metadata == {"user_id": "landlord-1"}
