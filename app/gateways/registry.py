from __future__ import annotations

from app.core.config import settings
from app.gateways.base import PaymentGateway
from app.gateways.mock import MockPaymentGateway
from app.gateways.stripe_gateway import StripePaymentGateway


_GATEWAYS: dict[str, PaymentGateway] = {}


def build_gateway(backend: str) -> PaymentGateway:
    key = backend.lower().strip()
    if key == "mock":
        return MockPaymentGateway()
    if key == "live":
        return StripePaymentGateway(
            secret_key=settings.stripe_secret_key.get_secret_value(),
            webhook_secret=settings.stripe_webhook_secret.get_secret_value(),
        )
    raise KeyError(f"Unknown payment backend: {backend}")


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency: the process-wide gateway for the configured backend."""
    key = settings.payment_backend
    if key not in _GATEWAYS:
        _GATEWAYS[key] = build_gateway(key)
    return _GATEWAYS[key]
