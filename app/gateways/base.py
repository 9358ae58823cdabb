from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class GatewayCharge:
    id: str
    status: str  # raw gateway status, e.g. "requires_payment_method", "succeeded"
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Narrow view of the payment provider.

    Implementations raise GatewayUnavailable for transient problems and
    GatewayError when the provider refused the request.
    """

    backend: str

    async def create_charge(
        self,
        *,
        amount_minor_units: int,
        currency: str,
        description: str,
        metadata: dict[str, str],
    ) -> GatewayCharge:
        ...

    async def retrieve_charge(self, charge_id: str) -> GatewayCharge:
        ...

    async def resolve_checkout_session(self, session_id: str) -> str | None:
        """Map a hosted checkout session id (cs_...) to its payment intent id."""
        ...

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify and decode a webhook body.
        Raises WebhookSignatureError on a bad signature, ValueError on a body that is not JSON.
        """
        ...
