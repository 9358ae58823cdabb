from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from typing import Any

from app.gateways.base import GatewayCharge
from app.services.errors import GatewayError, GatewayUnavailable


log = logging.getLogger(__name__)


class MockPaymentGateway:
    """
    In-process stand-in for the payment provider (dev and tests).

    Charges start as "requires_payment_method" and only move when set_status()
    is called, which is what the internal simulate endpoint does.
    """

    backend = "mock"

    def __init__(self):
        self._charges: dict[str, GatewayCharge] = {}
        self._sessions: dict[str, str] = {}
        self.available = True
        self.retrieve_calls = 0

    def _check_available(self) -> None:
        if not self.available:
            raise GatewayUnavailable("mock gateway is offline")

    async def create_charge(
        self,
        *,
        amount_minor_units: int,
        currency: str,
        description: str,
        metadata: dict[str, str],
    ) -> GatewayCharge:
        self._check_available()
        charge_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        charge = GatewayCharge(
            id=charge_id,
            status="requires_payment_method",
            amount=amount_minor_units,
            currency=currency,
            client_secret=f"{charge_id}_secret_mock",
            metadata={"description": description, **metadata},
        )
        self._charges[charge_id] = charge
        return charge

    async def retrieve_charge(self, charge_id: str) -> GatewayCharge:
        self._check_available()
        self.retrieve_calls += 1
        charge = self._charges.get(charge_id)
        if charge is None:
            raise GatewayError("charge_not_found", f"No such payment intent: {charge_id}")
        return charge

    async def resolve_checkout_session(self, session_id: str) -> str | None:
        self._check_available()
        return self._sessions.get(session_id)

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        event = json.loads(payload)
        if not isinstance(event, dict):
            raise ValueError("webhook body is not a JSON object")
        return event

    # simulation helpers

    def set_status(self, charge_id: str, status: str) -> GatewayCharge:
        charge = self._charges.get(charge_id)
        if charge is None:
            raise GatewayError("charge_not_found", f"No such payment intent: {charge_id}")
        charge = replace(charge, status=status)
        self._charges[charge_id] = charge
        log.info("mock gateway: %s -> %s", charge_id, status)
        return charge

    def open_checkout_session(self, charge_id: str) -> str:
        session_id = f"cs_mock_{uuid.uuid4().hex[:24]}"
        self._sessions[session_id] = charge_id
        return session_id
