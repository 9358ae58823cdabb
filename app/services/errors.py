from __future__ import annotations

from typing import Any


class PaymentFlowError(Exception):
    """
    Base for every error the draft -> pay -> publish flow surfaces.

    `code` is a stable machine reason (amount_too_low, payment_not_completed, ...),
    `retryable` tells the caller whether repeating the same call can succeed.
    """

    status_code: int = 400
    retryable: bool = False

    def __init__(self, code: str, message: str | None = None, *, details: list[dict[str, Any]] | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.details = details or []


class PaymentRejected(PaymentFlowError):
    """Validation failure on create/confirm. Never retried automatically."""

    def __init__(self, code: str, message: str | None = None, **kwargs):
        super().__init__(code, message, **kwargs)
        if code == "payment_not_found":
            self.status_code = 404


class GatewayUnavailable(PaymentFlowError):
    """Gateway could not be reached or answered with a transient failure."""

    status_code = 503
    retryable = True

    def __init__(self, message: str | None = None, *, code: str = "gateway_unavailable"):
        super().__init__(code, message)


class GatewayError(PaymentFlowError):
    """Gateway answered, but refused the request (bad id, bad params)."""

    status_code = 502


class PublishRejected(PaymentFlowError):
    status_code = 409

    def __init__(self, code: str, message: str | None = None, **kwargs):
        super().__init__(code, message, **kwargs)
        if code == "payment_not_found":
            self.status_code = 404


class ReconciliationRequired(PaymentFlowError):
    """Paid-but-unpublished or published-but-unlinked; needs manual attention."""

    status_code = 409

    def __init__(self, message: str, *, intent_id: str):
        super().__init__("reconciliation_required", message, details=[{"payment_intent_id": intent_id}])
        self.intent_id = intent_id


class DraftNotFound(PaymentFlowError):
    status_code = 404

    def __init__(self, draft_id: str):
        super().__init__("draft_not_found", f"Draft {draft_id} not found")


class DraftIncomplete(PaymentFlowError):
    status_code = 422

    def __init__(self, errors: list[dict[str, Any]]):
        super().__init__("draft_incomplete", "Listing draft is missing or has invalid fields", details=errors)


class WebhookSignatureError(PaymentFlowError):
    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__("invalid_signature", message)


class ListingNotFound(PaymentFlowError):
    """No such listing, or it belongs to another landlord."""

    status_code = 404

    def __init__(self, listing_id: str):
        super().__init__("listing_not_found", f"Listing {listing_id} not found")
