"""Stripe Checkout integration."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import stripe
import structlog

from .errors import PaymentProviderError, WebhookSignatureError

logger = structlog.get_logger(__name__)

# Seconds a signed webhook payload stays acceptable
WEBHOOK_TOLERANCE = 300


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str | None


class PaymentGateway(Protocol):
    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSession: ...

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]: ...


class StripeGateway:
    """Creates hosted Checkout Sessions and verifies webhook deliveries."""

    def __init__(self, secret_key: str, webhook_secret: str):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSession:
        """
        Create a Checkout Session from keyword ``params``.

        Raises:
            PaymentProviderError: If Stripe is not configured or rejects the request.
        """
        if not self.secret_key:
            raise PaymentProviderError("create_checkout_session", "Stripe secret key not configured")

        try:
            session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_session_failed",
                error_type=type(e).__name__,
                request_id=getattr(e, "request_id", None),
            )
            raise PaymentProviderError("create_checkout_session", e.user_message or str(e)) from e

        return CheckoutSession(id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook delivery and decode its event.

        Raises:
            WebhookSignatureError: If the signature header is missing, no
                webhook secret is configured, or verification fails.
        """
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret not configured")

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookSignatureError("Invalid payload: not UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                text, signature, self.webhook_secret, tolerance=WEBHOOK_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e)) from e

        try:
            event = json.loads(text)
        except json.JSONDecodeError as e:
            raise WebhookSignatureError(f"Invalid payload: {e}") from e
        if not isinstance(event, dict) or "id" not in event or "type" not in event:
            raise WebhookSignatureError("Invalid payload: not an event")
        return event
