"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any

import bcrypt
import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.errors import PaymentProviderError
from storefront.payments import CheckoutSession, StripeGateway
from storefront.services import build_services

WEBHOOK_SECRET = "whsec_test_secret"
PASSWORD = "Password123"


class FakeGateway(StripeGateway):
    """Stripe gateway that records sessions instead of calling Stripe.

    Webhook verification is the real one.
    """

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET):
        super().__init__(secret_key="sk_test_fake", webhook_secret=webhook_secret)
        self.sessions: list[dict[str, Any]] = []
        self.fail = False

    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSession:
        if self.fail:
            raise PaymentProviderError("create_checkout_session", "card_declined")
        self.sessions.append(params)
        session_id = f"cs_test_{len(self.sessions)}"
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a stripe-signature header for ``payload``."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, obj: dict[str, Any], event_id: str | None = None) -> str:
    """Serialize a webhook event the way Stripe delivers it."""
    return json.dumps(
        {
            "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }
    )


def completed_session(order_id: str, session_id: str, payment_intent: str = "pi_test_1") -> dict:
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_intent": payment_intent,
        "metadata": {"orderId": order_id},
    }


SHIPPING_ADDRESS = {
    "fullName": "Ada Lovelace",
    "addressLine1": "12 Analytical St",
    "city": "London",
    "state": "LDN",
    "postalCode": "N1 7AA",
    "country": "GB",
    "phone": "+447700900123",
}


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Use the minimum bcrypt cost so password hashing doesn't dominate test time."""
    gensalt = bcrypt.gensalt
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": gensalt(4, prefix))


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        storage_backend="memory",
        frontend_url="http://shop.test",
        stripe_secret_key="",
        stripe_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def services(settings, gateway):
    return build_services(settings, gateway=gateway)


@pytest.fixture
def api_client(services):
    """Test client whose endpoints use the ``services`` fixture."""
    from storefront.api import app, get_services

    app.dependency_overrides[get_services] = lambda: services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register(client: TestClient, email: str = "shopper@example.com", name: str = "Shopper") -> dict:
    """Register a user through the API and return its auth payload."""
    response = client.post(
        "/api/auth/register", json={"email": email, "password": PASSWORD, "name": name}
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(auth: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth['tokens']['accessToken']}"}
