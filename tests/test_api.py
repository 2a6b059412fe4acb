"""Tests for the REST API."""

import asyncio

import pytest

from storefront.models import OrderStatus, UserRole

from .conftest import (
    PASSWORD,
    SHIPPING_ADDRESS,
    bearer,
    completed_session,
    make_event,
    register,
    sign_payload,
)

GUEST = {"X-Guest-Token": "guest-abc"}


def add_to_cart(client, headers, product_id="prod-6", quantity=2):
    response = client.post(
        "/api/cart", json={"productId": product_id, "quantity": quantity}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def guest_checkout(client, headers=GUEST, email="guest@example.com"):
    add_to_cart(client, headers)
    response = client.post(
        "/api/checkout/create-session",
        json={
            "shippingAddress": SHIPPING_ADDRESS,
            "deliveryOptionId": "standard",
            "guestEmail": email,
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def post_webhook(client, payload: str, signature: str | None = None):
    headers = {"Content-Type": "application/json"}
    if signature is not False:
        headers["Stripe-Signature"] = signature or sign_payload(payload)
    return client.post("/api/checkout/webhook", content=payload, headers=headers)


class TestHealthEndpoint:
    def test_health_check(self, api_client):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "version" in data
        assert "timestamp" in data

    def test_request_id_header(self, api_client):
        response = api_client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestProductEndpoints:
    def test_list_default_pagination(self, api_client):
        response = api_client.get("/api/products")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert len(body["data"]) == 12
        assert body["pagination"] == {"page": 1, "limit": 12, "total": 12, "totalPages": 1}

    def test_list_second_page(self, api_client):
        body = api_client.get("/api/products", params={"page": 2, "limit": 5}).json()
        assert len(body["data"]) == 5
        assert body["pagination"]["totalPages"] == 3

    def test_price_filter_and_sort(self, api_client):
        body = api_client.get(
            "/api/products",
            params={"minPrice": 100, "maxPrice": 300, "sortField": "price", "sortOrder": "asc"},
        ).json()
        prices = [p["price"] for p in body["data"]]
        assert prices == [129.99, 149.99, 159.99, 299.99]

    def test_category_and_tags(self, api_client):
        body = api_client.get("/api/products", params={"categoryId": "cat-3"}).json()
        assert {p["id"] for p in body["data"]} == {"prod-6", "prod-7", "prod-12"}

        body = api_client.get("/api/products", params={"tags": "audio, bluetooth"}).json()
        assert {p["id"] for p in body["data"]} == {"prod-1", "prod-10"}

    def test_camel_case_fields(self, api_client):
        product = api_client.get("/api/products/id/prod-1").json()["data"]
        assert product["categoryId"] == "cat-1"
        assert "reviewCount" in product
        assert "category_id" not in product

    def test_by_slug(self, api_client):
        response = api_client.get("/api/products/slug/leather-wallet")
        assert response.json()["data"]["id"] == "prod-12"

    def test_not_found(self, api_client):
        response = api_client.get("/api/products/id/prod-999")
        assert response.status_code == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["errorType"] == "ProductNotFoundError"

    def test_invalid_query(self, api_client):
        response = api_client.get("/api/products", params={"limit": 0})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid request data"
        assert body["errors"][0]["field"] == "limit"

    def test_featured_trending_related(self, api_client):
        assert len(api_client.get("/api/products/featured").json()["data"]) <= 6
        assert len(api_client.get("/api/products/trending").json()["data"]) <= 6
        related = api_client.get("/api/products/prod-1/related").json()["data"]
        assert "prod-1" not in {p["id"] for p in related}
        assert all(p["categoryId"] == "cat-1" for p in related)

    def test_reviews_and_distribution(self, api_client):
        body = api_client.get("/api/products/prod-1/reviews").json()
        assert body["pagination"]["page"] == 1
        distribution = api_client.get("/api/products/prod-1/reviews/distribution").json()["data"]
        assert set(distribution) == {"1", "2", "3", "4", "5"}
        assert sum(distribution.values()) == body["pagination"]["total"]


class TestCategoryEndpoints:
    def test_list(self, api_client):
        data = api_client.get("/api/categories").json()["data"]
        assert len(data) == 4

    def test_by_slug_and_id(self, api_client):
        assert api_client.get("/api/categories/slug/fashion").json()["data"]["id"] == "cat-3"
        assert api_client.get("/api/categories/cat-2").json()["data"]["parentId"] == "cat-1"
        assert api_client.get("/api/categories/cat-99").status_code == 404


class TestCartEndpoints:
    def test_requires_owner(self, api_client):
        response = api_client.get("/api/cart")
        assert response.status_code == 400
        assert response.json()["errorType"] == "MissingCartOwnerError"

    def test_empty_cart(self, api_client):
        data = api_client.get("/api/cart", headers=GUEST).json()["data"]
        assert data["items"] == []
        assert data["total"] == 0

    def test_add_update_remove(self, api_client):
        cart = add_to_cart(api_client, GUEST)
        assert cart["subtotal"] == 59.98
        assert cart["tax"] == 6.0
        assert cart["total"] == 65.98
        item_id = cart["items"][0]["id"]

        cart = api_client.put(f"/api/cart/{item_id}", json={"quantity": 3}, headers=GUEST).json()[
            "data"
        ]
        assert cart["items"][0]["quantity"] == 3
        assert api_client.get("/api/cart/count", headers=GUEST).json()["data"]["count"] == 3

        cart = api_client.delete(f"/api/cart/{item_id}", headers=GUEST).json()["data"]
        assert cart["items"] == []

    def test_quantity_validation(self, api_client):
        response = api_client.post(
            "/api/cart", json={"productId": "prod-6", "quantity": 0}, headers=GUEST
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "quantity"

    def test_insufficient_stock(self, api_client):
        response = api_client.post(
            "/api/cart", json={"productId": "prod-9", "quantity": 19}, headers=GUEST
        )
        assert response.status_code == 400
        assert response.json()["errorType"] == "InsufficientStockError"

    def test_unknown_item(self, api_client):
        add_to_cart(api_client, GUEST)
        response = api_client.put("/api/cart/nope", json={"quantity": 1}, headers=GUEST)
        assert response.status_code == 404

    def test_promo_code(self, api_client):
        add_to_cart(api_client, GUEST)
        cart = api_client.post(
            "/api/cart/promo", json={"promoCode": "save10"}, headers=GUEST
        ).json()["data"]
        assert cart["promoCode"] == "SAVE10"
        assert cart["discount"] == 6.0
        assert cart["total"] == 59.98

        response = api_client.post("/api/cart/promo", json={"promoCode": "BOGUS"}, headers=GUEST)
        assert response.status_code == 400

        cart = api_client.delete("/api/cart/promo", headers=GUEST).json()["data"]
        assert cart["promoCode"] is None
        assert cart["discount"] == 0

    def test_clear(self, api_client):
        add_to_cart(api_client, GUEST)
        response = api_client.delete("/api/cart", headers=GUEST)
        assert response.json()["message"] == "Cart cleared"
        assert api_client.get("/api/cart/count", headers=GUEST).json()["data"]["count"] == 0

    def test_signed_in_user_cart_ignores_guest_token(self, api_client):
        auth = register(api_client)
        add_to_cart(api_client, {**bearer(auth), **GUEST})
        assert api_client.get("/api/cart/count", headers=GUEST).json()["data"]["count"] == 0
        assert api_client.get("/api/cart/count", headers=bearer(auth)).json()["data"]["count"] == 2

    def test_guest_token_cannot_reach_user_cart(self, api_client):
        auth = register(api_client)
        add_to_cart(api_client, bearer(auth), product_id="prod-1", quantity=1)
        stolen = {"X-Guest-Token": auth["user"]["id"]}

        assert api_client.get("/api/cart", headers=stolen).json()["data"]["items"] == []
        api_client.delete("/api/cart", headers=stolen)

        items = api_client.get("/api/cart", headers=bearer(auth)).json()["data"]["items"]
        assert [(i["productId"], i["quantity"]) for i in items] == [("prod-1", 1)]

    def test_merge(self, api_client):
        add_to_cart(api_client, GUEST)
        auth = register(api_client)
        add_to_cart(api_client, bearer(auth), quantity=1)

        response = api_client.post("/api/cart/merge", headers={**bearer(auth), **GUEST})
        assert response.status_code == 200
        cart = response.json()["data"]
        assert cart["items"][0]["quantity"] == 3
        assert api_client.get("/api/cart/count", headers=GUEST).json()["data"]["count"] == 0

    def test_merge_requires_both_identities(self, api_client):
        assert api_client.post("/api/cart/merge", headers=GUEST).status_code == 400
        auth = register(api_client)
        assert api_client.post("/api/cart/merge", headers=bearer(auth)).status_code == 400


class TestCheckoutEndpoints:
    def test_delivery_options(self, api_client):
        data = api_client.get("/api/checkout/delivery-options").json()["data"]
        assert [o["id"] for o in data] == ["standard", "express", "overnight"]
        assert data[0]["price"] == 5.99
        assert data[0]["estimatedDays"] == 7

    def test_guest_checkout(self, api_client, gateway):
        session = guest_checkout(api_client)
        assert session["sessionId"] == "cs_test_1"
        assert session["orderNumber"].startswith("ORD-")

        params = gateway.sessions[0]
        assert params["customer_email"] == "guest@example.com"
        assert params["metadata"] == {"orderId": session["orderId"]}

        order = api_client.get(f"/api/checkout/orders/{session['orderId']}").json()["data"]
        assert order["status"] == "pending"
        assert order["paymentStatus"] == "pending"
        assert order["total"] == 71.97
        assert order["stripeSessionId"] == "cs_test_1"
        assert order["shippingAddress"]["fullName"] == "Ada Lovelace"

    def test_guest_needs_email(self, api_client):
        add_to_cart(api_client, GUEST)
        response = api_client.post(
            "/api/checkout/create-session",
            json={"shippingAddress": SHIPPING_ADDRESS, "deliveryOptionId": "standard"},
            headers=GUEST,
        )
        assert response.status_code == 400
        assert response.json()["errorType"] == "GuestEmailRequiredError"

    def test_empty_cart(self, api_client, gateway):
        response = api_client.post(
            "/api/checkout/create-session",
            json={
                "shippingAddress": SHIPPING_ADDRESS,
                "deliveryOptionId": "standard",
                "guestEmail": "guest@example.com",
            },
            headers=GUEST,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"
        assert gateway.sessions == []

    def test_unknown_delivery_option(self, api_client):
        add_to_cart(api_client, GUEST)
        response = api_client.post(
            "/api/checkout/create-session",
            json={
                "shippingAddress": SHIPPING_ADDRESS,
                "deliveryOptionId": "teleport",
                "guestEmail": "guest@example.com",
            },
            headers=GUEST,
        )
        assert response.status_code == 400

    def test_provider_failure(self, api_client, gateway):
        gateway.fail = True
        add_to_cart(api_client, GUEST)
        response = api_client.post(
            "/api/checkout/create-session",
            json={
                "shippingAddress": SHIPPING_ADDRESS,
                "deliveryOptionId": "standard",
                "guestEmail": "guest@example.com",
            },
            headers=GUEST,
        )
        assert response.status_code == 500
        assert response.json()["message"] == "Failed to create checkout session"

    def test_signed_in_checkout_uses_account_email(self, api_client, gateway):
        auth = register(api_client, email="buyer@example.com")
        add_to_cart(api_client, bearer(auth))
        response = api_client.post(
            "/api/checkout/create-session",
            json={"shippingAddress": SHIPPING_ADDRESS, "deliveryOptionId": "express"},
            headers=bearer(auth),
        )
        assert response.status_code == 200
        assert gateway.sessions[0]["customer_email"] == "buyer@example.com"

        orders = api_client.get("/api/checkout/orders", headers=bearer(auth)).json()
        assert orders["pagination"]["total"] == 1
        assert orders["data"][0]["userId"] == auth["user"]["id"]

    def test_other_users_order_is_forbidden(self, api_client):
        owner = register(api_client, email="owner@example.com")
        add_to_cart(api_client, bearer(owner))
        order_id = api_client.post(
            "/api/checkout/create-session",
            json={"shippingAddress": SHIPPING_ADDRESS, "deliveryOptionId": "standard"},
            headers=bearer(owner),
        ).json()["data"]["orderId"]

        other = register(api_client, email="other@example.com")
        assert api_client.get(f"/api/checkout/orders/{order_id}", headers=bearer(other)).status_code == 403
        assert api_client.get(f"/api/checkout/orders/{order_id}").status_code == 403
        assert api_client.get(f"/api/checkout/orders/{order_id}", headers=bearer(owner)).status_code == 200

    def test_order_not_found(self, api_client):
        assert api_client.get("/api/checkout/orders/missing").status_code == 404
        assert api_client.get("/api/checkout/session/cs_missing").status_code == 404

    def test_session_lookup(self, api_client):
        session = guest_checkout(api_client)
        order = api_client.get(f"/api/checkout/session/{session['sessionId']}").json()["data"]
        assert order["id"] == session["orderId"]

    def test_orders_require_auth(self, api_client):
        response = api_client.get("/api/checkout/orders")
        assert response.status_code == 401
        assert response.json()["errorType"] == "AuthenticationError"


class TestWebhookEndpoint:
    def test_session_completed(self, api_client, services):
        session = guest_checkout(api_client)
        payload = make_event(
            "checkout.session.completed",
            completed_session(session["orderId"], session["sessionId"]),
            event_id="evt_api_1",
        )

        response = post_webhook(api_client, payload)
        assert response.status_code == 200
        assert response.json() == {"received": True, "action": "order_paid"}

        order = api_client.get(f"/api/checkout/orders/{session['orderId']}").json()["data"]
        assert order["status"] == "processing"
        assert order["paymentStatus"] == "paid"
        assert api_client.get("/api/cart/count", headers=GUEST).json()["data"]["count"] == 0
        assert services.catalog.get_product("prod-6").stock == 148

        assert post_webhook(api_client, payload).json()["action"] == "duplicate"
        assert services.catalog.get_product("prod-6").stock == 148

    def test_bad_signature(self, api_client):
        payload = make_event("checkout.session.completed", {"id": "cs_x"})
        response = post_webhook(api_client, payload, signature=sign_payload(payload, "whsec_wrong"))
        assert response.status_code == 400
        assert response.json()["errorType"] == "WebhookSignatureError"

    def test_missing_signature(self, api_client):
        payload = make_event("checkout.session.completed", {"id": "cs_x"})
        assert post_webhook(api_client, payload, signature=False).status_code == 400

    def test_handled_off_the_event_loop(self, api_client, services, monkeypatch):
        handle_webhook = services.checkout.handle_webhook
        loops = []

        def recording(payload, signature):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return handle_webhook(payload, signature)

        monkeypatch.setattr(services.checkout, "handle_webhook", recording)
        payload = make_event("customer.created", {"id": "cus_1"})
        assert post_webhook(api_client, payload).json()["action"] == "ignored"
        assert loops == [None]

    def test_undecodable_body(self, api_client):
        response = api_client.post(
            "/api/checkout/webhook",
            content=b'{"id":"evt_1","type":"x"}\xff',
            headers={"Stripe-Signature": sign_payload("{}")},
        )
        assert response.status_code == 400
        assert response.json()["errorType"] == "WebhookSignatureError"

    def test_unhandled_event_type(self, api_client):
        payload = make_event("customer.created", {"id": "cus_1"})
        assert post_webhook(api_client, payload).json()["action"] == "ignored"


class TestAdminStatusEndpoint:
    @pytest.fixture
    def admin(self, api_client, services):
        auth = register(api_client, email="admin@example.com", name="Admin")
        services.users.set_role(auth["user"]["id"], UserRole.ADMIN)
        return auth

    def test_requires_admin(self, api_client):
        session = guest_checkout(api_client)
        customer = register(api_client, email="cust@example.com")
        response = api_client.patch(
            f"/api/checkout/orders/{session['orderId']}/status",
            json={"status": "cancelled"},
            headers=bearer(customer),
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    def test_transitions(self, api_client, services, admin):
        session = guest_checkout(api_client)
        url = f"/api/checkout/orders/{session['orderId']}/status"

        response = api_client.patch(url, json={"status": "shipped"}, headers=bearer(admin))
        assert response.status_code == 409
        assert response.json()["errorType"] == "InvalidStatusTransitionError"

        response = api_client.patch(
            url, json={"status": "cancelled", "note": "Customer asked"}, headers=bearer(admin)
        )
        assert response.status_code == 200
        order = response.json()["data"]
        assert order["status"] == "cancelled"
        assert order["timeline"][-1] == {
            "status": "cancelled",
            "timestamp": order["timeline"][-1]["timestamp"],
            "note": "Customer asked",
        }
        assert services.orders.get(session["orderId"]).status == OrderStatus.CANCELLED

    def test_unknown_status_value(self, api_client, admin):
        session = guest_checkout(api_client)
        response = api_client.patch(
            f"/api/checkout/orders/{session['orderId']}/status",
            json={"status": "lost"},
            headers=bearer(admin),
        )
        assert response.status_code == 400


class TestAuthEndpoints:
    def test_register(self, api_client):
        auth = register(api_client, email="New@Example.com", name="Newbie")
        assert auth["user"]["email"] == "new@example.com"
        assert auth["user"]["role"] == "customer"
        assert "passwordHash" not in auth["user"]
        assert auth["tokens"]["accessToken"]
        assert auth["tokens"]["refreshToken"]

    def test_register_duplicate(self, api_client):
        register(api_client)
        response = api_client.post(
            "/api/auth/register",
            json={"email": "shopper@example.com", "password": PASSWORD, "name": "Again"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already registered"

    def test_register_weak_password(self, api_client):
        response = api_client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "password": "password", "name": "Weak"},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "password"

    def test_login(self, api_client):
        register(api_client)
        response = api_client.post(
            "/api/auth/login", json={"email": "shopper@example.com", "password": PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Shopper"

        response = api_client.post(
            "/api/auth/login", json={"email": "shopper@example.com", "password": "Wrong1234"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_me(self, api_client):
        auth = register(api_client)
        response = api_client.get("/api/auth/me", headers=bearer(auth))
        assert response.json()["data"]["id"] == auth["user"]["id"]

        assert api_client.get("/api/auth/me").status_code == 401
        response = api_client.get("/api/auth/me", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_refresh(self, api_client):
        auth = register(api_client)
        response = api_client.post(
            "/api/auth/refresh", json={"refreshToken": auth["tokens"]["refreshToken"]}
        )
        assert response.status_code == 200
        tokens = response.json()["data"]["tokens"]
        assert api_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
        ).status_code == 200

    def test_refresh_rejects_access_token(self, api_client):
        auth = register(api_client)
        response = api_client.post(
            "/api/auth/refresh", json={"refreshToken": auth["tokens"]["accessToken"]}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired refresh token"

    def test_invalid_token_on_optional_route_is_anonymous(self, api_client):
        response = api_client.get(
            "/api/cart", headers={"Authorization": "Bearer junk", **GUEST}
        )
        assert response.status_code == 200
        assert response.json()["data"]["guestToken"] == "guest-abc"
