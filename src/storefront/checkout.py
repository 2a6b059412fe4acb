"""Checkout flow: order creation, hosted payment sessions and webhook reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from .cart import CartEngine, CartOwner
from .catalog import CatalogStore
from .errors import EmptyCartError, GuestEmailRequiredError
from .models import Order, OrderStatus, PaymentStatus, ProcessedEvent, ShippingAddress
from .money import to_minor_units
from .orders import OrderStore
from .payments import CheckoutSession, PaymentGateway
from .storage import Repository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    session: CheckoutSession


@dataclass(frozen=True)
class WebhookResult:
    """What a webhook delivery did.

    ``action`` is one of: order_paid, payment_failed, order_cancelled,
    payment_refunded, duplicate, already_handled, unknown_order, ignored.
    """

    event_id: str
    event_type: str
    action: str
    order_id: str | None = None


class CheckoutService:
    def __init__(
        self,
        carts: CartEngine,
        orders: OrderStore,
        catalog: CatalogStore,
        gateway: PaymentGateway,
        events: Repository[ProcessedEvent],
        frontend_url: str,
        currency: str = "usd",
    ):
        self.carts = carts
        self.orders = orders
        self.catalog = catalog
        self.gateway = gateway
        self.events = events
        self.frontend_url = frontend_url.rstrip("/")
        self.currency = currency

    def build_line_items(self, order: Order) -> list[dict[str, Any]]:
        """
        Line items for the hosted payment page.

        One line per order item, one for delivery, one for tax, and a
        negative discount line when a promo code took money off. The lines
        add up to the order total.
        """

        def line(name: str, unit_amount: int, quantity: int = 1, **product: Any) -> dict[str, Any]:
            return {
                "price_data": {
                    "currency": self.currency,
                    "product_data": {"name": name, **product},
                    "unit_amount": unit_amount,
                },
                "quantity": quantity,
            }

        items = []
        for item in order.items:
            extra = {"images": [item.product_image]} if item.product_image else {}
            items.append(
                line(item.product_name, to_minor_units(item.price), item.quantity, **extra)
            )

        items.append(
            line(
                order.delivery_option.name,
                to_minor_units(order.shipping),
                description=order.delivery_option.description,
            )
        )

        if order.tax > 0:
            items.append(line("Sales tax", to_minor_units(order.tax)))

        if order.discount > 0:
            items.append(line(f"Discount ({order.promo_code})", -to_minor_units(order.discount)))

        return items

    def start_checkout(
        self,
        owner: CartOwner,
        shipping_address: ShippingAddress,
        delivery_option_id: str,
        customer_email: str | None = None,
    ) -> CheckoutResult:
        """
        Turn the owner's cart into a pending order and open a payment session.

        Signed-in owners pay with their account email; guests must supply one.
        The email is checked before the cart, so a guest without one gets
        GuestEmailRequiredError even when the cart is empty.
        The cart is left in place until payment is confirmed by webhook.

        Raises:
            EmptyCartError: If the cart is missing or empty.
            GuestEmailRequiredError: If a guest gives no email.
            PaymentProviderError: If the session cannot be created.
        """
        if not owner.user_id and not customer_email:
            raise GuestEmailRequiredError()
        cart = self.carts.get(owner)
        if cart is None or not cart.items:
            raise EmptyCartError()

        order = self.orders.create_order(
            cart,
            shipping_address,
            delivery_option_id,
            user_id=owner.user_id,
            guest_email=customer_email,
        )

        params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "line_items": self.build_line_items(order),
            "mode": "payment",
            "success_url": f"{self.frontend_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.frontend_url}/checkout/cancel?order_id={order.id}",
            "metadata": {"orderId": order.id},
            "payment_intent_data": {"metadata": {"orderId": order.id}},
        }
        if customer_email:
            params["customer_email"] = customer_email

        session = self.gateway.create_checkout_session(params)
        order = self.orders.set_session(order.id, session.id)
        logger.info("checkout_session_created", order_id=order.id, session_id=session.id)
        return CheckoutResult(order=order, session=session)

    def handle_webhook(self, payload: bytes, signature: str | None) -> WebhookResult:
        """
        Verify and apply a payment provider event.

        Each event ID is applied at most once. An event is recorded as
        processed only after its handler succeeds, so a failed delivery can
        be retried.

        Raises:
            WebhookSignatureError: If the delivery fails verification.
        """
        event = self.gateway.construct_event(payload, signature)
        event_id, event_type = event["id"], event["type"]

        if event_id in self.events:
            logger.info("webhook_duplicate", event_id=event_id, event_type=event_type)
            return WebhookResult(event_id, event_type, "duplicate")

        obj = event.get("data", {}).get("object", {})
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("webhook_ignored", event_id=event_id, event_type=event_type)
            action, order_id = "ignored", None
        else:
            action, order_id = handler(self, obj)
            logger.info(
                "webhook_handled",
                event_id=event_id,
                event_type=event_type,
                action=action,
                order_id=order_id,
            )

        self.events.put(event_id, ProcessedEvent(id=event_id, type=event_type))
        return WebhookResult(event_id, event_type, action, order_id)

    def _resolve_order(self, obj: dict[str, Any]) -> Order | None:
        order_id = (obj.get("metadata") or {}).get("orderId")
        if order_id:
            order = self.orders.repository.get(order_id)
            if order is not None:
                return order
        session_id = obj.get("id")
        if session_id and obj.get("object", "checkout.session") == "checkout.session":
            return self.orders.find_by_session(session_id)
        return None

    def _on_session_completed(self, session: dict[str, Any]) -> tuple[str, str | None]:
        order = self._resolve_order(session)
        if order is None:
            logger.warning("webhook_unknown_order", session_id=session.get("id"))
            return "unknown_order", None
        if order.status != OrderStatus.PENDING:
            return "already_handled", order.id

        order = self.orders.mark_paid(order.id, session.get("payment_intent"))
        for item in order.items:
            self.catalog.decrement_stock(item.product_id, item.quantity)
        self.carts.clear_key(order.cart_key)
        return "order_paid", order.id

    def _on_payment_failed(self, intent: dict[str, Any]) -> tuple[str, str | None]:
        order = self._resolve_order(intent)
        if order is None:
            return "unknown_order", None
        if order.status != OrderStatus.PENDING or order.payment_status != PaymentStatus.PENDING:
            return "already_handled", order.id

        error = intent.get("last_payment_error") or {}
        self.orders.update_payment_status(
            order.id, PaymentStatus.FAILED, error.get("message", "Payment failed")
        )
        return "payment_failed", order.id

    def _on_session_expired(self, session: dict[str, Any]) -> tuple[str, str | None]:
        order = self._resolve_order(session)
        if order is None:
            return "unknown_order", None
        if order.status != OrderStatus.PENDING:
            return "already_handled", order.id

        self.orders.update_status(order.id, OrderStatus.CANCELLED, "Checkout session expired")
        return "order_cancelled", order.id

    def _on_charge_refunded(self, charge: dict[str, Any]) -> tuple[str, str | None]:
        intent_id = charge.get("payment_intent")
        order = next(
            (
                o
                for o in self.orders.repository.values()
                if intent_id and o.stripe_payment_intent_id == intent_id
            ),
            None,
        )
        if order is None:
            return "unknown_order", None
        if order.payment_status != PaymentStatus.PAID:
            return "already_handled", order.id

        self.orders.update_payment_status(order.id, PaymentStatus.REFUNDED, "Charge refunded")
        return "payment_refunded", order.id

    _handlers = {
        "checkout.session.completed": _on_session_completed,
        "checkout.session.expired": _on_session_expired,
        "payment_intent.payment_failed": _on_payment_failed,
        "charge.refunded": _on_charge_refunded,
    }
