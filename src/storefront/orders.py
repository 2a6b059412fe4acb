"""Orders: creation from a cart, delivery options and status state machines."""

from __future__ import annotations

import copy
import uuid
from decimal import Decimal

import structlog

from .catalog import CatalogStore
from .errors import (
    DeliveryOptionNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PermissionDeniedError,
)
from .models import (
    Cart,
    DeliveryOption,
    Order,
    OrderStatus,
    Page,
    PaymentStatus,
    ShippingAddress,
    TimelineEntry,
    _generate_id,
    _utc_now,
)
from .money import to_money
from .pricing import shipping_cost
from .storage import Repository

logger = structlog.get_logger(__name__)

DELIVERY_OPTIONS: dict[str, DeliveryOption] = {
    o.id: o
    for o in (
        DeliveryOption(
            "standard", "Standard Shipping", "Delivery in 5-7 business days", Decimal("5.99"), 7
        ),
        DeliveryOption(
            "express", "Express Shipping", "Delivery in 2-3 business days", Decimal("12.99"), 3
        ),
        DeliveryOption(
            "overnight", "Overnight Shipping", "Delivery next business day", Decimal("24.99"), 1
        ),
    )
}

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def get_delivery_option(option_id: str) -> DeliveryOption:
    """
    Resolve a delivery option by ID.

    Raises:
        DeliveryOptionNotFoundError: If the ID is unknown.
    """
    option = DELIVERY_OPTIONS.get(option_id)
    if option is None:
        raise DeliveryOptionNotFoundError(option_id)
    return option


def _order_number() -> str:
    return f"ORD-{uuid.uuid4().hex[:8].upper()}"


class OrderStore:
    """Creates orders from carts and moves them through their lifecycle."""

    def __init__(self, repository: Repository[Order], catalog: CatalogStore):
        self.repository = repository
        self.catalog = catalog

    def create_order(
        self,
        cart: Cart | None,
        shipping_address: ShippingAddress,
        delivery_option_id: str,
        user_id: str | None = None,
        guest_email: str | None = None,
    ) -> Order:
        """
        Snapshot a cart into a new pending order. The cart itself is not cleared.

        Raises:
            EmptyCartError: If the cart is missing or has no lines.
            DeliveryOptionNotFoundError: If the delivery option is unknown.
            InsufficientStockError: If a line now exceeds current stock.
        """
        if cart is None or not cart.items:
            raise EmptyCartError()
        delivery_option = get_delivery_option(delivery_option_id)

        for item in cart.items:
            product = self.catalog.get_product(item.product_id)
            if item.quantity > product.stock:
                raise InsufficientStockError(item.product_id, item.quantity, product.stock)

        shipping = shipping_cost(delivery_option.price, cart.promo_code)
        now = _utc_now()
        order = Order(
            id=_generate_id(),
            order_number=_order_number(),
            cart_key=cart.owner_key,
            items=copy.deepcopy(cart.items),
            subtotal=cart.subtotal,
            tax=cart.tax,
            shipping=shipping,
            discount=cart.discount,
            total=to_money(cart.total + shipping),
            shipping_address=shipping_address,
            delivery_option=delivery_option,
            user_id=user_id,
            guest_email=None if user_id else guest_email,
            promo_code=cart.promo_code,
            timeline=[TimelineEntry(OrderStatus.PENDING.value, now, "Order created")],
            created_at=now,
            updated_at=now,
        )
        self.repository.put(order.id, order)
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            total=str(order.total),
        )
        return order

    def get(self, order_id: str) -> Order:
        """
        Get an order by ID.

        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        order = self.repository.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_visible(self, order_id: str, user_id: str | None) -> Order:
        """
        Get an order on behalf of a requester.

        Orders placed by a signed-in user are visible only to that user.

        Raises:
            OrderNotFoundError: If order doesn't exist.
            PermissionDeniedError: If the order belongs to another user.
        """
        order = self.get(order_id)
        if order.user_id and order.user_id != user_id:
            raise PermissionDeniedError()
        return order

    def find_by_session(self, session_id: str) -> Order | None:
        for order in self.repository.values():
            if order.stripe_session_id == session_id:
                return order
        return None

    def get_by_session(self, session_id: str) -> Order:
        order = self.find_by_session(session_id)
        if order is None:
            raise OrderNotFoundError(session_id)
        return order

    def list_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> Page:
        """A user's orders, newest first."""
        orders = [o for o in self.repository.values() if o.user_id == user_id]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return Page.slice(orders, page, limit)

    def list_all(self, status: OrderStatus | None = None) -> list[Order]:
        orders = self.repository.values()
        if status is not None:
            orders = [o for o in orders if o.status == status]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def update_status(self, order_id: str, status: OrderStatus, note: str | None = None) -> Order:
        """
        Move an order to ``status`` and record it on the timeline.

        Raises:
            OrderNotFoundError: If order doesn't exist.
            InvalidStatusTransitionError: If the transition is not allowed.
        """
        order = self.get(order_id)
        self._transition(order, status, note)
        self.repository.put(order.id, order)
        return order

    def update_payment_status(
        self, order_id: str, payment_status: PaymentStatus, note: str | None = None
    ) -> Order:
        order = self.get(order_id)
        self._transition_payment(order, payment_status, note)
        self.repository.put(order.id, order)
        return order

    def mark_paid(self, order_id: str, payment_intent_id: str | None) -> Order:
        """Record a completed payment: paid, processing, intent ID stored."""
        order = self.get(order_id)
        self._transition_payment(order, PaymentStatus.PAID, "Payment received")
        self._transition(order, OrderStatus.PROCESSING, None)
        if payment_intent_id:
            order.stripe_payment_intent_id = payment_intent_id
        self.repository.put(order.id, order)
        return order

    def set_session(self, order_id: str, session_id: str) -> Order:
        order = self.get(order_id)
        order.stripe_session_id = session_id
        order.updated_at = _utc_now()
        self.repository.put(order.id, order)
        return order

    def _transition(self, order: Order, status: OrderStatus, note: str | None) -> None:
        if status not in ORDER_TRANSITIONS[order.status]:
            raise InvalidStatusTransitionError("order", order.status.value, status.value)
        logger.info(
            "order_status_changed",
            order_id=order.id,
            from_status=order.status.value,
            to_status=status.value,
        )
        order.status = status
        order.updated_at = _utc_now()
        order.timeline.append(TimelineEntry(status.value, order.updated_at, note))

    def _transition_payment(
        self, order: Order, payment_status: PaymentStatus, note: str | None
    ) -> None:
        if payment_status not in PAYMENT_TRANSITIONS[order.payment_status]:
            raise InvalidStatusTransitionError(
                "payment", order.payment_status.value, payment_status.value
            )
        logger.info(
            "payment_status_changed",
            order_id=order.id,
            from_status=order.payment_status.value,
            to_status=payment_status.value,
        )
        order.payment_status = payment_status
        order.updated_at = _utc_now()
        order.timeline.append(
            TimelineEntry(f"payment_{payment_status.value}", order.updated_at, note)
        )
