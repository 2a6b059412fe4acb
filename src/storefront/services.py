"""Wiring of repositories, stores and the payment gateway."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable

import structlog

from .addresses import AddressStore
from .audit import AuditStore
from .auth import TokenService
from .cart import CartEngine
from .catalog import CatalogStore
from .checkout import CheckoutService
from .config import Settings
from .models import (
    Address,
    AuditLog,
    Cart,
    Category,
    Order,
    ProcessedEvent,
    Product,
    Review,
    User,
)
from .orders import OrderStore
from .payments import PaymentGateway, StripeGateway
from .storage import JsonFileRepository, MemoryRepository, Repository
from .users import UserStore

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    catalog: CatalogStore
    users: UserStore
    addresses: AddressStore
    audit: AuditStore
    carts: CartEngine
    orders: OrderStore
    checkout: CheckoutService
    tokens: TokenService


def _repository_factory(settings: Settings) -> Callable[[str, Callable[[dict[str, Any]], Any]], Repository]:
    if settings.storage_backend == "json":
        data_dir = settings.data_dir

        def make(name: str, factory: Callable[[dict[str, Any]], Any]) -> Repository:
            return JsonFileRepository(data_dir / f"{name}.json", factory)

        return make

    return lambda name, factory: MemoryRepository()


def build_services(settings: Settings, gateway: PaymentGateway | None = None) -> Services:
    """
    Assemble every store for the configured backend.

    Args:
        settings: Runtime configuration.
        gateway: Payment gateway to use instead of Stripe.
    """
    make = _repository_factory(settings)

    catalog = CatalogStore(
        make("categories", Category.from_dict),
        make("products", Product.from_dict),
        make("reviews", Review.from_dict),
    )
    if settings.seed_catalog:
        catalog.seed()

    carts = CartEngine(make("carts", Cart.from_dict), catalog)
    orders = OrderStore(make("orders", Order.from_dict), catalog)
    gateway = gateway or StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)

    services = Services(
        settings=settings,
        catalog=catalog,
        users=UserStore(make("users", User.from_dict)),
        addresses=AddressStore(make("addresses", Address.from_dict)),
        audit=AuditStore(make("audit_logs", AuditLog.from_dict)),
        carts=carts,
        orders=orders,
        checkout=CheckoutService(
            carts=carts,
            orders=orders,
            catalog=catalog,
            gateway=gateway,
            events=make("webhook_events", ProcessedEvent.from_dict),
            frontend_url=settings.frontend_url,
            currency=settings.currency,
        ),
        tokens=TokenService(
            settings.jwt_secret,
            access_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_ttl_days),
        ),
    )
    logger.debug("services_built", storage_backend=settings.storage_backend)
    return services
