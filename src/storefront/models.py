"""Data models for storefront."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
import uuid

from .money import ZERO, to_money


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new entity ID."""
    return str(uuid.uuid4())


def _money_or_none(value: Any) -> Decimal | None:
    return None if value is None else to_money(value)


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class AddressType(str, Enum):
    SHIPPING = "shipping"
    BILLING = "billing"


# Catalog models


@dataclass
class Category:
    """A product category, optionally nested under a parent."""

    id: str
    name: str
    slug: str
    description: str | None = None
    parent_id: str | None = None
    image_url: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "parent_id": self.parent_id,
            "image_url": self.image_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data["slug"],
            description=data.get("description"),
            parent_id=data.get("parent_id"),
            image_url=data.get("image_url"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class Product:
    """A catalog product. Price is the current selling price."""

    id: str
    name: str
    slug: str
    description: str
    price: Decimal
    category_id: str
    sku: str
    stock: int
    images: list[str] = field(default_factory=list)
    compare_at_price: Decimal | None = None
    rating: float = 0.0
    review_count: int = 0
    tags: list[str] = field(default_factory=list)
    is_featured: bool = False
    is_trending: bool = False
    shipping_info: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "price": str(self.price),
            "compare_at_price": (
                str(self.compare_at_price) if self.compare_at_price is not None else None
            ),
            "category_id": self.category_id,
            "sku": self.sku,
            "stock": self.stock,
            "images": list(self.images),
            "rating": self.rating,
            "review_count": self.review_count,
            "tags": list(self.tags),
            "is_featured": self.is_featured,
            "is_trending": self.is_trending,
            "shipping_info": self.shipping_info,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data["slug"],
            description=data.get("description", ""),
            price=to_money(data["price"]),
            compare_at_price=_money_or_none(data.get("compare_at_price")),
            category_id=data["category_id"],
            sku=data.get("sku", ""),
            stock=data.get("stock", 0),
            images=data.get("images", []),
            rating=data.get("rating", 0.0),
            review_count=data.get("review_count", 0),
            tags=data.get("tags", []),
            is_featured=data.get("is_featured", False),
            is_trending=data.get("is_trending", False),
            shipping_info=data.get("shipping_info"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class Review:
    """A user's review of a product."""

    id: str
    product_id: str
    user_id: str
    user_name: str
    rating: int  # 1-5
    title: str
    comment: str
    verified: bool = False
    helpful: int = 0
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "rating": self.rating,
            "title": self.title,
            "comment": self.comment,
            "verified": self.verified,
            "helpful": self.helpful,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Review":
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            user_id=data["user_id"],
            user_name=data.get("user_name", ""),
            rating=data["rating"],
            title=data.get("title", ""),
            comment=data.get("comment", ""),
            verified=data.get("verified", False),
            helpful=data.get("helpful", 0),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        product_id: str,
        user_id: str,
        user_name: str,
        rating: int,
        title: str,
        comment: str,
    ) -> "Review":
        """Create a new review with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            product_id=product_id,
            user_id=user_id,
            user_name=user_name,
            rating=rating,
            title=title,
            comment=comment,
            created_at=now,
            updated_at=now,
        )


# Account models


@dataclass
class User:
    """A registered account. ``email`` is stored lower-cased."""

    id: str
    email: str
    name: str
    password_hash: str
    role: UserRole = UserRole.CUSTOMER
    phone: str | None = None
    marketing_emails: bool = False
    marketing_sms: bool = False
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "password_hash": self.password_hash,
            "role": self.role.value,
            "phone": self.phone,
            "marketing_emails": self.marketing_emails,
            "marketing_sms": self.marketing_sms,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data["email"],
            name=data["name"],
            password_hash=data["password_hash"],
            role=UserRole(data.get("role", UserRole.CUSTOMER.value)),
            phone=data.get("phone"),
            marketing_emails=data.get("marketing_emails", False),
            marketing_sms=data.get("marketing_sms", False),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(
        cls,
        email: str,
        name: str,
        password_hash: str,
        role: UserRole = UserRole.CUSTOMER,
    ) -> "User":
        """Create a new user with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=f"user_{uuid.uuid4().hex[:16]}",
            email=email.lower(),
            name=name,
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )


@dataclass
class Address:
    """A saved shipping or billing address in a user's address book."""

    id: str
    user_id: str
    type: AddressType
    first_name: str
    last_name: str
    address1: str
    city: str
    state: str
    postal_code: str
    country: str
    address2: str | None = None
    is_default: bool = False
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type.value,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address1": self.address1,
            "address2": self.address2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "is_default": self.is_default,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Address":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            type=AddressType(data["type"]),
            first_name=data["first_name"],
            last_name=data["last_name"],
            address1=data["address1"],
            address2=data.get("address2"),
            city=data["city"],
            state=data["state"],
            postal_code=data["postal_code"],
            country=data["country"],
            is_default=data.get("is_default", False),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class AuditLog:
    """A security-relevant account event."""

    id: str
    user_id: str
    action: str  # "login" | "profile_update" | "password_change"
    ip_address: str
    user_agent: str
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditLog":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            action=data["action"],
            ip_address=data.get("ip_address", "unknown"),
            user_agent=data.get("user_agent", "unknown"),
            timestamp=data.get("timestamp", ""),
        )


# Cart models


def cart_owner_key(user_id: str | None, guest_token: str | None) -> str:
    """Storage key of a cart. Users and guests live in separate key spaces."""
    if user_id:
        return f"user:{user_id}"
    if guest_token:
        return f"guest:{guest_token}"
    return ""


@dataclass
class CartItem:
    """A cart line. Product fields are a snapshot taken when the line was added."""

    id: str
    product_id: str
    product_name: str
    product_slug: str
    product_image: str
    price: Decimal
    quantity: int
    stock: int
    variant_id: str | None = None

    @property
    def line_key(self) -> tuple[str, str | None]:
        """Identity used when merging lines."""
        return (self.product_id, self.variant_id)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_slug": self.product_slug,
            "product_image": self.product_image,
            "price": str(self.price),
            "quantity": self.quantity,
            "stock": self.stock,
            "variant_id": self.variant_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            product_name=data.get("product_name", ""),
            product_slug=data.get("product_slug", ""),
            product_image=data.get("product_image", ""),
            price=to_money(data["price"]),
            quantity=data["quantity"],
            stock=data.get("stock", 0),
            variant_id=data.get("variant_id"),
        )

    @classmethod
    def snapshot(cls, product: Product, quantity: int, variant_id: str | None = None) -> "CartItem":
        """Create a new line copying the product's current name, price and stock."""
        return cls(
            id=_generate_id(),
            product_id=product.id,
            product_name=product.name,
            product_slug=product.slug,
            product_image=product.images[0] if product.images else "",
            price=product.price,
            quantity=quantity,
            stock=product.stock,
            variant_id=variant_id,
        )


@dataclass
class Cart:
    """A shopping cart owned by either a user or a guest token."""

    id: str
    user_id: str | None = None
    guest_token: str | None = None
    items: list[CartItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    discount: Decimal = ZERO
    total: Decimal = ZERO
    promo_code: str | None = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def owner_key(self) -> str:
        return cart_owner_key(self.user_id, self.guest_token)

    def find_item(self, item_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_line(self, product_id: str, variant_id: str | None) -> CartItem | None:
        for item in self.items:
            if item.line_key == (product_id, variant_id):
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "guest_token": self.guest_token,
            "items": [i.to_dict() for i in self.items],
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "discount": str(self.discount),
            "total": str(self.total),
            "promo_code": self.promo_code,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cart":
        return cls(
            id=data["id"],
            user_id=data.get("user_id"),
            guest_token=data.get("guest_token"),
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            subtotal=to_money(data.get("subtotal", "0")),
            tax=to_money(data.get("tax", "0")),
            discount=to_money(data.get("discount", "0")),
            total=to_money(data.get("total", "0")),
            promo_code=data.get("promo_code"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    @classmethod
    def create(cls, user_id: str | None = None, guest_token: str | None = None) -> "Cart":
        """Create an empty cart with zero totals."""
        now = _utc_now()
        return cls(
            id=_generate_id(),
            user_id=user_id,
            guest_token=None if user_id else guest_token,
            created_at=now,
            updated_at=now,
        )


# Order models


@dataclass(frozen=True)
class DeliveryOption:
    """A shipping tier offered at checkout."""

    id: str
    name: str
    description: str
    price: Decimal
    estimated_days: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "estimated_days": self.estimated_days,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryOption":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            price=to_money(data["price"]),
            estimated_days=data.get("estimated_days", 0),
        )


@dataclass
class ShippingAddress:
    """Address captured at checkout and frozen into the order."""

    full_name: str
    address_line1: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str
    address_line2: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingAddress":
        return cls(
            full_name=data["full_name"],
            address_line1=data["address_line1"],
            address_line2=data.get("address_line2"),
            city=data["city"],
            state=data["state"],
            postal_code=data["postal_code"],
            country=data["country"],
            phone=data["phone"],
        )


@dataclass
class TimelineEntry:
    """One entry in an order's status history."""

    status: str
    timestamp: str = field(default_factory=_utc_now)
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "timestamp": self.timestamp, "note": self.note}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimelineEntry":
        return cls(
            status=data["status"],
            timestamp=data.get("timestamp", ""),
            note=data.get("note"),
        )


@dataclass
class Order:
    """A snapshot of a cart at checkout plus its payment and fulfilment state."""

    id: str
    order_number: str
    cart_key: str  # owner key of the source cart, cleared on payment
    items: list[CartItem]
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    shipping_address: ShippingAddress
    delivery_option: DeliveryOption
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    user_id: str | None = None
    guest_email: str | None = None
    promo_code: str | None = None
    stripe_session_id: str | None = None
    stripe_payment_intent_id: str | None = None
    timeline: list[TimelineEntry] = field(default_factory=list)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "cart_key": self.cart_key,
            "items": [i.to_dict() for i in self.items],
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "shipping": str(self.shipping),
            "discount": str(self.discount),
            "total": str(self.total),
            "shipping_address": self.shipping_address.to_dict(),
            "delivery_option": self.delivery_option.to_dict(),
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "user_id": self.user_id,
            "guest_email": self.guest_email,
            "promo_code": self.promo_code,
            "stripe_session_id": self.stripe_session_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "timeline": [t.to_dict() for t in self.timeline],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=data["id"],
            order_number=data["order_number"],
            cart_key=data.get("cart_key", ""),
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            subtotal=to_money(data["subtotal"]),
            tax=to_money(data["tax"]),
            shipping=to_money(data["shipping"]),
            discount=to_money(data.get("discount", "0")),
            total=to_money(data["total"]),
            shipping_address=ShippingAddress.from_dict(data["shipping_address"]),
            delivery_option=DeliveryOption.from_dict(data["delivery_option"]),
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            payment_status=PaymentStatus(data.get("payment_status", PaymentStatus.PENDING.value)),
            user_id=data.get("user_id"),
            guest_email=data.get("guest_email"),
            promo_code=data.get("promo_code"),
            stripe_session_id=data.get("stripe_session_id"),
            stripe_payment_intent_id=data.get("stripe_payment_intent_id"),
            timeline=[TimelineEntry.from_dict(t) for t in data.get("timeline", [])],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class ProcessedEvent:
    """A payment provider webhook event that has already been applied."""

    id: str
    type: str
    received_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "received_at": self.received_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessedEvent":
        return cls(
            id=data["id"],
            type=data["type"],
            received_at=data.get("received_at", ""),
        )


@dataclass
class Page:
    """One page of a larger result set."""

    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)

    @classmethod
    def slice(cls, items: list[Any], page: int, limit: int) -> "Page":
        """Cut the 1-based ``page`` of size ``limit`` out of ``items``."""
        start = (page - 1) * limit
        return cls(items=items[start:start + limit], total=len(items), page=page, limit=limit)
