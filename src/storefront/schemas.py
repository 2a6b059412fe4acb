"""Pydantic request and response schemas for the HTTP API.

JSON bodies use camelCase keys; Python code uses the snake_case field names.
"""

import re
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import AddressType, OrderStatus

T = TypeVar("T")

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
_PHONE_RULE = re.compile(r"^\+?[1-9]\d{1,14}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_password(value: str) -> str:
    if not _PASSWORD_RULE.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


# --- Envelope ---


class FieldErrorSchema(CamelModel):
    field: str
    message: str


class PaginationSchema(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ApiResponse(CamelModel, Generic[T]):
    status: Literal["success", "error"] = "success"
    data: Optional[T] = None
    message: Optional[str] = None
    errors: Optional[list[FieldErrorSchema]] = None
    pagination: Optional[PaginationSchema] = None


# --- Catalog ---


class CategorySchema(CamelModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    image_url: Optional[str] = None


class ProductSchema(CamelModel):
    id: str
    name: str
    slug: str
    description: str
    price: float
    compare_at_price: Optional[float] = None
    category_id: str
    sku: str
    stock: int
    images: list[str]
    rating: float
    review_count: int
    tags: list[str]
    is_featured: bool = False
    is_trending: bool = False
    shipping_info: Optional[str] = None
    created_at: str
    updated_at: str


class ReviewSchema(CamelModel):
    id: str
    product_id: str
    user_id: str
    user_name: str
    rating: int
    title: str
    comment: str
    verified: bool = False
    helpful: int = 0
    created_at: str
    updated_at: str


class UserReviewSchema(ReviewSchema):
    """A review listed on the author's account page, with product details."""

    product_name: Optional[str] = None
    product_slug: Optional[str] = None
    product_image: Optional[str] = None


class ReviewCreateRequest(CamelModel):
    product_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=3, max_length=100)
    comment: str = Field(min_length=10, max_length=1000)


class ReviewUpdateRequest(CamelModel):
    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=3, max_length=100)
    comment: str = Field(min_length=10, max_length=1000)


# --- Cart ---


class CartItemSchema(CamelModel):
    id: str
    product_id: str
    product_name: str
    product_slug: str
    product_image: str
    price: float
    quantity: int
    stock: int
    variant_id: Optional[str] = None


class CartSchema(CamelModel):
    id: str
    user_id: Optional[str] = None
    guest_token: Optional[str] = None
    items: list[CartItemSchema]
    subtotal: float
    tax: float
    discount: float
    total: float
    promo_code: Optional[str] = None
    created_at: str
    updated_at: str


class CartCountSchema(CamelModel):
    count: int


class AddToCartRequest(CamelModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    variant_id: Optional[str] = None


class UpdateCartItemRequest(CamelModel):
    quantity: int = Field(ge=1)


class ApplyPromoRequest(CamelModel):
    promo_code: str = Field(min_length=1)


# --- Checkout & orders ---


class DeliveryOptionSchema(CamelModel):
    id: str
    name: str
    description: str
    price: float
    estimated_days: int


class ShippingAddressSchema(CamelModel):
    full_name: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    phone: str = Field(min_length=1)


class TimelineEntrySchema(CamelModel):
    status: str
    timestamp: str
    note: Optional[str] = None


class OrderSchema(CamelModel):
    id: str
    order_number: str
    items: list[CartItemSchema]
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    shipping_address: ShippingAddressSchema
    delivery_option: DeliveryOptionSchema
    status: OrderStatus
    payment_status: str
    user_id: Optional[str] = None
    guest_email: Optional[str] = None
    promo_code: Optional[str] = None
    stripe_session_id: Optional[str] = None
    timeline: list[TimelineEntrySchema]
    created_at: str
    updated_at: str


class CheckoutRequest(CamelModel):
    shipping_address: ShippingAddressSchema
    delivery_option_id: str = Field(min_length=1)
    guest_email: Optional[EmailStr] = None


class CheckoutSessionSchema(CamelModel):
    session_id: str
    url: Optional[str] = None
    order_id: str
    order_number: str


class OrderStatusUpdateRequest(CamelModel):
    status: OrderStatus
    note: Optional[str] = None


class WebhookAckSchema(CamelModel):
    received: bool = True
    action: str


# --- Auth ---


class UserSchema(CamelModel):
    id: str
    email: str
    name: str
    role: str
    phone: Optional[str] = None
    marketing_emails: bool = False
    marketing_sms: bool = False
    created_at: str
    updated_at: str


class TokenPairSchema(CamelModel):
    access_token: str
    refresh_token: str


class AuthSchema(CamelModel):
    user: UserSchema
    tokens: TokenPairSchema


class TokensSchema(CamelModel):
    tokens: TokenPairSchema


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=2)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        return _check_password(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


# --- Account ---


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2)
    phone: Optional[str] = None
    marketing_emails: Optional[bool] = None
    marketing_sms: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def _phone_format(cls, v: Optional[str]) -> Optional[str]:
        if v and not _PHONE_RULE.match(v):
            raise ValueError("Invalid phone number format")
        return v


class AddressSchema(CamelModel):
    id: str
    type: AddressType
    first_name: str
    last_name: str
    address1: str
    address2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool = False
    created_at: str
    updated_at: str


class AddressCreateRequest(CamelModel):
    type: AddressType
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    address1: str = Field(min_length=1)
    address2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    is_default: bool = False


class AddressUpdateRequest(CamelModel):
    type: Optional[AddressType] = None
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    address1: Optional[str] = Field(default=None, min_length=1)
    address2: Optional[str] = None
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    postal_code: Optional[str] = Field(default=None, min_length=1)
    country: Optional[str] = Field(default=None, min_length=1)
    is_default: Optional[bool] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def _password_strength(cls, v: str) -> str:
        return _check_password(v)

    @model_validator(mode="after")
    def _passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class AuditLogSchema(CamelModel):
    id: str
    action: str
    ip_address: str
    user_agent: str
    timestamp: str


class AuditLogListSchema(CamelModel):
    logs: list[AuditLogSchema]
    total: int
