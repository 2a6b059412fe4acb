"""FastAPI REST API for the storefront."""

import traceback
import uuid
from decimal import Decimal
from typing import Literal, Optional

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .cart import CartOwner
from .catalog import ProductFilters, ProductSort
from .config import load_settings
from .errors import (
    AddressNotFoundError,
    AuthenticationError,
    CartItemNotFoundError,
    CartNotFoundError,
    CategoryNotFoundError,
    ConfigError,
    DeliveryOptionNotFoundError,
    EmailAlreadyRegisteredError,
    EmptyCartError,
    GuestEmailRequiredError,
    InsufficientStockError,
    InvalidPromoCodeError,
    InvalidSchemaVersionError,
    InvalidStatusTransitionError,
    MissingCartOwnerError,
    OrderNotFoundError,
    PaymentProviderError,
    PermissionDeniedError,
    ProductNotFoundError,
    ReviewNotFoundError,
    StorefrontError,
    UserNotFoundError,
    WebhookSignatureError,
)
from .log import configure_logging
from .models import Cart, Order, Page, Product, ShippingAddress, User, UserRole, _utc_now
from .orders import DELIVERY_OPTIONS
from .schemas import (
    AddressCreateRequest,
    AddressSchema,
    AddressUpdateRequest,
    AddToCartRequest,
    ApiResponse,
    ApplyPromoRequest,
    AuditLogListSchema,
    AuditLogSchema,
    AuthSchema,
    CartCountSchema,
    CartSchema,
    CategorySchema,
    ChangePasswordRequest,
    CheckoutRequest,
    CheckoutSessionSchema,
    DeliveryOptionSchema,
    FieldErrorSchema,
    LoginRequest,
    OrderSchema,
    OrderStatusUpdateRequest,
    PaginationSchema,
    ProductSchema,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    ReviewCreateRequest,
    ReviewSchema,
    ReviewUpdateRequest,
    TokenPairSchema,
    TokensSchema,
    UpdateCartItemRequest,
    UserReviewSchema,
    UserSchema,
    WebhookAckSchema,
)
from .services import Services, build_services

logger = structlog.get_logger(__name__)

settings = load_settings()
configure_logging(settings.log_level, json=settings.log_json or settings.is_production)


# --- Helper Functions ---


_services: Optional[Services] = None


def get_services() -> Services:
    """Get the process-wide Services bundle, building it on first use."""
    global _services
    if _services is None:
        _services = build_services(settings)
    return _services


def pagination_to_schema(page: Page) -> PaginationSchema:
    return PaginationSchema(
        page=page.page, limit=page.limit, total=page.total, total_pages=page.total_pages
    )


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(**product.to_dict())


def cart_to_schema(cart: Cart) -> CartSchema:
    return CartSchema(**cart.to_dict())


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(**order.to_dict())


def user_to_schema(user: User) -> UserSchema:
    return UserSchema(**user.to_dict())


def _client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_optional_user(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Optional[User]:
    """Resolve the bearer token if there is a valid one; anonymous otherwise."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        claims = services.tokens.verify(token)
        return services.users.get(claims.user_id)
    except (AuthenticationError, UserNotFoundError):
        return None


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> User:
    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationError()
    claims = services.tokens.verify(token)
    try:
        return services.users.get(claims.user_id)
    except UserNotFoundError as e:
        raise AuthenticationError("User not found") from e


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Admin access required")
    return user


def get_cart_owner(
    user: Optional[User] = Depends(get_optional_user),
    x_guest_token: Optional[str] = Header(default=None),
) -> CartOwner:
    """A signed-in user owns the cart; otherwise the X-Guest-Token header does."""
    owner = CartOwner(user_id=user.id if user else None, guest_token=x_guest_token or None)
    if not owner.user_id and not owner.guest_token:
        raise MissingCartOwnerError()
    return owner


# --- FastAPI App ---


app = FastAPI(
    title="storefront API",
    description="Catalog, cart, checkout and account REST API",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id, method=request.method, path=request.url.path
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# --- Global Exception Handlers ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ConfigError: 500,
    InvalidSchemaVersionError: 500,
    ProductNotFoundError: 404,
    CategoryNotFoundError: 404,
    ReviewNotFoundError: 404,
    CartNotFoundError: 404,
    CartItemNotFoundError: 404,
    InsufficientStockError: 400,
    InvalidPromoCodeError: 400,
    MissingCartOwnerError: 400,
    EmptyCartError: 400,
    DeliveryOptionNotFoundError: 400,
    GuestEmailRequiredError: 400,
    OrderNotFoundError: 404,
    InvalidStatusTransitionError: 409,
    PaymentProviderError: 500,
    WebhookSignatureError: 400,
    AuthenticationError: 401,
    PermissionDeniedError: 403,
    EmailAlreadyRegisteredError: 400,
    UserNotFoundError: 404,
    AddressNotFoundError: 404,
}

# Errors whose internal message is not shown to clients
PUBLIC_MESSAGES: dict[type, str] = {
    PaymentProviderError: "Failed to create checkout session",
    ConfigError: "Internal server error",
    InvalidSchemaVersionError: "Internal server error",
}


def _error_body(message: str, **extra) -> dict:
    return {"status": "error", "message": message, **extra}


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map StorefrontError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("request_failed", error_type=type(exc).__name__, error=str(exc))
    else:
        logger.info("request_rejected", error_type=type(exc).__name__, status_code=status_code)
    message = PUBLIC_MESSAGES.get(type(exc), str(exc))
    return JSONResponse(
        status_code=status_code,
        content=_error_body(message, errorType=type(exc).__name__),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        errors.append(
            FieldErrorSchema(field=".".join(loc) or "body", message=error.get("msg", "Invalid value"))
        )
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request data", errors=[e.model_dump() for e in errors]),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    body = _error_body("Internal server error")
    if not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=body)


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        "environment": settings.environment,
        "timestamp": _utc_now(),
    }


# --- Auth Endpoints ---


@app.post("/api/auth/register", response_model=ApiResponse[AuthSchema], status_code=201)
def register(request: RegisterRequest, services: Services = Depends(get_services)):
    """Create a customer account and sign it in."""
    user = services.users.register(
        email=request.email, password=request.password, name=request.name
    )
    tokens = services.tokens.issue(user)
    return ApiResponse(
        data=AuthSchema(
            user=user_to_schema(user),
            tokens=TokenPairSchema(
                access_token=tokens.access_token, refresh_token=tokens.refresh_token
            ),
        )
    )


@app.post("/api/auth/login", response_model=ApiResponse[AuthSchema])
def login(request: LoginRequest, http_request: Request, services: Services = Depends(get_services)):
    user = services.users.authenticate(request.email, request.password)
    ip, user_agent = _client_info(http_request)
    services.audit.record(user.id, "login", ip, user_agent)
    tokens = services.tokens.issue(user)
    logger.info("user_logged_in", user_id=user.id)
    return ApiResponse(
        data=AuthSchema(
            user=user_to_schema(user),
            tokens=TokenPairSchema(
                access_token=tokens.access_token, refresh_token=tokens.refresh_token
            ),
        )
    )


@app.post("/api/auth/refresh", response_model=ApiResponse[TokensSchema])
def refresh_tokens(request: RefreshRequest, services: Services = Depends(get_services)):
    """Exchange a refresh token for a new token pair."""
    try:
        claims = services.tokens.verify(request.refresh_token, expected_type="refresh")
        user = services.users.get(claims.user_id)
    except (AuthenticationError, UserNotFoundError) as e:
        raise AuthenticationError("Invalid or expired refresh token") from e

    tokens = services.tokens.issue(user)
    return ApiResponse(
        data=TokensSchema(
            tokens=TokenPairSchema(
                access_token=tokens.access_token, refresh_token=tokens.refresh_token
            )
        )
    )


@app.get("/api/auth/me", response_model=ApiResponse[UserSchema])
def me(user: User = Depends(get_current_user)):
    return ApiResponse(data=user_to_schema(user))


# --- Product Endpoints ---


@app.get("/api/products", response_model=ApiResponse[list[ProductSchema]])
def list_products(
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    min_price: Optional[float] = Query(default=None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(default=None, alias="maxPrice", ge=0),
    min_rating: Optional[float] = Query(default=None, alias="minRating", ge=0, le=5),
    tags: Optional[str] = Query(default=None, description="Comma-separated tags"),
    search: Optional[str] = Query(default=None),
    sort_field: Literal["price", "rating", "createdAt", "name"] = Query(
        default="createdAt", alias="sortField"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """
    List products.

    Filters combine with AND; ``tags`` matches products carrying any of the
    given tags.
    """
    filters = ProductFilters(
        category_id=category_id,
        min_price=Decimal(str(min_price)) if min_price is not None else None,
        max_price=Decimal(str(max_price)) if max_price is not None else None,
        min_rating=min_rating,
        tags=tuple(t.strip() for t in tags.split(",") if t.strip()) if tags else (),
        search=search or None,
    )
    result = services.catalog.list_products(
        filters, ProductSort(field=sort_field, order=sort_order), page, limit
    )
    return ApiResponse(
        data=[product_to_schema(p) for p in result.items],
        pagination=pagination_to_schema(result),
    )


@app.get("/api/products/featured", response_model=ApiResponse[list[ProductSchema]])
def featured_products(services: Services = Depends(get_services)):
    return ApiResponse(data=[product_to_schema(p) for p in services.catalog.featured()])


@app.get("/api/products/trending", response_model=ApiResponse[list[ProductSchema]])
def trending_products(services: Services = Depends(get_services)):
    return ApiResponse(data=[product_to_schema(p) for p in services.catalog.trending()])


@app.get("/api/products/id/{product_id}", response_model=ApiResponse[ProductSchema])
def get_product(product_id: str, services: Services = Depends(get_services)):
    return ApiResponse(data=product_to_schema(services.catalog.get_product(product_id)))


@app.get("/api/products/slug/{slug}", response_model=ApiResponse[ProductSchema])
def get_product_by_slug(slug: str, services: Services = Depends(get_services)):
    return ApiResponse(data=product_to_schema(services.catalog.get_product_by_slug(slug)))


@app.get("/api/products/{product_id}/related", response_model=ApiResponse[list[ProductSchema]])
def related_products(product_id: str, services: Services = Depends(get_services)):
    return ApiResponse(data=[product_to_schema(p) for p in services.catalog.related(product_id)])


@app.get("/api/products/{product_id}/reviews", response_model=ApiResponse[list[ReviewSchema]])
def list_product_reviews(
    product_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Reviews for a product, newest first."""
    services.catalog.get_product(product_id)
    result = services.catalog.list_reviews(product_id, page, limit)
    return ApiResponse(
        data=[ReviewSchema(**r.to_dict()) for r in result.items],
        pagination=pagination_to_schema(result),
    )


@app.get(
    "/api/products/{product_id}/reviews/distribution",
    response_model=ApiResponse[dict[str, int]],
)
def rating_distribution(product_id: str, services: Services = Depends(get_services)):
    """Review counts per star rating, 1 through 5."""
    distribution = services.catalog.rating_distribution(product_id)
    return ApiResponse(data={str(star): count for star, count in distribution.items()})


@app.post("/api/products/reviews", response_model=ApiResponse[ReviewSchema], status_code=201)
def create_review(
    request: ReviewCreateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    review = services.catalog.create_review(
        product_id=request.product_id,
        user_id=user.id,
        user_name=user.name,
        rating=request.rating,
        title=request.title,
        comment=request.comment,
    )
    return ApiResponse(data=ReviewSchema(**review.to_dict()))


# --- Category Endpoints ---


@app.get("/api/categories", response_model=ApiResponse[list[CategorySchema]])
def list_categories(services: Services = Depends(get_services)):
    return ApiResponse(
        data=[CategorySchema(**c.to_dict()) for c in services.catalog.list_categories()]
    )


@app.get("/api/categories/slug/{slug}", response_model=ApiResponse[CategorySchema])
def get_category_by_slug(slug: str, services: Services = Depends(get_services)):
    return ApiResponse(data=CategorySchema(**services.catalog.get_category_by_slug(slug).to_dict()))


@app.get("/api/categories/{category_id}", response_model=ApiResponse[CategorySchema])
def get_category(category_id: str, services: Services = Depends(get_services)):
    return ApiResponse(data=CategorySchema(**services.catalog.get_category(category_id).to_dict()))


# --- Cart Endpoints ---


@app.get("/api/cart", response_model=ApiResponse[CartSchema])
def get_cart(owner: CartOwner = Depends(get_cart_owner), services: Services = Depends(get_services)):
    """Current cart; an owner without one sees an empty cart."""
    cart = services.carts.get(owner) or Cart.create(
        user_id=owner.user_id, guest_token=owner.guest_token
    )
    return ApiResponse(data=cart_to_schema(cart))


@app.post("/api/cart", response_model=ApiResponse[CartSchema])
def add_to_cart(
    request: AddToCartRequest,
    owner: CartOwner = Depends(get_cart_owner),
    services: Services = Depends(get_services),
):
    cart = services.carts.add_item(owner, request.product_id, request.quantity, request.variant_id)
    return ApiResponse(data=cart_to_schema(cart))


@app.delete("/api/cart", response_model=ApiResponse[None])
def clear_cart(owner: CartOwner = Depends(get_cart_owner), services: Services = Depends(get_services)):
    services.carts.clear(owner)
    return ApiResponse(message="Cart cleared")


@app.get("/api/cart/count", response_model=ApiResponse[CartCountSchema])
def cart_count(owner: CartOwner = Depends(get_cart_owner), services: Services = Depends(get_services)):
    return ApiResponse(data=CartCountSchema(count=services.carts.item_count(owner)))


@app.post("/api/cart/promo", response_model=ApiResponse[CartSchema])
def apply_promo(
    request: ApplyPromoRequest,
    owner: CartOwner = Depends(get_cart_owner),
    services: Services = Depends(get_services),
):
    cart = services.carts.apply_promo_code(owner, request.promo_code)
    return ApiResponse(data=cart_to_schema(cart))


@app.delete("/api/cart/promo", response_model=ApiResponse[CartSchema])
def remove_promo(owner: CartOwner = Depends(get_cart_owner), services: Services = Depends(get_services)):
    return ApiResponse(data=cart_to_schema(services.carts.remove_promo_code(owner)))


@app.post("/api/cart/merge", response_model=ApiResponse[CartSchema])
def merge_cart(
    user: Optional[User] = Depends(get_optional_user),
    x_guest_token: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
):
    """Move a guest cart into the signed-in user's cart after login."""
    if user is None or not x_guest_token:
        raise HTTPException(
            status_code=400, detail="Authentication and X-Guest-Token header required"
        )
    cart = services.carts.merge_guest_cart(x_guest_token, user.id)
    return ApiResponse(data=cart_to_schema(cart))


@app.put("/api/cart/{item_id}", response_model=ApiResponse[CartSchema])
def update_cart_item(
    item_id: str,
    request: UpdateCartItemRequest,
    owner: CartOwner = Depends(get_cart_owner),
    services: Services = Depends(get_services),
):
    cart = services.carts.update_item_quantity(owner, item_id, request.quantity)
    return ApiResponse(data=cart_to_schema(cart))


@app.delete("/api/cart/{item_id}", response_model=ApiResponse[CartSchema])
def remove_cart_item(
    item_id: str,
    owner: CartOwner = Depends(get_cart_owner),
    services: Services = Depends(get_services),
):
    return ApiResponse(data=cart_to_schema(services.carts.remove_item(owner, item_id)))


# --- Checkout Endpoints ---


@app.get("/api/checkout/delivery-options", response_model=ApiResponse[list[DeliveryOptionSchema]])
def delivery_options():
    return ApiResponse(
        data=[DeliveryOptionSchema(**o.to_dict()) for o in DELIVERY_OPTIONS.values()]
    )


@app.post("/api/checkout/create-session", response_model=ApiResponse[CheckoutSessionSchema])
def create_checkout_session(
    request: CheckoutRequest,
    user: Optional[User] = Depends(get_optional_user),
    owner: CartOwner = Depends(get_cart_owner),
    services: Services = Depends(get_services),
):
    """
    Create a pending order from the cart and open a hosted payment session.

    Guests must send ``guestEmail``; signed-in users pay with their account email.
    """
    address = request.shipping_address
    result = services.checkout.start_checkout(
        owner,
        ShippingAddress(**address.model_dump()),
        request.delivery_option_id,
        customer_email=user.email if user else request.guest_email,
    )
    return ApiResponse(
        data=CheckoutSessionSchema(
            session_id=result.session.id,
            url=result.session.url,
            order_id=result.order.id,
            order_number=result.order.order_number,
        )
    )


@app.post("/api/checkout/webhook", response_model=WebhookAckSchema)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
):
    """Payment provider webhook. The raw body is needed for signature checks."""
    payload = await request.body()
    result = await run_in_threadpool(services.checkout.handle_webhook, payload, stripe_signature)
    return WebhookAckSchema(action=result.action)


@app.get("/api/checkout/orders", response_model=ApiResponse[list[OrderSchema]])
def list_my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = services.orders.list_for_user(user.id, page, limit)
    return ApiResponse(
        data=[order_to_schema(o) for o in result.items],
        pagination=pagination_to_schema(result),
    )


@app.get("/api/checkout/orders/{order_id}", response_model=ApiResponse[OrderSchema])
def get_order(
    order_id: str,
    user: Optional[User] = Depends(get_optional_user),
    services: Services = Depends(get_services),
):
    order = services.orders.get_visible(order_id, user.id if user else None)
    return ApiResponse(data=order_to_schema(order))


@app.patch("/api/checkout/orders/{order_id}/status", response_model=ApiResponse[OrderSchema])
def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Move an order through its status lifecycle. Admin only."""
    order = services.orders.update_status(order_id, request.status, request.note)
    logger.info("order_status_set_by_admin", order_id=order.id, admin_id=admin.id)
    return ApiResponse(data=order_to_schema(order))


@app.get("/api/checkout/session/{session_id}", response_model=ApiResponse[OrderSchema])
def get_order_by_session(
    session_id: str,
    user: Optional[User] = Depends(get_optional_user),
    services: Services = Depends(get_services),
):
    order = services.orders.get_by_session(session_id)
    order = services.orders.get_visible(order.id, user.id if user else None)
    return ApiResponse(data=order_to_schema(order))


# --- Account Endpoints ---


@app.get("/api/account/profile", response_model=ApiResponse[UserSchema])
def get_profile(user: User = Depends(get_current_user)):
    return ApiResponse(data=user_to_schema(user))


@app.put("/api/account/profile", response_model=ApiResponse[UserSchema])
def update_profile(
    request: ProfileUpdateRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    updated = services.users.update_profile(
        user.id,
        name=request.name,
        phone=request.phone,
        marketing_emails=request.marketing_emails,
        marketing_sms=request.marketing_sms,
    )
    ip, user_agent = _client_info(http_request)
    services.audit.record(user.id, "profile_update", ip, user_agent)
    return ApiResponse(data=user_to_schema(updated), message="Profile updated successfully")


@app.get("/api/account/addresses", response_model=ApiResponse[list[AddressSchema]])
def list_addresses(user: User = Depends(get_current_user), services: Services = Depends(get_services)):
    return ApiResponse(
        data=[AddressSchema(**a.to_dict()) for a in services.addresses.list(user.id)]
    )


@app.post("/api/account/addresses", response_model=ApiResponse[AddressSchema], status_code=201)
def create_address(
    request: AddressCreateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    address = services.addresses.create(user.id, **request.model_dump())
    return ApiResponse(data=AddressSchema(**address.to_dict()))


@app.put("/api/account/addresses/{address_id}", response_model=ApiResponse[AddressSchema])
def update_address(
    address_id: str,
    request: AddressUpdateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None or name == "address2"
    }
    address = services.addresses.update(user.id, address_id, **changes)
    return ApiResponse(data=AddressSchema(**address.to_dict()))


@app.delete("/api/account/addresses/{address_id}", response_model=ApiResponse[None])
def delete_address(
    address_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    services.addresses.delete(user.id, address_id)
    return ApiResponse(message="Address deleted successfully")


@app.get("/api/account/orders", response_model=ApiResponse[list[OrderSchema]])
def list_account_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = services.orders.list_for_user(user.id, page, limit)
    return ApiResponse(
        data=[order_to_schema(o) for o in result.items],
        pagination=pagination_to_schema(result),
    )


@app.get("/api/account/orders/{order_id}", response_model=ApiResponse[OrderSchema])
def get_account_order(
    order_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """One of the user's own orders. Other users' orders look missing."""
    order = services.orders.get(order_id)
    if order.user_id != user.id:
        raise OrderNotFoundError(order_id)
    return ApiResponse(data=order_to_schema(order))


@app.get("/api/account/reviews", response_model=ApiResponse[list[UserReviewSchema]])
def list_account_reviews(
    user: User = Depends(get_current_user), services: Services = Depends(get_services)
):
    reviews = []
    for review in services.catalog.user_reviews(user.id):
        product = services.catalog.products.get(review.product_id)
        reviews.append(
            UserReviewSchema(
                **review.to_dict(),
                product_name=product.name if product else None,
                product_slug=product.slug if product else None,
                product_image=product.images[0] if product and product.images else None,
            )
        )
    return ApiResponse(data=reviews)


@app.put("/api/account/reviews/{review_id}", response_model=ApiResponse[ReviewSchema])
def update_account_review(
    review_id: str,
    request: ReviewUpdateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    review = services.catalog.update_review(
        review_id, user.id, request.rating, request.title, request.comment
    )
    return ApiResponse(data=ReviewSchema(**review.to_dict()))


@app.delete("/api/account/reviews/{review_id}", response_model=ApiResponse[None])
def delete_account_review(
    review_id: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    services.catalog.delete_review(review_id, user.id)
    return ApiResponse(message="Review deleted successfully")


@app.post("/api/account/security/change-password", response_model=ApiResponse[None])
def change_password(
    request: ChangePasswordRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    services.users.change_password(user.id, request.current_password, request.new_password)
    ip, user_agent = _client_info(http_request)
    services.audit.record(user.id, "password_change", ip, user_agent)
    return ApiResponse(message="Password changed successfully")


@app.get("/api/account/security/logs", response_model=ApiResponse[AuditLogListSchema])
def list_audit_logs(
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    entries, total = services.audit.list(user.id, limit)
    return ApiResponse(
        data=AuditLogListSchema(
            logs=[AuditLogSchema(**e.to_dict()) for e in entries],
            total=total,
        )
    )
