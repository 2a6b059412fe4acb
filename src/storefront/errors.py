"""Custom exceptions for storefront."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class ConfigError(StorefrontError):
    """Raised when settings are unusable for the selected environment."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid configuration: {reason}")


class InvalidSchemaVersionError(StorefrontError):
    """Raised when a data file has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


# --- Catalog ---


class ProductNotFoundError(StorefrontError):
    """Raised when a product ID or slug doesn't exist."""

    def __init__(self, product_ref: str):
        self.product_ref = product_ref
        super().__init__(f"Product not found: {product_ref}")


class CategoryNotFoundError(StorefrontError):
    """Raised when a category ID or slug doesn't exist."""

    def __init__(self, category_ref: str):
        self.category_ref = category_ref
        super().__init__(f"Category not found: {category_ref}")


class ReviewNotFoundError(StorefrontError):
    """Raised when a review doesn't exist or belongs to another user."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Review not found: {review_id}")


# --- Cart ---


class CartNotFoundError(StorefrontError):
    """Raised when no cart exists for the owner key."""

    def __init__(self, owner: str):
        self.owner = owner
        super().__init__("Cart not found")


class CartItemNotFoundError(StorefrontError):
    """Raised when a cart line ID doesn't exist in the cart."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Cart item not found: {item_id}")


class InsufficientStockError(StorefrontError):
    """Raised when a requested quantity exceeds current product stock."""

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


class InvalidPromoCodeError(StorefrontError):
    """Raised when a promo code is not recognized."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Invalid promo code: {code}")


class MissingCartOwnerError(StorefrontError):
    """Raised when a request carries neither a user nor a guest token."""

    def __init__(self):
        super().__init__("Authentication or X-Guest-Token header required")


# --- Orders & checkout ---


class EmptyCartError(StorefrontError):
    """Raised when checking out a missing or empty cart."""

    def __init__(self):
        super().__init__("Cart is empty")


class DeliveryOptionNotFoundError(StorefrontError):
    """Raised when a delivery option ID doesn't resolve."""

    def __init__(self, option_id: str):
        self.option_id = option_id
        super().__init__(f"Delivery option not found: {option_id}")


class GuestEmailRequiredError(StorefrontError):
    """Raised when a guest checks out without an email address."""

    def __init__(self):
        super().__init__("Guest email is required for guest checkout")


class OrderNotFoundError(StorefrontError):
    """Raised when an order ID or session ID doesn't exist."""

    def __init__(self, order_ref: str):
        self.order_ref = order_ref
        super().__init__(f"Order not found: {order_ref}")


class InvalidStatusTransitionError(StorefrontError):
    """Raised when an order or payment status change is not allowed."""

    def __init__(self, kind: str, current: str, requested: str):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change {kind} status from '{current}' to '{requested}'"
        )


class PaymentProviderError(StorefrontError):
    """Raised when the payment provider rejects or fails a request."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Payment provider error during {operation}: {detail}")


class WebhookSignatureError(StorefrontError):
    """Raised when a webhook signature is missing or does not verify."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Webhook error: {reason}")


# --- Users & account ---


class AuthenticationError(StorefrontError):
    """Raised when credentials or tokens are missing or invalid."""

    def __init__(self, reason: str = "Authentication required"):
        self.reason = reason
        super().__init__(reason)


class PermissionDeniedError(StorefrontError):
    """Raised when an authenticated user may not access a resource."""

    def __init__(self, reason: str = "Access denied"):
        self.reason = reason
        super().__init__(reason)


class EmailAlreadyRegisteredError(StorefrontError):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class UserNotFoundError(StorefrontError):
    """Raised when a user ID doesn't exist."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class AddressNotFoundError(StorefrontError):
    """Raised when an address doesn't exist or belongs to another user."""

    def __init__(self, address_id: str):
        self.address_id = address_id
        super().__init__(f"Address not found: {address_id}")
