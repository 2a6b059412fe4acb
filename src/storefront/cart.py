"""Cart engine: per-owner carts with line merging, stock checks and promo codes."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from .catalog import CatalogStore
from .errors import (
    CartItemNotFoundError,
    CartNotFoundError,
    InsufficientStockError,
    MissingCartOwnerError,
)
from .models import Cart, CartItem, _generate_id, _utc_now, cart_owner_key
from .pricing import lookup_promotion, reprice
from .storage import Repository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartOwner:
    """Who a cart belongs to. A signed-in user wins over a guest token."""

    user_id: str | None = None
    guest_token: str | None = None

    @property
    def key(self) -> str:
        key = cart_owner_key(self.user_id, self.guest_token)
        if not key:
            raise MissingCartOwnerError()
        return key

    @classmethod
    def user(cls, user_id: str) -> "CartOwner":
        return cls(user_id=user_id)

    @classmethod
    def guest(cls, guest_token: str) -> "CartOwner":
        return cls(guest_token=guest_token)


class CartEngine:
    """
    Cart operations keyed by owner.

    Every mutation reprices the whole cart before it is written back, so the
    stored totals always match the stored lines. A failed operation leaves
    the stored cart untouched.
    """

    def __init__(self, carts: Repository[Cart], catalog: CatalogStore):
        self.carts = carts
        self.catalog = catalog

    def get(self, owner: CartOwner) -> Cart | None:
        return self.carts.get(owner.key)

    def get_or_create(self, owner: CartOwner) -> Cart:
        """Return the owner's cart, creating and storing an empty one if needed."""
        cart = self.carts.get(owner.key)
        if cart is None:
            cart = Cart.create(user_id=owner.user_id, guest_token=owner.guest_token)
            self.carts.put(owner.key, cart)
            logger.debug("cart_created", cart_id=cart.id)
        return cart

    def require(self, owner: CartOwner) -> Cart:
        """
        Return the owner's cart.

        Raises:
            CartNotFoundError: If the owner has no cart.
        """
        cart = self.carts.get(owner.key)
        if cart is None:
            raise CartNotFoundError(owner.key)
        return cart

    def add_item(
        self,
        owner: CartOwner,
        product_id: str,
        quantity: int = 1,
        variant_id: str | None = None,
    ) -> Cart:
        """
        Add ``quantity`` of a product, merging with an existing line for the
        same product and variant.

        Raises:
            ProductNotFoundError: If the product doesn't exist.
            InsufficientStockError: If the line would exceed current stock.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        product = self.catalog.get_product(product_id)
        cart = self.carts.get(owner.key) or Cart.create(
            user_id=owner.user_id, guest_token=owner.guest_token
        )

        line = cart.find_line(product_id, variant_id)
        existing = line.quantity if line else 0
        if existing + quantity > product.stock:
            raise InsufficientStockError(product_id, existing + quantity, product.stock)

        if line is not None:
            line.quantity += quantity
            line.stock = product.stock
        else:
            cart.items.append(CartItem.snapshot(product, quantity, variant_id))

        logger.debug("cart_item_added", cart_id=cart.id, product_id=product_id, quantity=quantity)
        return self._save(owner.key, cart)

    def update_item_quantity(self, owner: CartOwner, item_id: str, quantity: int) -> Cart:
        """
        Set a line's quantity.

        Raises:
            CartNotFoundError: If the owner has no cart.
            CartItemNotFoundError: If the line doesn't exist.
            InsufficientStockError: If ``quantity`` exceeds current stock.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        cart = self.require(owner)
        line = cart.find_item(item_id)
        if line is None:
            raise CartItemNotFoundError(item_id)

        product = self.catalog.get_product(line.product_id)
        if quantity > product.stock:
            raise InsufficientStockError(line.product_id, quantity, product.stock)

        line.quantity = quantity
        line.stock = product.stock
        return self._save(owner.key, cart)

    def remove_item(self, owner: CartOwner, item_id: str) -> Cart:
        """Drop a line. Removing an unknown line is not an error."""
        cart = self.require(owner)
        cart.items = [item for item in cart.items if item.id != item_id]
        return self._save(owner.key, cart)

    def clear(self, owner: CartOwner) -> bool:
        return self.clear_key(owner.key)

    def clear_key(self, key: str) -> bool:
        """Delete the cart stored under an owner key. Returns True if one existed."""
        removed = self.carts.delete(key)
        if removed:
            logger.debug("cart_cleared", owner_key=key)
        return removed

    def apply_promo_code(self, owner: CartOwner, code: str) -> Cart:
        """
        Attach a promo code; the discount is re-rated on every later change.

        Raises:
            CartNotFoundError: If the owner has no cart.
            InvalidPromoCodeError: If the code is unknown.
        """
        cart = self.require(owner)
        promotion = lookup_promotion(code)
        cart.promo_code = promotion.code
        logger.info("promo_applied", cart_id=cart.id, promo_code=promotion.code)
        return self._save(owner.key, cart)

    def remove_promo_code(self, owner: CartOwner) -> Cart:
        cart = self.require(owner)
        cart.promo_code = None
        return self._save(owner.key, cart)

    def merge_guest_cart(self, guest_token: str, user_id: str) -> Cart:
        """
        Fold a guest cart into a user's cart and delete the guest cart.

        Lines for the same product and variant have their quantities summed;
        other lines are appended with fresh IDs. Stock is re-checked at order
        creation, not here.
        """
        user_owner = CartOwner.user(user_id)
        guest_owner = CartOwner.guest(guest_token)
        guest = self.carts.get(guest_owner.key)
        if guest is None:
            return self.get_or_create(user_owner)

        cart = self.carts.get(user_owner.key) or Cart.create(user_id=user_id)
        for item in guest.items:
            line = cart.find_line(item.product_id, item.variant_id)
            if line is not None:
                line.quantity += item.quantity
            else:
                item.id = _generate_id()
                cart.items.append(item)

        if cart.promo_code is None and guest.promo_code:
            cart.promo_code = guest.promo_code

        self._save(user_owner.key, cart)
        self.carts.delete(guest_owner.key)
        logger.info("guest_cart_merged", cart_id=cart.id, merged_lines=len(guest.items))
        return cart

    def item_count(self, owner: CartOwner) -> int:
        cart = self.carts.get(owner.key)
        if cart is None:
            return 0
        return sum(item.quantity for item in cart.items)

    def _save(self, key: str, cart: Cart) -> Cart:
        reprice(cart)
        cart.updated_at = _utc_now()
        self.carts.put(key, cart)
        return cart
