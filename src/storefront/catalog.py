"""Catalog storage: categories, products and reviews."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

import structlog

from . import data
from .errors import CategoryNotFoundError, ProductNotFoundError, ReviewNotFoundError
from .models import Category, Page, Product, Review, _utc_now
from .storage import Repository

logger = structlog.get_logger(__name__)

SortField = Literal["price", "rating", "createdAt", "name"]
SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class ProductFilters:
    category_id: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    min_rating: float | None = None
    tags: tuple[str, ...] = ()
    search: str | None = None


@dataclass(frozen=True)
class ProductSort:
    field: SortField = "createdAt"
    order: SortOrder = "desc"


_SORT_KEYS = {
    "price": lambda p: p.price,
    "rating": lambda p: p.rating,
    "createdAt": lambda p: p.created_at,
    "name": lambda p: p.name.casefold(),
}


class CatalogStore:
    """Read access to the catalog plus review writes and stock adjustments."""

    def __init__(
        self,
        categories: Repository[Category],
        products: Repository[Product],
        reviews: Repository[Review],
    ):
        self.categories = categories
        self.products = products
        self.reviews = reviews

    def seed(self) -> bool:
        """
        Load the bundled catalog if no products exist yet.

        Returns True if anything was written.
        """
        if len(self.products) > 0:
            return False

        now = _utc_now()
        for raw in data.CATEGORIES:
            category = Category.from_dict({**raw, "created_at": now, "updated_at": now})
            self.categories.put(category.id, category)
        for raw in data.PRODUCTS:
            product = Product.from_dict({**raw, "created_at": now, "updated_at": now})
            self.products.put(product.id, product)
        for raw in data.REVIEWS:
            review = Review.from_dict({**raw, "created_at": now, "updated_at": now})
            self.reviews.put(review.id, review)

        logger.info(
            "catalog_seeded",
            categories=len(data.CATEGORIES),
            products=len(data.PRODUCTS),
            reviews=len(data.REVIEWS),
        )
        return True

    # Categories

    def list_categories(self) -> list[Category]:
        return self.categories.values()

    def get_category(self, category_id: str) -> Category:
        """
        Get a category by ID.

        Raises:
            CategoryNotFoundError: If category doesn't exist.
        """
        category = self.categories.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def get_category_by_slug(self, slug: str) -> Category:
        for category in self.categories.values():
            if category.slug == slug:
                return category
        raise CategoryNotFoundError(slug)

    # Products

    def list_products(
        self,
        filters: ProductFilters | None = None,
        sort: ProductSort | None = None,
        page: int = 1,
        limit: int = 12,
    ) -> Page:
        """
        Filter, sort and paginate the catalog.

        A category filter also matches products in that category's direct
        children. Tags match if the product carries any of them.
        """
        products = self.products.values()
        filters = filters or ProductFilters()

        if filters.category_id:
            parents = {c.id: c.parent_id for c in self.categories.values()}
            products = [
                p
                for p in products
                if p.category_id == filters.category_id
                or parents.get(p.category_id) == filters.category_id
            ]
        if filters.min_price is not None:
            products = [p for p in products if p.price >= filters.min_price]
        if filters.max_price is not None:
            products = [p for p in products if p.price <= filters.max_price]
        if filters.min_rating is not None:
            products = [p for p in products if p.rating >= filters.min_rating]
        if filters.tags:
            wanted = set(filters.tags)
            products = [p for p in products if wanted.intersection(p.tags)]
        if filters.search:
            needle = filters.search.lower()
            products = [
                p
                for p in products
                if needle in p.name.lower() or needle in p.description.lower()
            ]

        sort = sort or ProductSort()
        products.sort(key=_SORT_KEYS[sort.field], reverse=sort.order == "desc")

        return Page.slice(products, page, limit)

    def get_product(self, product_id: str) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        product = self.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def get_product_by_slug(self, slug: str) -> Product:
        for product in self.products.values():
            if product.slug == slug:
                return product
        raise ProductNotFoundError(slug)

    def featured(self, limit: int = 6) -> list[Product]:
        return [p for p in self.products.values() if p.is_featured][:limit]

    def trending(self, limit: int = 6) -> list[Product]:
        return [p for p in self.products.values() if p.is_trending][:limit]

    def related(self, product_id: str, limit: int = 4) -> list[Product]:
        """Other products in the same category. Unknown IDs yield no results."""
        product = self.products.get(product_id)
        if product is None:
            return []
        return [
            p
            for p in self.products.values()
            if p.id != product_id and p.category_id == product.category_id
        ][:limit]

    def decrement_stock(self, product_id: str, quantity: int) -> Product | None:
        """Take sold units out of stock, never going below zero."""
        product = self.products.get(product_id)
        if product is None:
            logger.warning("stock_decrement_unknown_product", product_id=product_id)
            return None
        product.stock = max(0, product.stock - quantity)
        product.updated_at = _utc_now()
        self.products.put(product.id, product)
        return product

    # Reviews

    def list_reviews(self, product_id: str, page: int = 1, limit: int = 10) -> Page:
        """Reviews for a product, newest first."""
        reviews = [r for r in self.reviews.values() if r.product_id == product_id]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return Page.slice(reviews, page, limit)

    def rating_distribution(self, product_id: str) -> dict[int, int]:
        distribution = {star: 0 for star in range(1, 6)}
        for review in self.reviews.values():
            if review.product_id == product_id:
                distribution[review.rating] += 1
        return distribution

    def user_reviews(self, user_id: str) -> list[Review]:
        reviews = [r for r in self.reviews.values() if r.user_id == user_id]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return reviews

    def create_review(
        self,
        product_id: str,
        user_id: str,
        user_name: str,
        rating: int,
        title: str,
        comment: str,
    ) -> Review:
        """
        Add a review and refresh the product's rating aggregate.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        self.get_product(product_id)
        review = Review.create(
            product_id=product_id,
            user_id=user_id,
            user_name=user_name,
            rating=rating,
            title=title,
            comment=comment,
        )
        self.reviews.put(review.id, review)
        self._refresh_rating(product_id)
        return review

    def update_review(
        self, review_id: str, user_id: str, rating: int, title: str, comment: str
    ) -> Review:
        """
        Edit a review owned by ``user_id``.

        Raises:
            ReviewNotFoundError: If review doesn't exist or belongs to someone else.
        """
        review = self._owned_review(review_id, user_id)
        review.rating = rating
        review.title = title
        review.comment = comment
        review.updated_at = _utc_now()
        self.reviews.put(review.id, review)
        self._refresh_rating(review.product_id)
        return review

    def delete_review(self, review_id: str, user_id: str) -> Review:
        review = self._owned_review(review_id, user_id)
        self.reviews.delete(review.id)
        self._refresh_rating(review.product_id)
        return review

    def _owned_review(self, review_id: str, user_id: str) -> Review:
        review = self.reviews.get(review_id)
        if review is None or review.user_id != user_id:
            raise ReviewNotFoundError(review_id)
        return review

    def _refresh_rating(self, product_id: str) -> None:
        # Full re-aggregation over every review of the product
        product = self.products.get(product_id)
        if product is None:
            return
        ratings = [r.rating for r in self.reviews.values() if r.product_id == product_id]
        product.review_count = len(ratings)
        product.rating = round(sum(ratings) / len(ratings), 2) if ratings else 0.0
        product.updated_at = _utc_now()
        self.products.put(product.id, product)
