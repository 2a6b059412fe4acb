"""Tests for the catalog store."""

from decimal import Decimal

import pytest

from storefront.catalog import ProductFilters, ProductSort
from storefront.errors import CategoryNotFoundError, ProductNotFoundError, ReviewNotFoundError


@pytest.fixture
def catalog(services):
    return services.catalog


class TestSeed:
    def test_seeded_once(self, catalog):
        assert len(catalog.products) == 12
        assert catalog.seed() is False
        assert len(catalog.list_categories()) == 4


class TestListProducts:
    def test_defaults(self, catalog):
        page = catalog.list_products()
        assert page.total == 12
        assert len(page.items) == 12
        assert page.limit == 12
        assert page.total_pages == 1

    def test_category_includes_children(self, catalog):
        page = catalog.list_products(ProductFilters(category_id="cat-1"), limit=50)
        assert {p.category_id for p in page.items} == {"cat-1", "cat-2"}
        assert page.total == 7

    def test_price_range(self, catalog):
        page = catalog.list_products(
            ProductFilters(min_price=Decimal("50"), max_price=Decimal("150")), limit=50
        )
        assert sorted(p.id for p in page.items) == ["prod-10", "prod-3", "prod-4", "prod-8"]

    def test_min_rating(self, catalog):
        page = catalog.list_products(ProductFilters(min_rating=4.7), limit=50)
        assert sorted(p.id for p in page.items) == ["prod-2", "prod-5", "prod-9"]

    def test_tags_match_any(self, catalog):
        page = catalog.list_products(ProductFilters(tags=("audio", "robot")), limit=50)
        assert sorted(p.id for p in page.items) == ["prod-1", "prod-10", "prod-9"]

    def test_search_is_case_insensitive(self, catalog):
        page = catalog.list_products(ProductFilters(search="GAMING"))
        assert {p.id for p in page.items} == {"prod-2", "prod-3", "prod-4"}

    def test_search_matches_description(self, catalog):
        page = catalog.list_products(ProductFilters(search="rfid"))
        assert [p.id for p in page.items] == ["prod-12"]

    def test_sort_by_price(self, catalog):
        asc = catalog.list_products(sort=ProductSort("price", "asc")).items
        assert asc[0].id == "prod-6"
        desc = catalog.list_products(sort=ProductSort("price", "desc")).items
        assert desc[0].id == "prod-2"

    def test_sort_by_name(self, catalog):
        names = [p.name for p in catalog.list_products(sort=ProductSort("name", "asc")).items]
        assert names == sorted(names, key=str.casefold)

    def test_pagination(self, catalog):
        page = catalog.list_products(sort=ProductSort("price", "asc"), page=3, limit=5)
        assert page.total == 12
        assert page.total_pages == 3
        assert len(page.items) == 2

    def test_page_past_end_is_empty(self, catalog):
        assert catalog.list_products(page=9).items == []


class TestLookups:
    def test_by_id_and_slug(self, catalog):
        assert catalog.get_product("prod-5").slug == "smart-watch-pro"
        assert catalog.get_product_by_slug("leather-wallet").id == "prod-12"

    def test_missing_product(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.get_product("prod-999")
        with pytest.raises(ProductNotFoundError):
            catalog.get_product_by_slug("nothing")

    def test_categories(self, catalog):
        assert catalog.get_category("cat-2").parent_id == "cat-1"
        assert catalog.get_category_by_slug("home-garden").id == "cat-4"
        with pytest.raises(CategoryNotFoundError):
            catalog.get_category("cat-9")

    def test_featured_and_trending(self, catalog):
        featured = catalog.featured()
        assert len(featured) <= 6
        assert all(p.is_featured for p in featured)
        assert {p.id for p in catalog.trending()} == {"prod-1", "prod-2", "prod-3", "prod-4", "prod-8"}

    def test_related(self, catalog):
        related = catalog.related("prod-2")
        assert len(related) <= 4
        assert "prod-2" not in {p.id for p in related}
        assert all(p.category_id == "cat-2" for p in related)
        assert catalog.related("missing") == []

    def test_decrement_stock_clamps(self, catalog):
        assert catalog.decrement_stock("prod-9", 5).stock == 13
        assert catalog.decrement_stock("prod-9", 50).stock == 0
        assert catalog.decrement_stock("missing", 1) is None


class TestReviews:
    def test_list_for_product(self, catalog):
        page = catalog.list_reviews("prod-1")
        assert page.total == 2
        assert {r.id for r in page.items} == {"rev-1", "rev-2"}

    def test_distribution(self, catalog):
        assert catalog.rating_distribution("prod-1") == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}

    def test_create_reaggregates_rating(self, catalog):
        review = catalog.create_review("prod-1", "user-9", "Nine", 3, "Okay-ish", "It is fine I suppose.")
        product = catalog.get_product("prod-1")
        assert product.review_count == 3
        assert product.rating == 4.0
        assert catalog.list_reviews("prod-1").items[0].id == review.id

    def test_create_for_missing_product(self, catalog):
        with pytest.raises(ProductNotFoundError):
            catalog.create_review("nope", "user-9", "Nine", 5, "Great", "Really great stuff.")

    def test_update_and_delete_by_owner(self, catalog):
        review = catalog.create_review("prod-6", "user-9", "Nine", 1, "Bad fit", "Shrank in the wash.")
        catalog.update_review(review.id, "user-9", 5, "Good fit", "Actually fits fine now.")
        assert catalog.get_product("prod-6").rating == 5.0
        assert [r.id for r in catalog.user_reviews("user-9")] == [review.id]

        catalog.delete_review(review.id, "user-9")
        product = catalog.get_product("prod-6")
        assert product.review_count == 0
        assert product.rating == 0.0

    def test_other_users_cannot_edit(self, catalog):
        with pytest.raises(ReviewNotFoundError):
            catalog.update_review("rev-1", "user-9", 1, "Hijack", "Not my review at all.")
        with pytest.raises(ReviewNotFoundError):
            catalog.delete_review("rev-1", "user-9")
