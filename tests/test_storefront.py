from unittest import mock

import pytest
import requests

from config import Settings
from storefront import StorefrontClient, StorefrontError


@pytest.fixture
def storefront(client):
    return StorefrontClient("/api", session=client)


def test_get_products_filters_and_coerces_prices(storefront):
    products = storefront.get_products(search="head", category="electronics")
    assert [p["name"] for p in products] == ["Desk Stand", "Wireless Headphones"]
    headphones = products[1]
    assert isinstance(headphones["price"], float)
    assert [v["price"] for v in headphones["variants"]] == [None, 249.99]


def test_products_are_cached_until_invalidated(storefront, catalog_data, db):
    first = storefront.get_products()
    db["product"].delete_many({})
    assert storefront.get_products() == first
    storefront.invalidate_products()
    assert storefront.get_products() == []


def test_mutating_returned_products_leaves_cache_intact(storefront, catalog_data):
    products = storefront.get_products()
    products.clear()
    assert len(storefront.get_products()) == 4


def test_admin_writes_invalidate_cache(storefront, catalog_data):
    storefront.get_products()
    created = storefront.create_product({"name": "Lamp", "price": 12, "stock": 4})
    assert created["name"] == "Lamp"
    assert "Lamp" in [p["name"] for p in storefront.get_products()]

    storefront.update_product(created["id"], {"name": "Desk Lamp", "price": 12, "stock": 4})
    assert "Desk Lamp" in [p["name"] for p in storefront.get_products()]

    storefront.delete_product(created["id"])
    assert "Desk Lamp" not in [p["name"] for p in storefront.get_products()]


def test_missing_product_raises(storefront):
    with pytest.raises(StorefrontError) as exc:
        storefront.get_product("non-existent-id")
    assert exc.value.message == "Failed to fetch product"
    assert exc.value.status_code == 404


def test_categories(storefront):
    assert {c["slug"] for c in storefront.get_categories()} == {"electronics", "clothing"}


def test_ratings_and_reviews(storefront, catalog_data):
    storefront.submit_rating(catalog_data["stand"], 4, review="Solid", guest_name="Ana")
    ratings = storefront.get_ratings(catalog_data["stand"])
    assert ratings["totalRatings"] == 1
    assert ratings["averageRating"] == 4.0

    storefront.submit_review(catalog_data["stand"], 5, comment="Great")
    assert [r["comment"] for r in storefront.get_reviews(catalog_data["stand"])] == ["Great"]


def test_invalid_rating_raises(storefront, catalog_data):
    with pytest.raises(StorefrontError, match="Failed to submit rating"):
        storefront.submit_rating(catalog_data["stand"], 7)


def test_order_error_message_is_verbatim(storefront, catalog_data):
    payload = {"clientInfo": {"name": "Jane Doe", "phone": "12345678", "address": "123 Main St, Tunis"},
               "cartItems": [{"id": catalog_data["speaker"], "quantity": 1}]}
    with pytest.raises(StorefrontError) as exc:
        storefront.create_order(payload)
    assert exc.value.message == "Insufficient stock for Bluetooth Speaker"
    assert exc.value.status_code == 409


def test_network_failure_is_generic():
    session = mock.Mock()
    session.get.side_effect = requests.ConnectionError("connection refused")
    session.post.side_effect = requests.ConnectionError("connection refused")
    storefront = StorefrontClient("http://shop.invalid/api", session=session)

    with pytest.raises(StorefrontError, match="Failed to fetch products"):
        storefront.get_products()
    with pytest.raises(StorefrontError, match="Failed to create order"):
        storefront.create_order({})


def test_from_settings():
    storefront = StorefrontClient.from_settings(Settings(api_base_url="http://localhost:3001/api/"))
    assert storefront.base_url == "http://localhost:3001/api"
    assert isinstance(storefront.session, requests.Session)
