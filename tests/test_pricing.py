from decimal import Decimal

import pricing

PRODUCT = {
    "id": "p1",
    "name": "Wireless Headphones",
    "price": 199.99,
    "stock": 10,
    "imageUrl": "https://example.com/default.jpg",
    "variants": [
        {"id": "v-black", "price": None, "stock": 4, "size": "M", "color": "Black"},
        {"id": "v-gold", "price": 249.99, "stock": 0, "color": "Gold", "imageUrl": "https://example.com/gold.jpg"},
    ],
    "images": [
        {"url": "https://example.com/side.jpg", "isPrimary": False},
        {"url": "https://example.com/front.jpg", "isPrimary": True},
    ],
}


def test_no_variant_uses_product_fields():
    assert pricing.resolve(PRODUCT) == (199.99, 10, None)
    assert pricing.effective_price(PRODUCT) == 199.99
    assert pricing.effective_stock(PRODUCT) == 10


def test_unknown_variant_falls_back_to_product():
    resolved = pricing.resolve(PRODUCT, "missing")
    assert resolved.price == 199.99
    assert resolved.stock == 10
    assert resolved.variant is None


def test_variant_without_price_inherits_price_but_not_stock():
    resolved = pricing.resolve(PRODUCT, "v-black")
    assert resolved.price == 199.99
    assert resolved.stock == 4
    assert resolved.variant["color"] == "Black"


def test_variant_price_override_and_zero_stock():
    assert pricing.effective_price(PRODUCT, "v-gold") == 249.99
    assert pricing.effective_stock(PRODUCT, "v-gold") == 0


def test_product_without_variants_list():
    product = {"id": "p2", "price": 5, "stock": 1}
    assert pricing.resolve(product, "v-black") == (5.0, 1, None)


def test_line_total_is_exact_in_cents():
    assert pricing.line_total({"price": 0.1, "stock": 9}, 3) == Decimal("0.30")
    assert pricing.line_total(PRODUCT, 2, "v-gold") == Decimal("499.98")


def test_money_rounds_half_up():
    assert pricing.money(2.675) == Decimal("2.68")
    assert pricing.money("10") == Decimal("10.00")


def test_display_image_preference():
    assert pricing.display_image(PRODUCT, "v-gold") == "https://example.com/gold.jpg"
    assert pricing.display_image(PRODUCT, "v-black") == "https://example.com/front.jpg"
    no_primary = dict(PRODUCT, images=[{"url": "https://example.com/only.jpg", "isPrimary": False}])
    assert pricing.display_image(no_primary) == "https://example.com/only.jpg"
    assert pricing.display_image({"imageUrl": "https://example.com/default.jpg"}) == "https://example.com/default.jpg"


def test_variant_label():
    assert pricing.variant_label(PRODUCT["variants"][0]) == "Size: M, Color: Black"
    assert pricing.variant_label(PRODUCT["variants"][1]) == "Color: Gold"
    assert pricing.variant_label(None) == ""
