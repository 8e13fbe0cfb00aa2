"""
Effective price and stock resolution.

Products are plain mappings as returned by the API (``price``, ``stock``,
optional ``variants`` list with ``id``/``price``/``stock``). The same
functions back catalog display, cart totals and server-side order pricing,
so a product never shows one price and charges another.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Mapping, NamedTuple, Optional

CENT = Decimal("0.01")


class Resolved(NamedTuple):
    price: float
    stock: int
    variant: Optional[Dict[str, Any]]


def money(value) -> Decimal:
    """Round a price-like value to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def find_variant(product: Mapping[str, Any], variant_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not variant_id:
        return None
    for variant in product.get("variants") or []:
        if str(variant.get("id")) == str(variant_id):
            return variant
    return None


def resolve(product: Mapping[str, Any], variant_id: Optional[str] = None) -> Resolved:
    variant = find_variant(product, variant_id)
    if variant is None:
        return Resolved(float(product.get("price") or 0), int(product.get("stock") or 0), None)
    price = variant.get("price")
    if price is None:
        price = product.get("price") or 0
    # variants never inherit the product's stock
    return Resolved(float(price), int(variant.get("stock") or 0), variant)


def effective_price(product: Mapping[str, Any], variant_id: Optional[str] = None) -> float:
    return resolve(product, variant_id).price


def effective_stock(product: Mapping[str, Any], variant_id: Optional[str] = None) -> int:
    return resolve(product, variant_id).stock


def line_total(product: Mapping[str, Any], quantity: int, variant_id: Optional[str] = None) -> Decimal:
    return money(effective_price(product, variant_id)) * quantity


def display_image(product: Mapping[str, Any], variant_id: Optional[str] = None) -> Optional[str]:
    """Pick the image to show: variant image, primary gallery image, first gallery image, then imageUrl."""
    variant = find_variant(product, variant_id)
    if variant and variant.get("imageUrl"):
        return variant["imageUrl"]
    images = product.get("images") or []
    for image in images:
        if image.get("isPrimary"):
            return image.get("url")
    if images:
        return images[0].get("url")
    return product.get("imageUrl")


def variant_label(variant: Optional[Mapping[str, Any]]) -> str:
    if not variant:
        return ""
    parts = []
    if variant.get("size"):
        parts.append(f"Size: {variant['size']}")
    if variant.get("color"):
        parts.append(f"Color: {variant['color']}")
    return ", ".join(parts)
