"""
HTTP client the storefront and admin screens use to talk to the shop API.

The session is injectable: a ``requests.Session`` in production, anything with
the same ``get``/``post``/``put``/``delete`` surface in tests.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import Settings

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _coerce_prices(product: Dict[str, Any]) -> Dict[str, Any]:
    product = dict(product)
    product["price"] = float(product.get("price") or 0)
    if product.get("variants"):
        product["variants"] = [
            dict(v, price=float(v["price"]) if v.get("price") is not None else None)
            for v in product["variants"]
        ]
    return product


class StorefrontClient:
    def __init__(self, base_url: str, session=None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self._products: Dict[Tuple[Optional[str], Optional[str]], List[Dict[str, Any]]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorefrontClient":
        return cls(settings.api_base_url)

    def _request(self, method: str, path: str, failure: str, **kwargs):
        try:
            response = getattr(self.session, method)(f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method.upper(), path, e)
            raise StorefrontError(failure) from e
        if response.status_code >= 400:
            raise StorefrontError(failure, response.status_code)
        return response

    # ---------------------- Catalog ----------------------

    def get_products(self, search: Optional[str] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
        key = (search or None, category or None)
        if key in self._products:
            return list(self._products[key])
        params = {}
        if search:
            params["q"] = search
        if category:
            params["category"] = category
        response = self._request("get", "/products", "Failed to fetch products", params=params)
        products = [_coerce_prices(p) for p in response.json()]
        self._products[key] = products
        return list(products)

    def invalidate_products(self):
        self._products.clear()

    def get_product(self, product_id: str) -> Dict[str, Any]:
        response = self._request("get", f"/products/{product_id}", "Failed to fetch product")
        return _coerce_prices(response.json())

    def get_categories(self) -> List[Dict[str, Any]]:
        return self._request("get", "/categories", "Failed to fetch categories").json()

    def create_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        product = self._request("post", "/products", "Failed to create product", json=data).json()
        self.invalidate_products()
        return product

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        product = self._request("put", f"/products/{product_id}", "Failed to update product", json=data).json()
        self.invalidate_products()
        return product

    def delete_product(self, product_id: str):
        self._request("delete", f"/products/{product_id}", "Failed to delete product")
        self.invalidate_products()

    # ---------------------- Orders ----------------------

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(f"{self.base_url}/orders", json=payload)
        except requests.RequestException as e:
            logger.warning("POST /orders failed: %s", e)
            raise StorefrontError("Failed to create order") from e
        if response.status_code >= 400:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise StorefrontError(message or "Failed to create order", response.status_code)
        return response.json()

    # ---------------------- Ratings & reviews ----------------------

    def get_ratings(self, product_id: str) -> Dict[str, Any]:
        return self._request("get", f"/ratings/product/{product_id}", "Failed to fetch ratings").json()

    def submit_rating(self, product_id: str, rating: int, review: Optional[str] = None, guest_name: Optional[str] = None) -> Dict[str, Any]:
        body = {"productId": product_id, "rating": rating, "review": review, "guestName": guest_name}
        created = self._request("post", "/ratings", "Failed to submit rating", json=body).json()
        self.invalidate_products()
        return created

    def get_reviews(self, product_id: str) -> List[Dict[str, Any]]:
        return self._request("get", f"/reviews/product/{product_id}", "Failed to fetch reviews").json()

    def submit_review(self, product_id: str, rating: int, comment: Optional[str] = None) -> Dict[str, Any]:
        body = {"productId": product_id, "rating": rating, "comment": comment}
        created = self._request("post", "/reviews", "Failed to submit review", json=body).json()
        self.invalidate_products()
        return created
