"""
Checkout: shipping form validation and order payload assembly.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from cart import Cart, CartLine, Notifier
from schemas import ClientInfo
from storefront import StorefrontClient, StorefrontError

logger = logging.getLogger(__name__)

FIELD_MESSAGES = {
    "name": "Please enter a valid name.",
    "phone": "Please enter a valid phone number.",
    "address": "Please enter a complete address.",
}

EMPTY_FORM = {"name": "", "phone": "", "address": ""}


def build_order_payload(shipping: ClientInfo, lines: Iterable[CartLine]) -> Dict[str, Any]:
    items = []
    for line in lines:
        item = {"id": line.product_id, "quantity": line.quantity, "price": line.price}
        if line.variant_id:
            item["variantId"] = line.variant_id
        items.append(item)
    return {"clientInfo": shipping.model_dump(), "cartItems": items}


class Checkout:
    """State of the checkout dialog: open flag, form values and field errors."""

    def __init__(self, client: StorefrontClient, cart: Cart, notifier: Optional[Notifier] = None):
        self.client = client
        self.cart = cart
        self.notifier = notifier or cart.notifier
        self.is_open = False
        self.form: Dict[str, str] = dict(EMPTY_FORM)
        self.errors: Dict[str, str] = {}
        self.pending = False

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def reset(self):
        self.form = dict(EMPTY_FORM)
        self.errors = {}

    def validate(self, **fields) -> Optional[ClientInfo]:
        self.form.update({k: v for k, v in fields.items() if k in EMPTY_FORM})
        try:
            shipping = ClientInfo(**self.form)
        except ValidationError as e:
            self.errors = {str(err["loc"][0]): FIELD_MESSAGES.get(str(err["loc"][0]), err["msg"]) for err in e.errors()}
            return None
        self.errors = {}
        return shipping

    def submit(self, **fields) -> Optional[Dict[str, Any]]:
        """Validate the form and place the order; returns the created order or None."""
        shipping = self.validate(**fields)
        if shipping is None or not len(self.cart):
            return None
        payload = build_order_payload(shipping, self.cart.lines)
        self.pending = True
        try:
            order = self.client.create_order(payload)
        except StorefrontError as e:
            self.notifier.error("Checkout Failed", e.message)
            return None
        finally:
            self.pending = False
        self.notifier.notify("Order Placed!", "Thank you for your purchase.")
        self.client.invalidate_products()
        self.cart.clear()
        self.reset()
        self.close()
        logger.info("Order %s placed", order.get("id"))
        return order
