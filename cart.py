"""
Storefront shopping cart.

The cart lives only for one storefront session. Lines are keyed by
(product id, variant id) and hold the product as fetched from the catalog,
so prices and stock limits are always resolved against the live product.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

import pricing

Key = Tuple[str, Optional[str]]


class Notice(NamedTuple):
    title: str
    description: str = ""
    variant: str = "default"


class Notifier:
    """Collects user-visible notices; an optional listener sees each one as it is emitted."""

    def __init__(self, listener: Optional[Callable[[Notice], None]] = None):
        self.notices: List[Notice] = []
        self.listener = listener

    def notify(self, title: str, description: str = "", variant: str = "default") -> Notice:
        notice = Notice(title, description, variant)
        self.notices.append(notice)
        if self.listener:
            self.listener(notice)
        return notice

    def error(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, "destructive")

    @property
    def last(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None


@dataclass
class CartLine:
    product: Dict[str, Any]
    variant_id: Optional[str] = None
    quantity: int = 1

    @property
    def product_id(self) -> str:
        return str(self.product["id"])

    @property
    def key(self) -> Key:
        return (self.product_id, self.variant_id)

    @property
    def price(self) -> float:
        return pricing.effective_price(self.product, self.variant_id)

    @property
    def stock(self) -> int:
        return pricing.effective_stock(self.product, self.variant_id)

    @property
    def subtotal(self) -> Decimal:
        return pricing.line_total(self.product, self.quantity, self.variant_id)


class Cart:
    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier or Notifier()
        self._lines: Dict[Key, CartLine] = {}

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(self.lines)

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def get(self, product_id: str, variant_id: Optional[str] = None) -> Optional[CartLine]:
        return self._lines.get((str(product_id), variant_id))

    def add(self, product: Dict[str, Any], variant_id: Optional[str] = None) -> bool:
        key = (str(product["id"]), variant_id)
        line = self._lines.get(key)
        if line and line.quantity >= pricing.effective_stock(product, variant_id):
            self.notifier.error("Stock limit reached", f"You cannot add more of {product.get('name')}.")
            return False
        if line:
            line.product = product
            line.quantity += 1
        else:
            self._lines[key] = CartLine(product=product, variant_id=variant_id, quantity=1)
        self.notifier.notify("Added to cart", f"{product.get('name')} has been added.")
        return True

    def remove(self, product_id: str, variant_id: Optional[str] = None):
        self._lines.pop((str(product_id), variant_id), None)

    def set_quantity(self, product_id: str, quantity: int, variant_id: Optional[str] = None):
        # unlike add(), no stock check here
        if quantity <= 0:
            self.remove(product_id, variant_id)
            return
        line = self._lines.get((str(product_id), variant_id))
        if line:
            line.quantity = quantity

    def clear(self):
        self._lines.clear()

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def total(self) -> float:
        return float(sum((line.subtotal for line in self._lines.values()), Decimal("0.00")))
