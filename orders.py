"""
Order creation.

Prices are resolved server-side with the same rules the storefront uses.
Stock is taken with a conditional update per line (only when enough units
remain), and everything taken is given back if a later line or the order insert fails.
MongoDB offers no multi-document transaction on a standalone server, so this
compensation is what keeps stock from going negative.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pymongo.database import Database

import pricing
from catalog import VARIANTS
from database import create_document, get_documents, now, parse_object_id, serialize_document
from schemas import Order, OrderItem, OrderRequest

logger = logging.getLogger(__name__)


class OrderError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InsufficientStockError(OrderError):
    pass


def _load_line(db: Database, product_id: str, variant_id: Optional[str]) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    oid = parse_object_id(product_id)
    doc = db["product"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise OrderError(f"Product not found: {product_id}")
    product = serialize_document(doc)
    if not variant_id:
        return product, None
    variant_oid = parse_object_id(variant_id)
    variant = db[VARIANTS].find_one({"_id": variant_oid, "productId": product["id"]}) if variant_oid else None
    if not variant:
        raise OrderError(f"Variant not found: {variant_id}")
    product["variants"] = [serialize_document(variant)]
    return product, product["variants"][0]


def _take_stock(db: Database, collection: str, oid, quantity: int) -> bool:
    result = db[collection].update_one(
        {"_id": oid, "stock": {"$gte": quantity}},
        {"$inc": {"stock": -quantity}, "$set": {"updatedAt": now()}},
    )
    return result.modified_count == 1


def _give_back(db: Database, taken: List[Tuple[str, Any, int]]):
    for collection, oid, quantity in taken:
        db[collection].update_one({"_id": oid}, {"$inc": {"stock": quantity}})


def create_order(db: Database, request: OrderRequest) -> Dict[str, Any]:
    items: List[OrderItem] = []
    taken: List[Tuple[str, Any, int]] = []
    total = Decimal("0.00")
    try:
        for line in request.cartItems:
            product, variant = _load_line(db, line.id, line.variantId)
            resolved = pricing.resolve(product, line.variantId)
            collection, oid = (VARIANTS, parse_object_id(variant["id"])) if variant else ("product", parse_object_id(product["id"]))
            if not _take_stock(db, collection, oid, line.quantity):
                raise InsufficientStockError(f"Insufficient stock for {product.get('name')}")
            taken.append((collection, oid, line.quantity))
            if line.price is not None and pricing.money(line.price) != pricing.money(resolved.price):
                logger.warning("Client price %s for product %s differs from %s; charging current price",
                               line.price, product["id"], resolved.price)
            items.append(OrderItem(productId=product["id"], variantId=line.variantId, quantity=line.quantity,
                                   priceAtTime=resolved.price))
            total += pricing.money(resolved.price) * line.quantity
        order = Order(clientInfo=request.clientInfo, items=items, totalAmount=float(total))
        order_id = create_document(db, "order", order)
    except Exception:
        _give_back(db, taken)
        raise

    logger.info("Created order %s with %d items, total %s", order_id, len(items), total)
    return get_order(db, order_id)


def get_order(db: Database, order_id: str) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(order_id)
    if oid is None:
        return None
    return serialize_document(db["order"].find_one({"_id": oid}))


def list_orders(db: Database) -> List[Dict[str, Any]]:
    return [serialize_document(o) for o in get_documents(db, "order", sort=[("createdAt", -1), ("_id", -1)])]
