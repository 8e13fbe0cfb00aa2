"""
Catalog queries: filtering, ordering and relation loading for products.

Optional relations (variants and gallery images) live in their own
collections. Which of them exist is resolved once at startup into a
``RelationSupport`` flag so requests never inspect the schema.
"""
import enum
import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, get_documents, parse_object_id, serialize_document
from ratings import apply_summary, summaries_by_product
from schemas import ProductImage, ProductVariant, VariantInput

logger = logging.getLogger(__name__)

VARIANTS = "productvariant"
IMAGES = "productimage"


class RelationSupport(enum.Flag):
    NONE = 0
    VARIANTS = enum.auto()
    IMAGES = enum.auto()
    ALL = VARIANTS | IMAGES


def detect_relations(db: Database) -> RelationSupport:
    try:
        names = set(db.list_collection_names())
    except PyMongoError as e:
        logger.warning("Could not list collections, loading products without relations: %s", e)
        return RelationSupport.NONE
    support = RelationSupport.NONE
    if VARIANTS in names:
        support |= RelationSupport.VARIANTS
    if IMAGES in names:
        support |= RelationSupport.IMAGES
    logger.info("Catalog relation support: %s", support)
    return support


def _contains(term: str) -> Dict[str, Any]:
    return {"$regex": re.escape(term), "$options": "i"}


def build_product_filter(db: Database, search: Optional[str] = None, category: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Build the Mongo filter for a catalog query.

    Returns None when the category slug does not exist, meaning nothing can match.
    """
    conditions: Dict[str, Any] = {}
    if search:
        conditions["$or"] = [{"name": _contains(search)}, {"description": _contains(search)}]
    if category:
        found = db["category"].find_one({"slug": category}, {"_id": 1})
        if not found:
            return None
        conditions["categoryId"] = str(found["_id"])
    return conditions


def _grouped(db: Database, collection: str, product_ids: List[str], sort) -> Dict[str, List[Dict[str, Any]]]:
    grouped = defaultdict(list)
    for doc in get_documents(db, collection, {"productId": {"$in": product_ids}}, sort=sort):
        grouped[doc["productId"]].append(serialize_document(doc))
    return grouped


def _categories(db: Database, products: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    ids = [oid for oid in (parse_object_id(p.get("categoryId")) for p in products if p.get("categoryId")) if oid]
    if not ids:
        return {}
    return {str(doc["_id"]): serialize_document(doc) for doc in db["category"].find({"_id": {"$in": ids}})}


def enrich(db: Database, relations: RelationSupport, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    products = [serialize_document(d) for d in docs]
    if not products:
        return products
    ids = [p["id"] for p in products]
    categories = _categories(db, products)
    variants = _grouped(db, VARIANTS, ids, [("_id", 1)]) if RelationSupport.VARIANTS in relations else None
    # insertion order breaks ties between equal display positions
    images = _grouped(db, IMAGES, ids, [("order", 1), ("_id", 1)]) if RelationSupport.IMAGES in relations else None
    summaries = summaries_by_product(db, ids)

    for product in products:
        product["category"] = categories.get(product.get("categoryId"))
        if variants is not None:
            product["variants"] = variants.get(product["id"], [])
        if images is not None:
            product["images"] = images.get(product["id"], [])
        apply_summary(product, summaries[product["id"]])
    return products


def list_products(db: Database, relations: RelationSupport, search: Optional[str] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
    filter_q = build_product_filter(db, search, category)
    if filter_q is None:
        return []
    docs = get_documents(db, "product", filter_q, sort=[("createdAt", -1), ("_id", -1)])
    return enrich(db, relations, docs)


def get_product(db: Database, relations: RelationSupport, product_id: str) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(product_id)
    if oid is None:
        return None
    doc = db["product"].find_one({"_id": oid})
    if not doc:
        return None
    return enrich(db, relations, [doc])[0]


def list_categories(db: Database) -> List[Dict[str, Any]]:
    return [serialize_document(c) for c in get_documents(db, "category", sort=[("name", 1)])]


def sku_conflicts(db: Database, variants: List[VariantInput], product_id: Optional[str] = None) -> List[str]:
    """SKUs in ``variants`` that are repeated or already used by another product."""
    skus = [v.sku for v in variants if v.sku]
    repeated = {sku for sku in skus if skus.count(sku) > 1}
    filter_q: Dict[str, Any] = {"sku": {"$in": skus}}
    if product_id:
        filter_q["productId"] = {"$ne": product_id}
    taken = {doc["sku"] for doc in db[VARIANTS].find(filter_q, {"sku": 1})} if skus else set()
    return sorted(repeated | taken)


def snapshot_product(db: Database, product_id: str) -> Dict[str, Any]:
    return {
        "product": db["product"].find_one({"_id": parse_object_id(product_id)}),
        VARIANTS: list(db[VARIANTS].find({"productId": product_id})),
        IMAGES: list(db[IMAGES].find({"productId": product_id})),
    }


def restore_product(db: Database, snapshot: Dict[str, Any]):
    product = snapshot["product"]
    product_id = str(product["_id"])
    db["product"].replace_one({"_id": product["_id"]}, product)
    for collection in (VARIANTS, IMAGES):
        db[collection].delete_many({"productId": product_id})
        if snapshot[collection]:
            db[collection].insert_many(snapshot[collection])
    logger.warning("Restored product %s after a failed update", product_id)


def replace_variants(db: Database, product_id: str, variants: List[VariantInput]) -> int:
    db[VARIANTS].delete_many({"productId": product_id})
    for variant in variants:
        # a missing sku must stay absent, not null, for the sparse unique index
        doc = ProductVariant(productId=product_id, **variant.model_dump()).model_dump(exclude_none=True)
        create_document(db, VARIANTS, doc)
    return len(variants)


def replace_images(db: Database, product_id: str, urls: List[str], name: str = "") -> int:
    db[IMAGES].delete_many({"productId": product_id})
    urls = [u for u in urls if u.strip()]
    for position, url in enumerate(urls):
        image = ProductImage(productId=product_id, url=url, alt=name or None, order=position, isPrimary=position == 0)
        create_document(db, IMAGES, image)
    return len(urls)


def delete_product(db: Database, product_id: str) -> bool:
    oid = parse_object_id(product_id)
    if oid is None:
        return False
    result = db["product"].delete_one({"_id": oid})
    if not result.deleted_count:
        return False
    for collection in (VARIANTS, IMAGES, "rating", "review"):
        db[collection].delete_many({"productId": product_id})
    return True
