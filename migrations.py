"""
Schema migrations and demo data for the shop database.

Run from the command line:

    python migrations.py seed        # demo categories and products
    python migrations.py variants    # product variants collection + sample variants
    python migrations.py images      # product gallery collection + sample images
    python migrations.py all

Every step is safe to run more than once.
"""
import argparse
import logging
import random
import re
from typing import Dict, List

from pymongo import ASCENDING
from pymongo.database import Database

from catalog import IMAGES, VARIANTS
from config import Settings, configure_logging
from database import connect, create_document, get_documents, now
from schemas import Category, Product, ProductImage

logger = logging.getLogger(__name__)

DEMO_CATEGORIES = [
    {"name": "Electronics", "slug": "electronics", "description": "Electronic devices and accessories"},
    {"name": "Clothing", "slug": "clothing", "description": "Apparel for every season"},
    {"name": "Accessories", "slug": "accessories", "description": "Bags, bottles and everyday carry"},
]

DEMO_PRODUCTS = [
    {
        "name": "Wireless Headphones",
        "description": "Premium noise-cancelling wireless headphones",
        "price": 199.99,
        "stock": 10,
        "category": "electronics",
        "imageUrl": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=800&q=80",
    },
    {
        "name": "Running Shirt Pro",
        "description": "Breathable, quick-drying fabric.",
        "price": 24.99,
        "stock": 40,
        "category": "clothing",
        "imageUrl": "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=800&q=80",
    },
    {
        "name": "Sports Backpack",
        "description": "Multiple compartments and water resistant.",
        "price": 39.99,
        "stock": 15,
        "category": "accessories",
        "imageUrl": "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=800&q=80",
    },
]

GALLERY_IMAGES = [
    "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=800&q=80",
    "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=800&q=80",
    "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=800&q=80",
]

VARIANT_TEMPLATES = [
    ("S", "Small", "Black", True),
    ("M", "Medium", "Black", False),
    ("L", "Large", "White", False),
]


def seed_catalog(db: Database) -> Dict[str, int]:
    """Create demo categories and products if the product collection is empty"""
    if db["product"].count_documents({}) > 0:
        return {"created": 0}
    slugs = {}
    for data in DEMO_CATEGORIES:
        existing = db["category"].find_one({"slug": data["slug"]})
        slugs[data["slug"]] = str(existing["_id"]) if existing else create_document(db, "category", Category(**data))
    for data in DEMO_PRODUCTS:
        fields = {k: v for k, v in data.items() if k != "category"}
        create_document(db, "product", Product(categoryId=slugs[data["category"]], **fields).model_dump(exclude_none=True))
    logger.info("Seeded %d categories and %d products", len(DEMO_CATEGORIES), len(DEMO_PRODUCTS))
    return {"created": len(DEMO_PRODUCTS)}


def sku_prefix(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().upper())


def add_product_variants(db: Database, sample_size: int = 3) -> int:
    db[VARIANTS].create_index([("productId", ASCENDING)])
    db[VARIANTS].create_index([("sku", ASCENDING)], unique=True, sparse=True)

    products = get_documents(db, "product", limit=sample_size, sort=[("_id", ASCENDING)])
    created = 0
    for product in products:
        for suffix, size, color, is_default in VARIANT_TEMPLATES:
            sku = f"{sku_prefix(product['name'])}-{suffix}"
            stamp = now()
            result = db[VARIANTS].update_one(
                {"sku": sku},
                {"$setOnInsert": {
                    "productId": str(product["_id"]),
                    "sku": sku,
                    "size": size,
                    "color": color,
                    "material": None,
                    "price": None,
                    "stock": random.randint(10, 59),
                    "imageUrl": None,
                    "isDefault": is_default,
                    "createdAt": stamp,
                    "updatedAt": stamp,
                }},
                upsert=True,
            )
            if result.upserted_id is not None:
                created += 1
    logger.info("Created %d variants for %d products", created, len(products))
    return created


def add_product_images(db: Database) -> int:
    db[IMAGES].create_index([("productId", ASCENDING), ("order", ASCENDING)])

    created = 0
    for product in get_documents(db, "product"):
        product_id = str(product["_id"])
        name = product.get("name") or "Product"
        if db[IMAGES].count_documents({"productId": product_id}) > 0:
            logger.info("Product %s already has images, skipping", name)
            continue
        images: List[ProductImage] = []
        if product.get("imageUrl"):
            images.append(ProductImage(productId=product_id, url=product["imageUrl"], alt=name, order=0, isPrimary=True))
        for i in range(2):
            images.append(ProductImage(productId=product_id, url=GALLERY_IMAGES[i % len(GALLERY_IMAGES)],
                                       alt=f"{name} - View {i + 2}", order=i + 1, isPrimary=False))
        for image in images:
            create_document(db, IMAGES, image)
        created += len(images)
    logger.info("Created %d gallery images", created)
    return created


STEPS = {
    "seed": seed_catalog,
    "variants": add_product_variants,
    "images": add_product_images,
}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Shop database migrations")
    parser.add_argument("step", choices=sorted(STEPS) + ["all"])
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    client, db = connect(settings)
    try:
        steps = ["seed", "variants", "images"] if args.step == "all" else [args.step]
        for step in steps:
            logger.info("Running migration step %r", step)
            STEPS[step](db)
    finally:
        client.close()


if __name__ == "__main__":
    main()
