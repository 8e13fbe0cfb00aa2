import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import create_document
from main import create_app


def add_category(db, name, slug):
    return create_document(db, "category", {"name": name, "slug": slug, "description": None})


def add_product(db, name, price, stock, category_id=None, description="", **extra):
    doc = {"name": name, "description": description, "price": price, "stock": stock, "categoryId": category_id}
    doc.update(extra)
    return create_document(db, "product", doc)


def add_variant(db, product_id, stock, price=None, **extra):
    doc = {"productId": product_id, "stock": stock, "price": price, "isDefault": False}
    doc.update(extra)
    return create_document(db, "productvariant", doc)


def add_image(db, product_id, url, order, is_primary=False):
    return create_document(db, "productimage", {"productId": product_id, "url": url, "alt": None,
                                                "order": order, "isPrimary": is_primary})


def add_rating(db, product_id, rating, **extra):
    return create_document(db, "rating", dict(productId=product_id, rating=rating, **extra))


@pytest.fixture
def db():
    return mongomock.MongoClient()["shop_test"]


@pytest.fixture
def catalog_data(db):
    electronics = add_category(db, "Electronics", "electronics")
    clothing = add_category(db, "Clothing", "clothing")

    headphones = add_product(db, "Wireless Headphones", 199.99, 10, electronics,
                             "Premium noise-cancelling wireless headphones",
                             imageUrl="https://example.com/headphones.jpg")
    stand = add_product(db, "Desk Stand", 24.99, 5, electronics, "Holds your HEADphones upright")
    headband = add_product(db, "Headband Sport", 9.99, 3, clothing, "Sweat-wicking band")
    speaker = add_product(db, "Bluetooth Speaker", 59.5, 0, electronics, "Portable speaker")

    black = add_variant(db, headphones, stock=4, sku="WH-BLK", color="Black", size="M")
    gold = add_variant(db, headphones, stock=2, price=249.99, sku="WH-GLD", color="Gold",
                       imageUrl="https://example.com/gold.jpg")

    add_image(db, headphones, "https://example.com/side.jpg", order=1)
    add_image(db, headphones, "https://example.com/front.jpg", order=0, is_primary=True)

    for value in (5, 4, 3):
        add_rating(db, headphones, value)

    return {
        "electronics": electronics,
        "clothing": clothing,
        "headphones": headphones,
        "stand": stand,
        "headband": headband,
        "speaker": speaker,
        "black": black,
        "gold": gold,
    }


@pytest.fixture
def client(db, catalog_data):
    app = create_app(Settings(), db=db)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def empty_client(db):
    app = create_app(Settings(), db=db)
    with TestClient(app) as c:
        yield c
