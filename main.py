import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import catalog
import orders
from catalog import RelationSupport
from config import Settings, configure_logging
from database import connect, create_document, get_documents, now, parse_object_id, serialize_document
from migrations import seed_catalog
from ratings import aggregate, recompute_review_aggregate
from schemas import OrderRequest, Product, ProductPayload, Rating, Review

logger = logging.getLogger(__name__)

RATING_BOUNDS = {"greater_than_equal", "less_than_equal"}


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_relations(request: Request) -> RelationSupport:
    return request.app.state.relations


def _require_product(db: Database, product_id: str):
    oid = parse_object_id(product_id)
    doc = db["product"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Product not found")
    return doc


def _save_relations(request: Request, db: Database, product_id: str, payload: ProductPayload):
    if payload.variants is not None:
        catalog.replace_variants(db, product_id, payload.variants)
        request.app.state.relations |= RelationSupport.VARIANTS
    if payload.images is not None:
        catalog.replace_images(db, product_id, payload.images, payload.name)
        request.app.state.relations |= RelationSupport.IMAGES


def _check_skus(db: Database, payload: ProductPayload, product_id: Optional[str] = None):
    if payload.variants:
        conflicts = catalog.sku_conflicts(db, payload.variants, product_id)
        if conflicts:
            raise HTTPException(status_code=409, detail=f"SKU already in use: {', '.join(conflicts)}")


def _compensate(undo, *args):
    try:
        undo(*args)
    except Exception:
        logger.exception("Could not undo partial product write with %s", undo.__name__)


api = APIRouter(prefix="/api")


# ---------------------- Products ----------------------

@api.get("/products")
def list_products(q: Optional[str] = None, category: Optional[str] = None,
                  db: Database = Depends(get_db), relations: RelationSupport = Depends(get_relations)):
    try:
        return catalog.list_products(db, relations, search=q, category=category)
    except Exception:
        logger.exception("Failed to fetch products (q=%r, category=%r)", q, category)
        raise HTTPException(status_code=500, detail="Failed to fetch products")


@api.post("/products/seed")
def seed_products(db: Database = Depends(get_db)):
    """Create a small set of demo products if the collection is empty"""
    try:
        return seed_catalog(db)
    except Exception:
        logger.exception("Failed to seed products")
        raise HTTPException(status_code=500, detail="Failed to seed products")


@api.get("/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db), relations: RelationSupport = Depends(get_relations)):
    try:
        product = catalog.get_product(db, relations, product_id)
    except Exception:
        logger.exception("Failed to fetch product %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to fetch product")
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@api.post("/products", status_code=201)
def create_product(payload: ProductPayload, request: Request, db: Database = Depends(get_db)):
    _check_skus(db, payload)
    new_id = None
    try:
        product = Product(**payload.model_dump(exclude={"images", "variants"}))
        new_id = create_document(db, "product", product.model_dump(exclude_none=True))
        _save_relations(request, db, new_id, payload)
        return catalog.get_product(db, request.app.state.relations, new_id)
    except Exception:
        logger.exception("Failed to create product")
        if new_id:
            _compensate(catalog.delete_product, db, new_id)
        raise HTTPException(status_code=500, detail="Failed to create product")


@api.put("/products/{product_id}")
def update_product(product_id: str, payload: ProductPayload, request: Request, db: Database = Depends(get_db)):
    doc = _require_product(db, product_id)
    _check_skus(db, payload, product_id)
    snapshot = catalog.snapshot_product(db, product_id)
    try:
        fields = payload.model_dump(exclude={"images", "variants"})
        fields["updatedAt"] = now()
        db["product"].update_one({"_id": doc["_id"]}, {"$set": fields})
        _save_relations(request, db, product_id, payload)
        return catalog.get_product(db, request.app.state.relations, product_id)
    except Exception:
        logger.exception("Failed to update product %s", product_id)
        _compensate(catalog.restore_product, db, snapshot)
        raise HTTPException(status_code=500, detail="Failed to update product")


@api.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, db: Database = Depends(get_db)):
    try:
        deleted = catalog.delete_product(db, product_id)
    except Exception:
        logger.exception("Failed to delete product %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to delete product")
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return Response(status_code=204)


# ---------------------- Categories ----------------------

@api.get("/categories")
def list_categories(db: Database = Depends(get_db)):
    try:
        return catalog.list_categories(db)
    except Exception:
        logger.exception("Failed to fetch categories")
        raise HTTPException(status_code=500, detail="Failed to fetch categories")


# ---------------------- Orders ----------------------

@api.post("/orders", status_code=201)
def create_order(payload: OrderRequest, db: Database = Depends(get_db)):
    try:
        return orders.create_order(db, payload)
    except orders.InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except orders.OrderError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception:
        logger.exception("Failed to create order")
        raise HTTPException(status_code=500, detail="Failed to create order")


@api.get("/orders")
def list_orders(db: Database = Depends(get_db)):
    try:
        return orders.list_orders(db)
    except Exception:
        logger.exception("Failed to fetch orders")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")


@api.get("/orders/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    order = orders.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ---------------------- Ratings ----------------------

@api.post("/ratings", status_code=201)
def create_rating(payload: Rating, db: Database = Depends(get_db)):
    _require_product(db, payload.productId)
    try:
        rating_id = create_document(db, "rating", payload)
        return serialize_document(db["rating"].find_one({"_id": parse_object_id(rating_id)}))
    except Exception:
        logger.exception("Failed to create rating")
        raise HTTPException(status_code=500, detail="Failed to create rating")


@api.get("/ratings/product/{product_id}")
def list_ratings(product_id: str, db: Database = Depends(get_db)):
    try:
        ratings = get_documents(db, "rating", {"productId": product_id}, sort=[("createdAt", -1), ("_id", -1)])
        summary = aggregate(ratings)
        return {
            "ratings": [serialize_document(r) for r in ratings],
            "averageRating": summary.average,
            "totalRatings": summary.count,
        }
    except Exception:
        logger.exception("Failed to fetch ratings for %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to fetch ratings")


# ---------------------- Reviews ----------------------

@api.get("/reviews/product/{product_id}")
def list_reviews(product_id: str, db: Database = Depends(get_db)):
    try:
        reviews = get_documents(db, "review", {"productId": product_id}, sort=[("createdAt", -1), ("_id", -1)])
        return [serialize_document(r) for r in reviews]
    except Exception:
        logger.exception("Failed to fetch reviews for %s", product_id)
        raise HTTPException(status_code=500, detail="Failed to fetch reviews")


@api.post("/reviews", status_code=201)
def create_review(payload: Review, db: Database = Depends(get_db)):
    _require_product(db, payload.productId)
    try:
        review_id = create_document(db, "review", payload)
        recompute_review_aggregate(db, payload.productId)
        return serialize_document(db["review"].find_one({"_id": parse_object_id(review_id)}))
    except Exception:
        logger.exception("Failed to create review")
        raise HTTPException(status_code=500, detail="Failed to create review")


# ---------------------- App ----------------------

def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        database = db
        if database is None:
            client, database = connect(settings)
        app.state.db = database
        app.state.relations = catalog.detect_relations(database)
        try:
            yield
        finally:
            if client is not None:
                client.close()
                logger.info("MongoDB connection closed")

    app = FastAPI(title="Shop Catalog API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request data"
        if any(tuple(e["loc"][-1:]) == ("rating",) and e["type"] in RATING_BOUNDS for e in errors):
            message = "Rating must be between 1 and 5"
        return JSONResponse({"error": message, "details": jsonable_encoder(errors)}, status_code=400)

    @app.get("/")
    def read_root():
        return {"message": "Shop Catalog API running"}

    @app.get("/test")
    def test_database(request: Request):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
            "relations": None,
        }
        database = getattr(request.app.state, "db", None)
        if database is None:
            response["database"] = "⚠️  Available but not initialized"
            return response
        response["database_name"] = database.name
        response["connection_status"] = "Connected"
        response["relations"] = str(request.app.state.relations)
        try:
            response["collections"] = database.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        return response

    app.include_router(api)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = Settings.from_env()
    uvicorn.run(app, host=settings.host, port=settings.port)
