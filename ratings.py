"""
Rating aggregation for products.

Two record shapes share the same math: ``rating`` documents (guest name and
optional review text) are aggregated at read time, ``review`` documents have
their aggregate persisted on the product whenever one is added.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple

from pymongo.database import Database

from database import now, parse_object_id

logger = logging.getLogger(__name__)

TENTH = Decimal("0.1")


class RatingSummary(NamedTuple):
    average: float
    count: int


def aggregate(records: Iterable[Mapping[str, Any]]) -> RatingSummary:
    """Mean of the ``rating`` values rounded half-up to one decimal place."""
    values = [int(r["rating"]) for r in records]
    if not values:
        return RatingSummary(0, 0)
    mean = Decimal(sum(values)) / Decimal(len(values))
    return RatingSummary(float(mean.quantize(TENTH, rounding=ROUND_HALF_UP)), len(values))


def rating_label(summary: RatingSummary) -> str:
    if summary.count == 0:
        return "No ratings"
    return f"{summary.average:.1f}"


def summaries_by_product(db: Database, product_ids: List[str]) -> Dict[str, RatingSummary]:
    grouped: Dict[str, list] = {pid: [] for pid in product_ids}
    if product_ids:
        for doc in db["rating"].find({"productId": {"$in": product_ids}}, {"productId": 1, "rating": 1}):
            grouped.setdefault(doc["productId"], []).append(doc)
    return {pid: aggregate(records) for pid, records in grouped.items()}


def apply_summary(product: Dict[str, Any], summary: RatingSummary) -> Dict[str, Any]:
    product["totalRatings"] = summary.count
    # keep a persisted review average when there are no ratings to derive one from
    if summary.count or not product.get("reviewCount"):
        product["averageRating"] = summary.average
    return product


def recompute_review_aggregate(db: Database, product_id: str) -> RatingSummary:
    summary = aggregate(db["review"].find({"productId": product_id}, {"rating": 1}))
    db["product"].update_one(
        {"_id": parse_object_id(product_id)},
        {"$set": {"averageRating": summary.average, "reviewCount": summary.count, "updatedAt": now()}},
    )
    logger.info("Review aggregate for product %s: %s over %d reviews", product_id, summary.average, summary.count)
    return summary
