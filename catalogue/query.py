# catalogue/query.py
import math
import re
from datetime import datetime, timezone
from typing import Optional

from .models import CamelModel, QueryResult

MAX_RESULTS = 200


class QueryFilters(CamelModel):
    q: Optional[str] = None
    brand: Optional[str] = None
    tag: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


def _clean(value, lower=False):
    if value is None:
        return None
    value = str(value).strip()
    if lower:
        value = value.lower()
    return value or None


def _bound(value):
    """Parse a price bound; anything that is not a finite number is unset."""
    value = _clean(value)
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_filters(q=None, brand=None, tag=None, min_price=None, max_price=None):
    """
    Build QueryFilters from raw request values.

    Blank or unparsable values are treated as not given. This never raises,
    so a bad filter from the client just widens the result.
    """
    return QueryFilters(
        q=_clean(q, lower=True),
        brand=_clean(brand, lower=True),
        tag=_clean(tag),
        min_price=_bound(min_price),
        max_price=_bound(max_price),
    )


def _contains(needle):
    return {"$regex": re.escape(needle), "$options": "i"}


def build_mongo_query(filters):
    """
    Translate QueryFilters into a MongoDB filter document.

    Args:
        filters (QueryFilters): Effective filters

    Returns:
        dict: Filter for db.products.find(); empty when nothing is set

    Query Building:
        - q matches title OR brand, case-insensitive substring
        - brand is a case-insensitive substring
        - tag is exact membership in the tags array
        - price bounds are inclusive; products without a price never match
    """
    q = {}

    if filters.q:
        q["$or"] = [{"title": _contains(filters.q)}, {"brand": _contains(filters.q)}]

    if filters.brand:
        q["brand"] = _contains(filters.brand)

    if filters.tag:
        q["tags"] = filters.tag

    if filters.min_price is not None or filters.max_price is not None:
        psub = {}
        if filters.min_price is not None:
            psub["$gte"] = filters.min_price
        if filters.max_price is not None:
            psub["$lte"] = filters.max_price
        q["price"] = psub

    return q


def matches(product, filters):
    """Same semantics as build_mongo_query(), evaluated on a Product."""
    title = (product.title or "").lower()
    brand = (product.brand or "").lower()

    if filters.q and filters.q not in title and filters.q not in brand:
        return False
    if filters.brand and filters.brand not in brand:
        return False
    if filters.tag and filters.tag not in product.tags:
        return False
    if filters.min_price is not None:
        if product.price is None or product.price < filters.min_price:
            return False
    if filters.max_price is not None:
        if product.price is None or product.price > filters.max_price:
            return False
    return True


async def query_products(store, filters):
    """
    Run a filtered catalogue read and wrap it for the client.

    Returns:
        QueryResult: products newest-import first, plus the effective
            filters echoed back

    Raises:
        PersistenceError: If the durable store cannot be read
    """
    products = await store.query_products(filters, limit=MAX_RESULTS)
    return QueryResult(
        updated_at=datetime.now(timezone.utc),
        count=len(products),
        filters=filters.model_dump(by_alias=True),
        products=products,
    )
