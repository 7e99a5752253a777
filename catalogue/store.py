# catalogue/store.py
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from .errors import PersistenceError, StoreUnavailableError
from .models import Feed, Product
from .query import build_mongo_query, matches
from .sample import SAMPLE_PRODUCTS

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI")
MONGO_DB = os.getenv("MONGO_DB", "catalogue")

logger = logging.getLogger("catalogue")
logger.setLevel(logging.INFO)

_store = None


def product_to_doc(product, source_feed, imported_at):
    doc = product.model_dump(exclude={"id"})
    doc["_id"] = product.id
    doc["source_feed"] = source_feed
    doc["imported_at"] = imported_at
    return doc


def doc_to_product(doc):
    data = {k: v for k, v in doc.items() if k != "_id"}
    return Product(id=str(doc["_id"]), **data)


class CatalogueStore(ABC):
    """Capability interface the import pipeline and query engine talk to."""

    durable = False

    @abstractmethod
    async def upsert_product(self, product, source_feed):
        ...

    @abstractmethod
    async def register_feed(self, url):
        ...

    @abstractmethod
    async def query_products(self, filters, limit):
        ...

    @abstractmethod
    async def list_feeds(self):
        ...


class MongoCatalogueStore(CatalogueStore):
    durable = True

    def __init__(self, db):
        self.db = db

    async def upsert_product(self, product, source_feed):
        """
        Insert or fully overwrite a product by id.

        Every field goes into $set, so optional fields missing from the new
        import overwrite old values with None instead of being merged.

        Returns:
            Product: The stored product, with source_feed and imported_at set

        Raises:
            PersistenceError: On any MongoDB failure
        """
        now = datetime.now(timezone.utc)
        doc = product_to_doc(product, source_feed, now)
        try:
            await self.db.products.update_one(
                {"_id": doc["_id"]}, {"$set": doc}, upsert=True
            )
        except PyMongoError as e:
            raise PersistenceError(f"Upsert of product {product.id} failed: {e}") from e
        return product.model_copy(update={"source_feed": source_feed, "imported_at": now})

    async def register_feed(self, url):
        """Record a feed url once; later calls leave created_at untouched."""
        try:
            await self.db.feeds.update_one(
                {"_id": url},
                {"$setOnInsert": {"created_at": datetime.now(timezone.utc)}},
                upsert=True,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Registering feed {url} failed: {e}") from e

    async def query_products(self, filters, limit):
        q = build_mongo_query(filters)
        try:
            cursor = self.db.products.find(q).sort([("imported_at", -1)]).limit(limit)
            docs = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise PersistenceError(f"Product query failed: {e}") from e
        return [doc_to_product(d) for d in docs]

    async def list_feeds(self):
        try:
            docs = await self.db.feeds.find({}).sort([("created_at", 1)]).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Feed listing failed: {e}") from e
        return [Feed(url=d["_id"], created_at=d["created_at"]) for d in docs]


class MemoryCatalogueStore(CatalogueStore):
    """
    Read-only fallback used when MONGO_URI is not set.

    Serves a fixed sample set so the query side has something to return.
    Imports are refused.
    """

    def __init__(self, products=SAMPLE_PRODUCTS):
        self.products = tuple(products)

    async def upsert_product(self, product, source_feed):
        raise StoreUnavailableError("Import requires MONGO_URI to be configured")

    async def register_feed(self, url):
        raise StoreUnavailableError("Import requires MONGO_URI to be configured")

    async def query_products(self, filters, limit):
        # the sample set is small and fixed, so no cap is applied
        found = [p for p in self.products if matches(p, filters)]
        found.sort(key=lambda p: p.imported_at, reverse=True)
        return found

    async def list_feeds(self):
        return []


def get_store():
    """
    Return the process-wide catalogue store, choosing it on first call.

    MongoDB when MONGO_URI is configured, otherwise the in-memory sample.
    """
    global _store
    if _store is None:
        if MONGO_URI:
            client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
            _store = MongoCatalogueStore(client[MONGO_DB])
            logger.info(f"Using MongoDB catalogue store (db={MONGO_DB})")
        else:
            _store = MemoryCatalogueStore()
            logger.info("MONGO_URI not set, serving read-only sample catalogue")
    return _store
