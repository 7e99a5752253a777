# tests/conftest.py
import sys
import os

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT_DIR)

import re
from datetime import datetime, timezone
from typing import Any, Dict, List

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from pymongo.errors import AutoReconnect

from api.main import app, get_fetcher
from api.rate_limit import limiter
from catalogue.store import MongoCatalogueStore, get_store
from ingest.fetcher import FeedFetcher


def _match_value(docv, cond):
    if isinstance(cond, dict):
        if "$regex" in cond:
            flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
            return isinstance(docv, str) and re.search(cond["$regex"], docv, flags) is not None
        if docv is None:
            return False
        if "$gte" in cond and docv < cond["$gte"]:
            return False
        if "$lte" in cond and docv > cond["$lte"]:
            return False
        return True
    if isinstance(docv, list):
        return cond in docv
    return docv == cond


def matches_query(doc, q):
    """
    Evaluate the subset of MongoDB query syntax the catalogue uses.

    Supported:
        - Exact match, with array membership when the stored value is a list
        - {"$regex": ..., "$options": "i"}
        - {"$gte": x, "$lte": y} (documents missing the field never match)
        - Top-level {"$or": [...]}
    """
    for k, v in (q or {}).items():
        if k == "$or":
            if not any(matches_query(doc, sub) for sub in v):
                return False
        elif not _match_value(doc.get(k), v):
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = list(docs)
        self._limit = None

    def sort(self, order):
        """Sort on the first (field, direction) pair only."""
        field, direction = order[0]
        self._docs.sort(key=lambda d: d.get(field), reverse=(direction < 0))
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    async def to_list(self, length=None):
        end = self._limit
        if length is not None:
            end = length if end is None else min(end, length)
        return [dict(d) for d in self._docs[:end]]


class FakeCollection:
    """
    In-memory stand-in for a Motor collection.

    Args:
        docs (list, optional): Initial documents, each with an "_id"
        fail_on_write (int, optional): Zero-based index of the update_one
            call that raises AutoReconnect, to simulate the store going away
            part-way through an import
    """

    def __init__(self, docs=None, fail_on_write=None):
        self.docs = [dict(d) for d in (docs or [])]
        self.fail_on_write = fail_on_write
        self.writes = 0

    async def find_one(self, q):
        for d in self.docs:
            if matches_query(d, q):
                return dict(d)
        return None

    def find(self, q=None):
        return FakeCursor([d for d in self.docs if matches_query(d, q)])

    async def update_one(self, q, u, upsert=False):
        """
        Apply $set / $setOnInsert to the first matching document.

        With upsert=True a missing document is created from the equality
        fields of the query plus both update operators.
        """
        if self.fail_on_write is not None and self.writes == self.fail_on_write:
            raise AutoReconnect("connection lost")
        self.writes += 1

        for d in self.docs:
            if matches_query(d, q):
                d.update(u.get("$set", {}))
                return {"matched_count": 1, "upserted_id": None}
        if not upsert:
            return {"matched_count": 0, "upserted_id": None}
        doc = {k: v for k, v in q.items() if not k.startswith("$")}
        doc.update(u.get("$setOnInsert", {}))
        doc.update(u.get("$set", {}))
        self.docs.append(doc)
        return {"matched_count": 0, "upserted_id": doc["_id"]}

    async def count_documents(self, q=None):
        return len([d for d in self.docs if matches_query(d, q)])


class FakeDB:
    def __init__(self, products=None, feeds=None, fail_on_write=None):
        self.products = FakeCollection(products, fail_on_write=fail_on_write)
        self.feeds = FakeCollection(feeds)


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:g="http://base.google.com/ns/1.0">
  <channel>
    <title>Green Goods</title>
    <link>https://shop.example</link>
    <item>
      <g:id>SKU-1</g:id>
      <title>Recycled cotton tee</title>
      <link>https://shop.example/p/1</link>
      <g:price>19.99 EUR</g:price>
      <g:brand>Loop</g:brand>
      <g:image_link>https://shop.example/img/1.jpg</g:image_link>
    </item>
    <item>
      <g:id>SKU-2</g:id>
      <title>Organic wool beanie</title>
      <link>https://shop.example/p/2</link>
      <g:price>free</g:price>
      <g:brand>Handmade by Ana</g:brand>
      <g:additional_image_link>https://shop.example/img/2b.jpg</g:additional_image_link>
    </item>
    <item>
      <g:id>SKU-3</g:id>
      <link>https://shop.example/p/3</link>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def sample_products():
    """
    Product documents as MongoCatalogueStore stores them.

    - p1 "Upcycled denim tote bag": EcoStitch, 24.99 EUR, oldest import
    - p2 "Recycled glass water bottle": GreenSip, 18.5 EUR
    - p3 "Organic cotton socks": GreenSip, no price, newest import
    """
    return [
        {
            "_id": "p1",
            "title": "Upcycled denim tote bag",
            "price": 24.99,
            "currency": "EUR",
            "brand": "EcoStitch",
            "tags": ["Upcycled", "Handmade"],
            "url": "https://example.com/product/p1",
            "image": None,
            "source_feed": "https://feeds.example/a.xml",
            "imported_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        },
        {
            "_id": "p2",
            "title": "Recycled glass water bottle",
            "price": 18.5,
            "currency": "EUR",
            "brand": "GreenSip",
            "tags": ["Recycled"],
            "url": "https://example.com/product/p2",
            "image": None,
            "source_feed": "https://feeds.example/a.xml",
            "imported_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
        },
        {
            "_id": "p3",
            "title": "Organic cotton socks",
            "price": None,
            "currency": None,
            "brand": "GreenSip",
            "tags": ["Organic"],
            "url": "https://example.com/product/p3",
            "image": None,
            "source_feed": "https://feeds.example/b.xml",
            "imported_at": datetime(2025, 1, 3, tzinfo=timezone.utc),
        },
    ]


@pytest.fixture
def fake_db(sample_products):
    return FakeDB(
        products=sample_products,
        feeds=[
            {
                "_id": "https://feeds.example/a.xml",
                "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
            }
        ],
    )


@pytest.fixture
def mongo_store(fake_db):
    return MongoCatalogueStore(fake_db)


@pytest.fixture
def empty_store():
    return MongoCatalogueStore(FakeDB())


@pytest.fixture
async def make_fetcher():
    """
    Build FeedFetchers that answer from a dict instead of the network.

    Each route maps a URL to (status, body[, headers]) with a str or bytes
    body, or to an exception instance to raise. Unknown URLs answer 404. Every request is recorded in
    ``make_fetcher.requests``.
    """
    fetchers = []
    requests = []

    def factory(routes):
        def handler(request: httpx.Request):
            requests.append(request)
            answer = routes.get(str(request.url))
            if answer is None:
                return httpx.Response(404)
            if isinstance(answer, Exception):
                raise answer
            status, body = answer[0], answer[1]
            headers = answer[2] if len(answer) > 2 else {}
            if isinstance(body, bytes):
                return httpx.Response(status, content=body, headers=headers)
            return httpx.Response(status, text=body, headers=headers)

        fetcher = FeedFetcher(transport=httpx.MockTransport(handler))
        fetchers.append(fetcher)
        return fetcher

    factory.requests = requests
    yield factory
    for f in fetchers:
        await f.close()


@pytest.fixture
async def client(mongo_store, make_fetcher):
    """
    Async test client bound to the FastAPI app.

    Setup:
        - get_store is overridden to return the fake-Mongo backed store
        - get_fetcher is overridden with a MockTransport fetcher answering
          RSS_FEED at https://feeds.example/rss.xml
        - The rate limiter storage is reset between tests

    Teardown:
        - Clears all dependency overrides
    """
    fetcher = make_fetcher({"https://feeds.example/rss.xml": (200, RSS_FEED)})

    app.dependency_overrides[get_store] = lambda: mongo_store
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
