# api/main.py
from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import os
from dotenv import load_dotenv
from .rate_limit import register_rate_limit, limiter, IMPORT_RATE_LIMIT
from catalogue.query import parse_filters, query_products
from catalogue.store import get_store
from ingest.errors import (
    FetchError,
    ParseError,
    PersistenceError,
    PipelineError,
    StoreUnavailableError,
    TransportError,
)
from ingest.fetcher import FeedFetcher
from ingest.pipeline import run_import
import logging

load_dotenv()
API_PORT = int(os.getenv("API_PORT", "4000"))

IMPORT_EXAMPLE = "/import/google?url=https://example.com/google-shopping.xml"

app = FastAPI(title="Sustainable Catalogue API", version="1.0")

register_rate_limit(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

logger = logging.getLogger("api")
logger.setLevel(logging.INFO)


async def get_fetcher():
    """Per-request feed fetcher, closed once the response is sent."""
    fetcher = FeedFetcher()
    try:
        yield fetcher
    finally:
        await fetcher.close()


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            {"error": "Not found", "path": request.url.path}, status_code=404
        )
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.get("/", response_class=PlainTextResponse)
@app.get("/health", response_class=PlainTextResponse)
async def health():
    return "Backend is running\n"


@app.get("/products")
async def list_products(
    q: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    store=Depends(get_store),
):
    """
    List catalogue products matching optional filters.

    Args:
        q (str, optional): Case-insensitive substring of title or brand
        brand (str, optional): Case-insensitive substring of brand
        tag (str, optional): Exact sustainability tag, e.g. "Recycled"
        min_price (str, optional): Inclusive lower price bound
        max_price (str, optional): Inclusive upper price bound

    Returns:
        JSONResponse: updatedAt, count, the effective filters and products,
            newest import first (at most 200 from MongoDB)

    Note:
        Price bounds are taken as raw strings; values that are not numbers
        are ignored rather than rejected with a 422.
    """
    filters = parse_filters(q, brand, tag, min_price, max_price)
    try:
        result = await query_products(store, filters)
    except PersistenceError as e:
        logger.error(f"Product query failed: {e}")
        return JSONResponse({"error": "Catalogue unavailable"}, status_code=503)
    return JSONResponse(result.model_dump(mode="json", by_alias=True))


def import_error_response(feed_url, exc):
    """
    Map an aborted import to an HTTP error payload.

    Status Mapping:
        - FetchError -> 502, with the upstream status and reason
        - TransportError -> 504
        - ParseError -> 422
        - StoreUnavailableError -> 503
        - PipelineError -> 500, with the number of products already written
    """
    body = {"error": str(exc), "feedUrl": feed_url, "kind": type(exc).__name__}
    if isinstance(exc, FetchError):
        body.update(status=exc.status, reason=exc.reason)
        return JSONResponse(body, status_code=502)
    if isinstance(exc, TransportError):
        return JSONResponse(body, status_code=504)
    if isinstance(exc, ParseError):
        return JSONResponse(body, status_code=422)
    if isinstance(exc, StoreUnavailableError):
        return JSONResponse(body, status_code=503)
    body["committed"] = exc.committed
    return JSONResponse(body, status_code=500)


@app.api_route("/import", methods=["GET", "POST"])
@app.api_route("/import/google", methods=["GET", "POST"])
@limiter.limit(IMPORT_RATE_LIMIT)
async def import_feed(
    request: Request,
    url: Optional[str] = Query(None),
    store=Depends(get_store),
    fetcher=Depends(get_fetcher),
):
    """
    Import an XML product feed into the catalogue.

    Args:
        request (Request): Required by the rate limiter
        url (str): Feed URL to import

    Returns:
        JSONResponse: feedUrl, count and the imported products, or an error
            payload (see import_error_response)
    """
    if not url or not url.strip():
        return JSONResponse(
            {"error": "Missing url parameter", "example": IMPORT_EXAMPLE},
            status_code=400,
        )
    feed_url = url.strip()
    try:
        result = await run_import(feed_url, store, fetcher)
    except (
        FetchError,
        TransportError,
        ParseError,
        StoreUnavailableError,
        PipelineError,
    ) as e:
        logger.warning(f"Import of {feed_url} failed: {e}")
        return import_error_response(feed_url, e)
    return JSONResponse(result.model_dump(mode="json", by_alias=True))


@app.get("/feeds")
async def list_feeds(store=Depends(get_store)):
    """Registered feed urls with the time each was first imported."""
    try:
        feeds = await store.list_feeds()
    except PersistenceError as e:
        logger.error(f"Feed listing failed: {e}")
        return JSONResponse({"error": "Catalogue unavailable"}, status_code=503)
    return {"results": [f.model_dump(mode="json", by_alias=True) for f in feeds]}


# Run uvicorn externally or here
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host="0.0.0.0", port=API_PORT, reload=True)
