# ingest/pipeline.py
import logging

from catalogue.models import ImportResult
from .errors import PersistenceError, PipelineError, StoreUnavailableError
from .extractor import pick_items
from .mapper import map_items
from .xml_tree import parse_xml

logger = logging.getLogger("ingest")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
logger.addHandler(handler)


async def run_import(feed_url, store, fetcher):
    """
    Import one feed into the catalogue.

    Fetches, parses and maps the feed, then upserts the products one by one
    in feed order and finally registers the feed url.

    Args:
        feed_url (str): Feed to import
        store (CatalogueStore): Durable catalogue store
        fetcher (FeedFetcher): HTTP fetcher

    Returns:
        ImportResult: feed_url, count and the products written

    Raises:
        FetchError, TransportError: Feed could not be retrieved
        ParseError: Body is not well-formed XML
        StoreUnavailableError: No durable store configured
        PipelineError: A write failed; ``committed`` products were already
            stored and stay stored

    Note:
        Items missing a title or link are dropped, not reported. Two items
        with the same id both get upserted in order, so the later one wins.
    """
    if not store.durable:
        raise StoreUnavailableError("Import requires MONGO_URI to be configured")

    body = await fetcher.fetch(feed_url)
    tree = parse_xml(body)
    items = pick_items(tree)
    products = map_items(items)
    dropped = len(items) - len(products)
    if dropped:
        logger.info(f"Dropped {dropped} of {len(items)} items without title or link")

    stored = []
    for product in products:
        try:
            stored.append(await store.upsert_product(product, feed_url))
        except PersistenceError as e:
            logger.error(
                f"Import of {feed_url} aborted, {len(stored)} products already written: {e}"
            )
            raise PipelineError(feed_url, len(stored), e) from e

    try:
        await store.register_feed(feed_url)
    except PersistenceError as e:
        logger.error(f"Registering feed {feed_url} failed: {e}")
        raise PipelineError(feed_url, len(stored), e) from e

    logger.info(f"Imported {len(stored)} products from {feed_url}")
    return ImportResult(feed_url=feed_url, count=len(stored), products=stored)
