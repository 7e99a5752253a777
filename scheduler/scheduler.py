# scheduler/scheduler.py
import asyncio
import os
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from dotenv import load_dotenv
from catalogue.errors import CatalogueError
from catalogue.store import get_store
from ingest.errors import FeedImportError
from ingest.fetcher import FeedFetcher
from ingest.pipeline import run_import

load_dotenv()
REFRESH_INTERVAL_MINUTES = int(os.getenv("REFRESH_INTERVAL_MINUTES", "60"))

logger = logging.getLogger("scheduler")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
logger.addHandler(handler)


async def refresh_feeds(store=None, fetcher=None):
    """
    Re-import every registered feed, one after another.

    Args:
        store (CatalogueStore, optional): Defaults to get_store()
        fetcher (FeedFetcher, optional): Defaults to a fresh FeedFetcher,
            closed when the refresh ends

    Returns:
        dict: feed url -> imported product count, or the error text for
            feeds whose import failed

    Note:
        A failing feed is logged and skipped; it does not stop the others
        and is not retried until the next scheduled run.
    """
    store = store or get_store()
    if not store.durable:
        logger.info("No durable store configured, skipping feed refresh")
        return {}

    owns_fetcher = fetcher is None
    fetcher = fetcher or FeedFetcher()
    outcome = {}
    try:
        for feed in await store.list_feeds():
            try:
                result = await run_import(feed.url, store, fetcher)
                outcome[feed.url] = result.count
            except (FeedImportError, CatalogueError) as e:
                logger.warning(f"Refresh of {feed.url} failed: {e}")
                outcome[feed.url] = str(e)
    finally:
        if owns_fetcher:
            await fetcher.close()
    logger.info(f"Refreshed {len(outcome)} feeds")
    return outcome


async def async_main():
    """
    Run refresh_feeds() every REFRESH_INTERVAL_MINUTES until interrupted.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        refresh_feeds,
        "interval",
        minutes=REFRESH_INTERVAL_MINUTES,
        id="refresh_feeds",
    )

    scheduler.start()
    logger.info(f"Scheduler started (every {REFRESH_INTERVAL_MINUTES} min)")
    await asyncio.Event().wait()


if __name__ == "__main__":
    asyncio.run(async_main())
