# ingest/fetcher.py
import logging
import os

import httpx
from dotenv import load_dotenv

from .errors import FetchError, TransportError

load_dotenv()
FEED_TIMEOUT = float(os.getenv("FEED_TIMEOUT", "30"))
FEED_USER_AGENT = os.getenv(
    "FEED_USER_AGENT", "sustainable-catalogue-importer/1.0 (+feed import)"
)

ACCEPT_XML = (
    "application/xml, text/xml, application/rss+xml, "
    "application/atom+xml;q=0.9, */*;q=0.8"
)

logger = logging.getLogger("ingest")


class FeedFetcher:
    def __init__(self, timeout=FEED_TIMEOUT, transport=None):
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": FEED_USER_AGENT, "Accept": ACCEPT_XML},
            transport=transport,
        )

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def fetch(self, url):
        """
        Download a feed body.

        Args:
            url (str): Feed URL; redirects are followed

        Returns:
            bytes: Raw response body; the XML declaration decides the
                encoding when it is parsed

        Raises:
            FetchError: On a non-2xx final response (status and reason only,
                the body is discarded)
            TransportError: On DNS, connection or timeout failures

        Note:
            Single attempt. Failures are reported to the caller, not retried.
        """
        try:
            resp = await self.client.get(url)
        except httpx.TransportError as e:
            logger.warning(f"Transport error fetching {url}: {e!r}")
            raise TransportError(url, repr(e)) from e

        if not resp.is_success:
            logger.warning(f"Feed {url} answered {resp.status_code} {resp.reason_phrase}")
            raise FetchError(url, resp.status_code, resp.reason_phrase)

        logger.info(f"Fetched {url} ({len(resp.content)} bytes)")
        return resp.content
