# ingest/errors.py
# re-exported: import runs raise these too
from catalogue.errors import PersistenceError, StoreUnavailableError  # noqa: F401


class FeedImportError(Exception):
    """Base class for failures that abort a whole import run."""


class FetchError(FeedImportError):
    """The feed source answered with a non-2xx status."""

    def __init__(self, url, status, reason):
        self.url = url
        self.status = status
        self.reason = reason
        super().__init__(f"Feed {url} returned {status} {reason}")


class TransportError(FeedImportError):
    """The feed source could not be reached (DNS, connect, timeout)."""

    def __init__(self, url, detail):
        self.url = url
        self.detail = detail
        super().__init__(f"Could not reach feed {url}: {detail}")


class ParseError(FeedImportError):
    """The fetched body is not well-formed XML."""


class PipelineError(FeedImportError):
    """
    A persistence failure part-way through an import run.

    Rows upserted before the failure stay in the store; ``committed`` tells
    the caller how many of them there are.
    """

    def __init__(self, feed_url, committed, cause):
        self.feed_url = feed_url
        self.committed = committed
        self.cause = cause
        super().__init__(
            f"Import of {feed_url} failed after {committed} products: {cause}"
        )
