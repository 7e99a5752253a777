# catalogue/errors.py


class CatalogueError(Exception):
    """Base class for catalogue store failures."""


class PersistenceError(CatalogueError):
    """The durable store rejected a write or read."""


class StoreUnavailableError(CatalogueError):
    """No durable store is configured, so imports cannot run."""
