# api/rate_limit.py
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

load_dotenv()
IMPORT_RATE_LIMIT = os.getenv("IMPORT_RATE_LIMIT", "30/hour")

limiter = Limiter(key_func=get_remote_address)


def register_rate_limit(app: FastAPI):
    """
    Attach the slowapi limiter to the app and answer 429 when it trips.

    Only the import endpoints are decorated; each import makes an outbound
    request to a third-party feed host.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
