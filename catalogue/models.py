# catalogue/models.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


class CamelModel(BaseModel):
    # snake_case in Python and Mongo, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Product(CamelModel):
    id: str = Field(..., description="Feed-provided id or feed-{index}")
    title: str
    price: Optional[float] = None
    currency: Optional[str] = None  # 3-letter, upper-case
    brand: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    url: str
    image: Optional[str] = None
    source_feed: Optional[str] = None
    imported_at: Optional[datetime] = None


class Feed(CamelModel):
    url: str
    created_at: datetime


class ImportResult(CamelModel):
    feed_url: str
    count: int
    products: List[Product]


class QueryResult(CamelModel):
    updated_at: datetime
    count: int
    filters: dict
    products: List[Product]
