# catalogue/sample.py
from datetime import datetime, timezone

from .models import Product

# Served when no MongoDB is configured. Never written to.
SAMPLE_IMPORTED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)

SAMPLE_PRODUCTS = (
    Product(
        id="p1",
        title="Upcycled denim tote bag",
        price=24.99,
        currency="EUR",
        brand="EcoStitch",
        tags=["Upcycled", "Handmade"],
        url="https://example.com/product/p1",
        image="https://via.placeholder.com/600x600.png?text=Upcycled+Tote",
        imported_at=SAMPLE_IMPORTED_AT,
    ),
    Product(
        id="p2",
        title="Recycled glass water bottle",
        price=18.5,
        currency="EUR",
        brand="GreenSip",
        tags=["Recycled"],
        url="https://example.com/product/p2",
        image="https://via.placeholder.com/600x600.png?text=Recycled+Bottle",
        imported_at=SAMPLE_IMPORTED_AT,
    ),
)
