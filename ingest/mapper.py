# ingest/mapper.py
from catalogue.models import Product
from .pricing import parse_price
from .tags import classify_tags

ID_KEYS = ("g:id", "id")
BRAND_KEYS = ("g:brand", "brand")
IMAGE_KEYS = ("g:image_link", "g:additional_image_link", "image")
PRICE_KEYS = ("g:price", "price")


def text_of(value):
    """
    Flatten a parsed node to a string.

    Handles the shapes parse_xml() produces: plain text, {"#text": ...} when
    the element carried attributes, {"@href": ...} for Atom links, and lists
    of repeated elements (the first usable one wins).
    """
    if isinstance(value, list):
        for v in value:
            s = text_of(v)
            if s:
                return s
        return None
    if isinstance(value, dict):
        value = value.get("#text") or value.get("@href")
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def link_of(value):
    """
    Product URL from a "link" node.

    Atom entries can carry several links; the rel="alternate" one (or one
    without rel) is the product page, self/edit links point at the feed API.
    """
    if isinstance(value, list):
        for v in value:
            if not isinstance(v, dict) or v.get("@rel", "alternate") == "alternate":
                s = text_of(v)
                if s:
                    return s
    return text_of(value)


def first_text(node, keys):
    for k in keys:
        s = text_of(node.get(k))
        if s:
            return s
    return None


def map_item(node, index):
    """
    Map one raw feed item to a Product.

    Args:
        node (dict): Raw item from pick_items()
        index (int): Zero-based position in the extracted sequence, used for
            the synthesized id "feed-{index}" when the feed has none

    Returns:
        Product or None: None when title or link is missing
    """
    if not isinstance(node, dict):
        return None
    title = text_of(node.get("title"))
    url = link_of(node.get("link"))
    if not title or not url:
        return None

    brand = first_text(node, BRAND_KEYS)
    price, currency = parse_price(first_text(node, PRICE_KEYS))
    return Product(
        id=first_text(node, ID_KEYS) or f"feed-{index}",
        title=title,
        url=url,
        brand=brand,
        image=first_text(node, IMAGE_KEYS),
        price=price,
        currency=currency,
        tags=classify_tags(f"{title} {brand or ''}"),
    )


def map_items(nodes):
    """Map every raw item, dropping the ones without title or link."""
    products = []
    for index, node in enumerate(nodes):
        product = map_item(node, index)
        if product is not None:
            products.append(product)
    return products
