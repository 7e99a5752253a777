# ingest/extractor.py
import logging

logger = logging.getLogger("ingest")

# Tried in order, first match wins.
ITEM_VARIANTS = (
    ("rss", ("channel", "item")),
    ("atom", ("feed", "entry")),
    ("products", ("products", "product")),
    ("productfeed", ("productfeed", "product")),
)


def _root_scope(tree):
    """
    Mapping the variant paths are resolved against.

    An RSS document parses to {"rss": {"channel": ...}}, so the "rss" wrapper
    is lifted; the other shapes already start at their root tag.
    """
    if not isinstance(tree, dict):
        return {}
    scope = dict(tree)
    rss = tree.get("rss")
    if isinstance(rss, dict) and "channel" in rss:
        scope.setdefault("channel", rss["channel"])
    return scope


_MISSING = object()


def _resolve(scope, path):
    node = scope
    for key in path:
        if isinstance(node, list):
            # e.g. several <channel> blocks: take the first one
            node = node[0] if node else None
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def pick_items(tree):
    """
    Locate the repeated product collection in a parsed feed.

    Args:
        tree (dict): Output of parse_xml()

    Returns:
        list: Raw item nodes, possibly empty

    Note:
        An unrecognized document is not an error, it just has no items.
    """
    scope = _root_scope(tree)
    for name, path in ITEM_VARIANTS:
        found = _resolve(scope, path)
        if found is _MISSING:
            continue
        if found is None:
            # a lone empty element, e.g. <item/>
            items = []
        else:
            items = found if isinstance(found, list) else [found]
        logger.info(f"Matched {name} feed layout with {len(items)} items")
        return items
    logger.info("No known feed layout matched, 0 items")
    return []
