# ingest/pricing.py
import re

# "19.99 EUR" / " 5 usd " -- the whole string must match, ranges like
# "10-20 EUR" are rejected.
PRICE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s+([A-Za-z]{3})\s*$")


def parse_price(text):
    """
    Split a feed price string into an amount and a currency code.

    Args:
        text (str or None): Raw price value, e.g. "19.99 EUR"

    Returns:
        tuple: (amount, currency)
            - amount (float or None): Parsed numeric amount
            - currency (str or None): Upper-cased 3-letter code

    Note:
        Never raises. Anything that is not exactly "<number> <code>" yields
        (None, None).
    """
    if not text or not isinstance(text, str):
        return None, None
    m = PRICE_RE.match(text)
    if not m:
        return None, None
    return float(m.group(1)), m.group(2).upper()
