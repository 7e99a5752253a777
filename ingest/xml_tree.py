# ingest/xml_tree.py
from lxml import etree

from .errors import ParseError

_parser = etree.XMLParser(
    recover=False,
    resolve_entities=False,
    no_network=True,
    remove_comments=True,
    remove_pis=True,
)


def literal_name(el):
    """
    Tag name as written in the document, e.g. "g:price".

    lxml resolves "g:price" to "{http://base.google.com/ns/1.0}price"; the
    prefix is put back so callers can look items up by their literal key.
    """
    qname = etree.QName(el)
    if el.prefix:
        return f"{el.prefix}:{qname.localname}"
    return qname.localname


def _attr_name(el, key):
    if not key.startswith("{"):
        return key
    qname = etree.QName(key)
    for prefix, uri in (el.nsmap or {}).items():
        if uri == qname.namespace and prefix:
            return f"{prefix}:{qname.localname}"
    return qname.localname


def _add(target, key, value):
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def element_to_node(el):
    text = (el.text or "").strip()
    children = [c for c in el if isinstance(c.tag, str)]
    if not el.attrib and not children:
        return text or None

    node = {}
    for key, value in el.attrib.items():
        node["@" + _attr_name(el, key)] = value
    for child in children:
        _add(node, literal_name(child), element_to_node(child))
    if text:
        node["#text"] = text
    return node


def parse_xml(text):
    """
    Parse raw XML into a tree of plain dicts, lists and strings.

    Args:
        text (bytes or str): Raw feed body. Bytes are decoded the way the
            XML declaration says; str is assumed to be UTF-8

    Returns:
        dict: One-key mapping {root_name: root_node}

    Raises:
        ParseError: If the body is empty or not well-formed XML

    Shape:
        - An element without attributes or children becomes its stripped
          text (None when empty)
        - Otherwise a dict: attributes as "@name", children by tag name,
          text as "#text"
        - Repeated sibling tags become a list; a single occurrence does not
        - Namespace prefixes are kept in keys ("g:price"), never resolved
    """
    if isinstance(text, str):
        # lxml refuses str input that carries an encoding declaration
        text = text.encode("utf-8")
    if not text or not text.strip():
        raise ParseError("Empty document")
    try:
        root = etree.fromstring(text, parser=_parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML: {e}") from e
    return {literal_name(root): element_to_node(root)}
