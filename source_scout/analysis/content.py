"""source_scout.analysis.content: категории контента и безопасный разбор тел ответов.

Every parser here returns ``None`` instead of raising: a body that cannot be
parsed simply does not become a detected API.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Literal, Optional

from bs4 import BeautifulSoup
from lxml import etree

ContentCategory = Literal["json", "xml", "html", "text", "unknown"]

ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"
HTML_EXCERPT_LIMIT = 1000
TEXT_EXCERPT_LIMIT = 500
ELLIPSIS = "..."
# same nesting limit libxml2 applies to XML documents
MAX_JSON_DEPTH = 256

_NUMBER_RE = re.compile(r"^-?(0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?$")
_WS_RE = re.compile(r"\s+")
_GRAPHQL_URL_MARKERS = ("/graphql", "/gql")


def content_category(content_type: str) -> ContentCategory:
    """Coarse category of a MIME type; first match wins."""
    ct = content_type.lower()
    if "json" in ct:
        return "json"
    if "xml" in ct:
        return "xml"
    if "html" in ct:
        return "html"
    if "text" in ct:
        return "text"
    return "unknown"


def _children(value: Any) -> List[Any]:
    if isinstance(value, dict):
        return list(value.values())
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def nesting_exceeds(data: Any, limit: int = MAX_JSON_DEPTH) -> bool:
    """True when containers in *data* nest deeper than *limit* levels."""
    stack = [(data, 0)]
    while stack:
        value, depth = stack.pop()
        children = _children(value)
        if not children:
            continue
        if depth >= limit:
            return True
        stack.extend((child, depth + 1) for child in children)
    return False


def safe_json_parse(text: Optional[str], max_depth: int = MAX_JSON_DEPTH) -> Optional[Any]:
    """Parse JSON text; ``None`` on failure (and for a literal ``null``).

    Documents nested deeper than *max_depth* count as failures.
    """
    if text is None:
        return None
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        return None
    if nesting_exceeds(data, max_depth):
        return None
    return data


def _scalar(text: str) -> Any:
    value = text.strip()
    if _NUMBER_RE.match(value):
        return float(value) if any(c in value for c in ".eE") else int(value)
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return value


def _local_name(tag: str) -> str:
    return etree.QName(tag).localname if tag.startswith("{") else tag


def _element_to_value(element: etree._Element) -> Any:
    node: Dict[str, Any] = {}
    for name, value in element.attrib.items():
        node[ATTRIBUTE_PREFIX + _local_name(name)] = _scalar(value)

    for child in element:
        if not isinstance(child.tag, str):
            # comments and processing instructions
            continue
        key = _local_name(child.tag)
        value = _element_to_value(child)
        if key in node:
            existing = node[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[key] = [existing, value]
        else:
            node[key] = value

    text = (element.text or "").strip()
    if not node:
        return _scalar(text) if text else ""
    if text:
        node[TEXT_KEY] = _scalar(text)
    return node


def xml_to_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Convert an XML document to a nested dict ``{root_tag: ...}``.

    Attributes are keyed with ``@_``, mixed text goes under ``#text``, repeated
    child tags become lists and numeric/boolean text is converted.
    """
    if not text or not text.strip():
        return None
    parser = etree.XMLParser(ns_clean=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(text.strip().encode("utf-8"), parser=parser)
    except (etree.XMLSyntaxError, ValueError):
        return None
    if root is None:
        return None
    return {_local_name(root.tag): _element_to_value(root)}


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def summarize_html(text: str) -> Dict[str, str]:
    """Raw excerpt plus visible text of an HTML fragment."""
    soup = BeautifulSoup(text, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    visible = _WS_RE.sub(" ", soup.get_text(" ")).strip()
    return {
        "html": _truncate(text, HTML_EXCERPT_LIMIT),
        "text_content": _truncate(visible, TEXT_EXCERPT_LIMIT),
    }


def is_graphql_endpoint(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in _GRAPHQL_URL_MARKERS)


def is_graphql_response(data: Any) -> bool:
    if isinstance(data, dict) and ("data" in data or "errors" in data):
        return True
    if not isinstance(data, (dict, list)):
        return False
    stack = [data]
    while stack:
        value = stack.pop()
        if isinstance(value, dict):
            if any("__typename" in str(key) for key in value):
                return True
            stack.extend(value.values())
        elif isinstance(value, (list, tuple)):
            stack.extend(value)
        elif isinstance(value, str) and "__typename" in value:
            return True
    return False


def is_graphql(url: str, data: Any) -> bool:
    """A JSON exchange is GraphQL by endpoint path or by response shape."""
    return is_graphql_endpoint(url) or is_graphql_response(data)


__all__ = [
    "ContentCategory",
    "content_category",
    "nesting_exceeds",
    "safe_json_parse",
    "xml_to_json",
    "summarize_html",
    "is_graphql",
    "is_graphql_endpoint",
    "is_graphql_response",
]
