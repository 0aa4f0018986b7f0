"""
XML helpers for service responses.

Every response body is parsed here. Lookups that may match one or many
elements always go through ``find_all`` so callers never have to care
whether the service sent a single child or a list of them.
"""

import xml.etree.ElementTree as ET
from datetime import datetime
from email.utils import parsedate_to_datetime

from ..common import ProtocolError

_XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
    "&": "&amp;",
}


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for element in root.iter():
        if isinstance(element.tag, str) and element.tag.startswith("{"):
            element.tag = element.tag.split("}", 1)[1]
    return root


def parse_xml(content: str | bytes | None, strict: bool = True) -> ET.Element | None:
    """
    Parse a response body into an element tree.

    Args:
        content: Raw response body
        strict: Raise ProtocolError on empty or malformed input instead of
            returning None

    Returns:
        Root element with namespace prefixes removed from every tag
    """
    if content is None or not content.strip():
        if strict:
            raise ProtocolError("empty xml document")
        return None

    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        if strict:
            raise ProtocolError(f"malformed xml document: {e}") from e
        return None

    return _strip_namespaces(root)


def expect_root(content: str | bytes | None, tag: str) -> ET.Element:
    """Parse a result document and check its root element."""
    root = parse_xml(content)
    if root.tag != tag:
        raise ProtocolError(f"unexpected xml root <{root.tag}>, expected <{tag}>")
    return root


def find_all(node: ET.Element | None, path: str) -> list[ET.Element]:
    """Return every element matching ``path`` as a list, possibly empty."""
    if node is None:
        return []
    return list(node.findall(path))


def find_text(node: ET.Element | None, path: str, default: str | None = None) -> str | None:
    if node is None:
        return default
    element = node.find(path)
    if element is None or element.text is None:
        return default
    return element.text


def find_int(node: ET.Element | None, path: str, default: int | None = None) -> int | None:
    value = find_text(node, path)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def find_bool(node: ET.Element | None, path: str, default: bool | None = None) -> bool | None:
    value = find_text(node, path)
    if value is None:
        return default
    return value.strip().lower() == "true"


def find_datetime(node: ET.Element | None, path: str) -> datetime | None:
    return parse_datetime(find_text(node, path))


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 or RFC 1123 timestamp as sent by the service."""
    if not value:
        return None

    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def escape_xml(s: str) -> str:
    """Escape the five XML special characters of a text node."""
    return "".join(_XML_ESCAPES.get(c, c) for c in s)
