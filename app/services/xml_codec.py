from collections.abc import Mapping
from typing import Any

from lxml import etree

API_NAMESPACE = "http://schemas.nav.gov.hu/OSA/3.0/api"
COMMON_NAMESPACE = "http://schemas.nav.gov.hu/NTCA/1.0/common"

# Top-level request elements whose subtree lives in the common namespace.
_COMMON_ELEMENTS = frozenset({"header", "user"})

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append(parent: etree._Element, tag: str, value: Any, namespace: str) -> None:
    if isinstance(value, list):
        for item in value:
            _append(parent, tag, item, namespace)
        return
    element = etree.SubElement(parent, f"{{{namespace}}}{tag}")
    if not isinstance(value, Mapping):
        element.text = _text(value)
        return
    for key, item in value.items():
        if key == "#text":
            element.text = _text(item)
        elif key.startswith("@"):
            element.set(key[1:], _text(item))
        else:
            _append(element, key, item, namespace)


def to_xml(request: Mapping[str, Mapping[str, Any]]) -> bytes:
    """Serialize a single-rooted request dict to a NAV XML document.

    ``@name`` keys become attributes, ``#text`` the element text and lists
    repeated elements.
    """
    if len(request) != 1:
        raise ValueError("Request must have exactly one root element")
    ((root_tag, body),) = request.items()
    root = etree.Element(
        f"{{{API_NAMESPACE}}}{root_tag}",
        nsmap={None: API_NAMESPACE, "common": COMMON_NAMESPACE},
    )
    for key, value in body.items():
        namespace = COMMON_NAMESPACE if key in _COMMON_ELEMENTS else API_NAMESPACE
        _append(root, key, value, namespace)
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def _to_value(element: etree._Element) -> Any:
    children = list(element.iterchildren(etree.Element))
    if not children:
        return element.text or ""
    result: dict[str, Any] = {}
    for child in children:
        key = etree.QName(child).localname
        value = _to_value(child)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def from_xml(data: bytes) -> dict[str, Any]:
    """Parse a NAV reply into plain dicts.

    Namespaces and attributes are dropped and leaves are kept as text.
    Repeated siblings become a list but a lone child stays a bare value, so
    consumers must normalize list-shaped fields themselves.
    """
    root = etree.fromstring(data, parser=_PARSER)
    return {etree.QName(root).localname: _to_value(root)}
