"""lxml-based conversion of a response payload into the generic tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lxml import etree

from rvo_connector.core.exceptions import XmlParseError
from rvo_connector.xmltree.tree import Node, TextNode

if TYPE_CHECKING:
    from lxml.etree import _Element


def parse_xml(content: bytes | str) -> dict[str, Node]:
    """Parse an XML payload into ``{root_local_name: node}``.

    Namespaces are reduced to local names. Attributes of elements that
    have child elements are not represented; they carry no values the
    connector reads.

    Raises:
        XmlParseError: If *content* is empty or not well-formed XML.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not content.strip():
        msg = "Response payload is empty"
        raise XmlParseError(msg)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root: _Element = etree.fromstring(content, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        msg = f"Response is not valid XML: {exc}"
        raise XmlParseError(msg) from exc

    return {etree.QName(root).localname: element_to_node(root)}


def element_to_node(element: _Element) -> Node:
    """Convert one element (recursively) to a tree node."""
    children = [c for c in element if isinstance(c.tag, str)]
    if children:
        mapping: dict[str, Node] = {}
        for sub in children:
            name = etree.QName(sub).localname
            value = element_to_node(sub)
            existing = mapping.get(name)
            if existing is None:
                mapping[name] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                mapping[name] = [existing, value]
        return mapping

    text = (element.text or "").strip()
    if element.attrib:
        attributes = {etree.QName(k).localname: str(v) for k, v in element.attrib.items()}
        return TextNode(value=text, attributes=attributes)
    return text
