"""Generic parsed-XML tree consumed by the extractors and the feature projector."""

from rvo_connector.xmltree.parser import element_to_node, parse_xml
from rvo_connector.xmltree.tree import Node, TextNode, as_list, child, simplify, text_of

__all__ = [
    "Node",
    "TextNode",
    "as_list",
    "child",
    "element_to_node",
    "parse_xml",
    "simplify",
    "text_of",
]
