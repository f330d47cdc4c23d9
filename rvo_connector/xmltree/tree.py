"""Generic parsed-XML tree and its safe accessors.

A response tree is a recursive structure of four node shapes:

- ``str``: text of an element without attributes or children.
- ``TextNode``: text plus the element's attributes.
- ``dict[str, Node]``: element with child elements, keyed by local name.
- ``list[Node]``: a tag that occurred more than once under the same parent.

Absence is normal in this domain (optional fields, empty collections), so
the accessors return ``None`` / ``[]`` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias, Union

Node: TypeAlias = Union[str, "TextNode", dict[str, "Node"], list["Node"]]


@dataclass(frozen=True, slots=True)
class TextNode:
    """Element text that arrived together with attributes.

    Attributes:
        value: Element text (stripped).
        attributes: Attribute map keyed by local name (e.g. ``srsName``).
    """

    value: str
    attributes: dict[str, str] = field(default_factory=dict)


def as_list(node: Node | None) -> list[Node]:
    """Normalise a maybe-repeated node to a list (0, 1 or N items)."""
    if node is None:
        return []
    if isinstance(node, list):
        return list(node)
    return [node]


def child(node: Node | None, *path: str) -> Node | None:
    """Follow *path* through mapping nodes, returning ``None`` on any miss.

    A repeated node along the path resolves to its first occurrence.
    """
    current = node
    for name in path:
        if isinstance(current, list):
            current = current[0] if current else None
        if not isinstance(current, dict):
            return None
        current = current.get(name)
        if current is None:
            return None
    return current


def text_of(node: Node | None) -> str | None:
    """Return the text of a scalar or ``TextNode``; ``None`` for anything else."""
    if isinstance(node, TextNode):
        return node.value
    if isinstance(node, str):
        return node
    return None


def simplify(node: Node | None) -> object:
    """Recursively unwrap ``TextNode`` values into plain JSON-friendly data."""
    if isinstance(node, TextNode):
        return node.value
    if isinstance(node, dict):
        return {key: simplify(value) for key, value in node.items()}
    if isinstance(node, list):
        return [simplify(item) for item in node]
    return node
