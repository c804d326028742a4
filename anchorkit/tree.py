"""Node, boundary point and range interfaces over an lxml element tree.

lxml stores character data on elements: ``element.text`` holds the run
before the first child and ``child.tail`` the run after each child. The
anchoring code works with DOM-style text nodes instead, so every non-empty
run is exposed as a ``TextNode`` handle and ``child_nodes`` lists an
element's children the way a DOM would::

    <p>Hello <b>big</b> world</p>

    child_nodes(p) == [TextNode(p, "text"), b, TextNode(b, "tail")]

A boundary point is ``(node, offset)``. Inside a text node the offset counts
characters; on an element it indexes into ``child_nodes(element)``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Union

from anchorkit.config import NON_RENDERING_TAGS

if TYPE_CHECKING:
    from lxml import etree

TextSlot = Literal["text", "tail"]


class TextNode:
    """Handle for one run of character data in an lxml tree.

    Two handles are equal when they address the same slot of the same
    element, so handles created at different times can be compared.
    """

    __slots__ = ("owner", "slot")

    def __init__(self, owner: etree._Element, slot: TextSlot) -> None:
        if slot not in ("text", "tail"):
            raise ValueError(f"Invalid text slot: '{slot}'. Expected 'text' or 'tail'")
        self.owner = owner
        self.slot = slot

    @property
    def data(self) -> str:
        return getattr(self.owner, self.slot) or ""

    @data.setter
    def data(self, value: str) -> None:
        setattr(self.owner, self.slot, value or None)

    @property
    def parent(self) -> etree._Element | None:
        """The element this run of text belongs to."""
        if self.slot == "text":
            return self.owner
        return self.owner.getparent()

    def __len__(self) -> int:
        return len(self.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TextNode):
            return NotImplemented
        return self.owner is other.owner and self.slot == other.slot

    def __hash__(self) -> int:
        return hash((id(self.owner), self.slot))

    def __repr__(self) -> str:
        return f"TextNode(<{get_tag_name(self.owner)}>.{self.slot}, {self.data!r})"


Node = Union["etree._Element", TextNode]


def get_tag_name(elem: etree._Element) -> str:
    """Get tag name without namespace prefix.

    Args:
        elem: lxml element

    Returns:
        Lower-case tag name, or "" for comments and processing instructions
    """
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        tag = tag.split("}")[-1]
    return tag.lower()


def is_rendering(elem: etree._Element) -> bool:
    """True if the element's own content contributes to document text."""
    tag = get_tag_name(elem)
    return bool(tag) and tag not in NON_RENDERING_TAGS


def child_nodes(element: etree._Element) -> list[Node]:
    """DOM-style child list: leading text, then each child followed by its tail."""
    nodes: list[Node] = []
    if element.text:
        nodes.append(TextNode(element, "text"))
    for child in element:
        nodes.append(child)
        if child.tail:
            nodes.append(TextNode(child, "tail"))
    return nodes


def containing_element(node: Node) -> etree._Element | None:
    """The element a boundary inside node is measured against."""
    if isinstance(node, TextNode):
        return node.parent
    return node


def ancestors(element: etree._Element) -> Iterator[etree._Element]:
    """Yield element and its ancestors, innermost first."""
    current: etree._Element | None = element
    while current is not None:
        yield current
        current = current.getparent()


def is_under(element: etree._Element, root: etree._Element) -> bool:
    """True if element is root or one of its descendants."""
    return any(candidate is root for candidate in ancestors(element))


@dataclass(frozen=True)
class BoundaryPoint:
    """A position in the tree: a node and an offset within it."""

    node: Node
    offset: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"Invalid boundary offset: {self.offset}")


@dataclass(frozen=True)
class TreeRange:
    """An ordered pair of boundary points."""

    start: BoundaryPoint
    end: BoundaryPoint

    @classmethod
    def within(cls, node: TextNode, start: int, end: int) -> TreeRange:
        """Range over characters [start, end) of a single text node."""
        return cls(BoundaryPoint(node, start), BoundaryPoint(node, end))

    def common_ancestor(self) -> etree._Element | None:
        """Deepest element containing both boundaries."""
        start_elem = containing_element(self.start.node)
        end_elem = containing_element(self.end.node)
        if start_elem is None or end_elem is None:
            return None
        end_chain = list(ancestors(end_elem))
        for candidate in ancestors(start_elem):
            if any(candidate is other for other in end_chain):
                return candidate
        return None
