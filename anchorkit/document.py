"""Document text extraction and offset/tree mapping.

A ``Snapshot`` flattens the renderable text of a tree into one string and
keeps a segment table (one segment per text node, in document order) for
translating between flat character offsets and tree boundary points.

Snapshots describe one revision of a ``Document``. Any mutation of the tree
must be followed by ``Document.touch()``, after which older snapshots report
themselves as stale.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass

import lxml.html
from lxml import etree

from anchorkit.logging_config import logger
from anchorkit.tree import (
    BoundaryPoint,
    TextNode,
    TreeRange,
    child_nodes,
    get_tag_name,
    is_rendering,
)


@dataclass(frozen=True)
class Segment:
    """A run of document text attributable to one text node."""

    start: int
    end: int
    node: TextNode
    order: int
    """Document-order index of the node."""

    def __len__(self) -> int:
        return self.end - self.start


@dataclass
class TreeWalk:
    """Result of walking a tree in document order."""

    text_nodes: list[TextNode]
    order: dict
    """Document-order index for every visited element and text node."""
    subtree_end: dict
    """Order index of the last node inside each visited element."""


def walk(root: etree._Element) -> TreeWalk:
    """Visit root's subtree in document order.

    The contents of non-rendering elements (scripts, styles, comments) are
    skipped, but the tail text following them belongs to their parent and is
    kept.
    """
    text_nodes: list[TextNode] = []
    order: dict = {}
    subtree_end: dict = {}

    def visit(element: etree._Element) -> None:
        order[element] = len(order)
        if is_rendering(element):
            for node in child_nodes(element):
                if isinstance(node, TextNode):
                    order[node] = len(order)
                    text_nodes.append(node)
                else:
                    visit(node)
        subtree_end[element] = len(order) - 1

    visit(root)
    return TreeWalk(text_nodes=text_nodes, order=order, subtree_end=subtree_end)


def parsed_text_runs(root: etree._Element) -> list[str] | None:
    """Extract text runs by serialising root and parsing it again.

    Returns None if the serialisation cannot be parsed back.
    """
    html = etree.tostring(root, encoding="unicode", method="html", with_tail=False)
    tag = get_tag_name(root)
    try:
        if tag in ("html", "body"):
            parsed = lxml.html.document_fromstring(html)
            if tag == "body":
                parsed = parsed.find("body")
        else:
            parsed = lxml.html.fragment_fromstring(html)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        logger.warning(f"Could not re-parse <{tag}> for text extraction: {e}")
        return None
    if parsed is None:
        return None
    return [node.data for node in walk(parsed).text_nodes]


def reconcile_runs(parsed_runs: list[str] | None, live_nodes: list[TextNode]) -> list[str]:
    """Pick the text for each live text node.

    The parsed extraction is used only when it lines up with the live walk
    run for run. Otherwise the live tree wins.
    """
    live_runs = [node.data for node in live_nodes]
    if parsed_runs is None:
        return live_runs
    if len(parsed_runs) != len(live_runs):
        logger.warning(
            f"Parsed extraction has {len(parsed_runs)} text runs, live tree has "
            f"{len(live_runs)}; using live tree"
        )
        return live_runs
    for index, (parsed, live) in enumerate(zip(parsed_runs, live_runs)):
        if len(parsed) != len(live):
            logger.warning(
                f"Text run {index} differs in length ({len(parsed)} parsed, "
                f"{len(live)} live); using live tree"
            )
            return live_runs
    return parsed_runs


class Snapshot:
    """Document text plus segment table for one revision of a tree."""

    def __init__(
        self,
        root: etree._Element,
        tree_walk: TreeWalk,
        runs: list[str],
        document: Document | None = None,
        revision: int = 0,
    ) -> None:
        self.root = root
        self.document = document
        self.revision = revision
        self._order = tree_walk.order
        self._subtree_end = tree_walk.subtree_end

        segments: list[Segment] = []
        offset = 0
        for node, run in zip(tree_walk.text_nodes, runs):
            segments.append(
                Segment(start=offset, end=offset + len(run), node=node, order=self._order[node])
            )
            offset += len(run)
        self.segments = segments
        self.text = "".join(runs)

        self._by_node = {segment.node: segment for segment in segments}
        self._orders = [segment.order for segment in segments]
        self._ends = [segment.end for segment in segments]

    @property
    def stale(self) -> bool:
        """True once the owning document has been mutated since this snapshot."""
        return self.document is not None and self.document.revision != self.revision

    def segment_for(self, node: TextNode) -> Segment | None:
        return self._by_node.get(node)

    def boundary_offset(self, point: BoundaryPoint, bound: str = "start") -> int | None:
        """Flatten a boundary point to a document offset.

        A boundary between children resolves to the first text position at or
        after it for a start boundary, and to the last text position at or
        before it for an end boundary.

        Returns:
            The offset, or None if the point lies outside the mapped tree
        """
        node = point.node
        if isinstance(node, TextNode):
            segment = self._by_node.get(node)
            if segment is None:
                return None
            return segment.start + min(point.offset, len(segment))

        if node not in self._order:
            return None
        children = child_nodes(node)
        index = min(point.offset, len(children))

        if bound == "start":
            if index < len(children):
                key = self._order.get(children[index])
            else:
                key = self._subtree_end[node] + 1
            if key is None:
                return None
            position = bisect_left(self._orders, key)
            if position == len(self.segments):
                return len(self.text)
            return self.segments[position].start

        if index > 0:
            before = children[index - 1]
            key = self._subtree_end.get(before, self._order.get(before))
        else:
            key = self._order[node]
        if key is None:
            return None
        position = bisect_right(self._orders, key) - 1
        if position < 0:
            return 0
        return self.segments[position].end

    def tree_range_to_offsets(self, tree_range: TreeRange) -> tuple[int, int] | None:
        """Translate a tree range to (start, end) offsets, or None if unmappable."""
        start = self.boundary_offset(tree_range.start, "start")
        end = self.boundary_offset(tree_range.end, "end")
        if start is None or end is None or end < start:
            return None
        return (start, end)

    def offsets_to_tree_range(self, start: int, end: int) -> TreeRange | None:
        """Place flat offsets inside the owning text nodes.

        A start offset on the seam between two segments belongs to the
        following segment, an end offset to the preceding one.

        Returns:
            The range, or None if the offsets are out of bounds
        """
        if not self.segments or start < 0 or end > len(self.text) or end < start:
            return None

        end_index = bisect_left(self._ends, end)
        if start == end:
            start_index = end_index
        else:
            start_index = min(bisect_right(self._ends, start), len(self.segments) - 1)

        start_segment = self.segments[start_index]
        end_segment = self.segments[end_index]
        if start_segment is end_segment:
            length = len(start_segment)
            return TreeRange.within(
                start_segment.node,
                _clamp(start - start_segment.start, length),
                _clamp(end - start_segment.start, length),
            )
        return TreeRange(
            BoundaryPoint(start_segment.node, _clamp(start - start_segment.start, len(start_segment))),
            BoundaryPoint(end_segment.node, _clamp(end - end_segment.start, len(end_segment))),
        )

    def text_extent(self, element: etree._Element) -> tuple[int, int] | None:
        """Flat span covered by an element's descendant text.

        Returns None for elements outside the mapped tree (including the
        contents of non-rendering elements).
        """
        if element not in self._order or not is_rendering(element):
            return None
        first = bisect_right(self._orders, self._order[element])
        last = bisect_right(self._orders, self._subtree_end[element]) - 1
        if last < first:
            offset = self.segments[first].start if first < len(self.segments) else len(self.text)
            return (offset, offset)
        return (self.segments[first].start, self.segments[last].end)


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def build(
    root: etree._Element,
    document: Document | None = None,
    revision: int = 0,
    reparse: bool = True,
) -> Snapshot:
    """Build a snapshot of root's current text.

    Args:
        root: Root element of the tree to flatten
        document: Owning document, used for staleness checks
        revision: Document revision the snapshot describes
        reparse: Cross-check the live walk against a re-parsed extraction

    Returns:
        Snapshot of the tree
    """
    tree_walk = walk(root)
    parsed = parsed_text_runs(root) if reparse else None
    runs = reconcile_runs(parsed, tree_walk.text_nodes)
    snapshot = Snapshot(root, tree_walk, runs, document=document, revision=revision)
    logger.debug(
        f"Built snapshot r{revision}: {len(snapshot.segments)} segments, "
        f"{len(snapshot.text)} characters"
    )
    return snapshot


class Document:
    """A mutable tree with a revision counter.

    Example:
        document = Document.from_html("<div><p>Hello world</p></div>")
        snapshot = document.snapshot()
        snapshot.text  # "Hello world"
    """

    def __init__(self, root: etree._Element, reparse: bool = True) -> None:
        self.root = root
        self.revision = 0
        self.reparse = reparse
        self._snapshot: Snapshot | None = None

    @classmethod
    def from_html(cls, html: str, reparse: bool = True) -> Document:
        """Parse HTML; a full document is rooted at its <body>."""
        root = lxml.html.fromstring(html)
        if get_tag_name(root) == "html":
            body = root.find("body")
            if body is not None:
                root = body
        return cls(root, reparse=reparse)

    def to_html(self) -> str:
        return etree.tostring(self.root, encoding="unicode", method="html", with_tail=False)

    def touch(self) -> None:
        """Record a mutation of the tree."""
        self.revision += 1
        self._snapshot = None

    def snapshot(self) -> Snapshot:
        """Snapshot for the current revision, built on first use."""
        if self._snapshot is None or self._snapshot.revision != self.revision:
            self._snapshot = build(
                self.root, document=self, revision=self.revision, reparse=self.reparse
            )
        return self._snapshot
