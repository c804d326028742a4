"""
Highlight marker: marks a resolved range without breaking the structure
around it.

Runs of text inside the range are wrapped in
``<span class="annotator-highlight">``. Elements the range covers entirely
are tagged in place instead, so table rows, list items and the like never
end up inside a wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from anchorkit.config import (
    ANNOTATION_ID_ATTR,
    DEFAULT_HIGHLIGHT_COLOR,
    DEFAULT_HIGHLIGHT_TYPE,
    HIGHLIGHT_CLASS,
    HIGHLIGHT_TYPE_ATTR,
    SAVED_STYLE_ATTR,
    WRAPPER_ATTR,
    validate_color,
)
from anchorkit.errors import StaleSnapshotError
from anchorkit.logging_config import logger
from anchorkit.tree import TextNode, child_nodes, is_rendering

if TYPE_CHECKING:
    from lxml import etree

    from anchorkit.document import Document, Snapshot
    from anchorkit.tree import TreeRange

_MARKS_XPATH = (
    "descendant-or-self::*[contains(concat(' ', normalize-space(@class), ' '), ' {cls} ')]"
).format(cls=HIGHLIGHT_CLASS)


@dataclass
class HighlightOptions:
    """How a mark is drawn."""

    type: str = DEFAULT_HIGHLIGHT_TYPE
    color: str | None = DEFAULT_HIGHLIGHT_COLOR

    def __post_init__(self) -> None:
        if self.color is not None:
            validate_color(self.color)


class MarkOutcome(str, Enum):
    """Result of marking a range."""

    MARKED = "marked"
    NOTHING_MARKABLE = "nothing-markable"


@dataclass
class MarkResult:
    """Marks applied for one range."""

    outcome: MarkOutcome
    wrappers: list = field(default_factory=list)
    """Wrapper spans created around text slices."""
    tagged: list = field(default_factory=list)
    """Elements tagged in place."""

    @property
    def marked(self) -> bool:
        return self.outcome == MarkOutcome.MARKED


@dataclass(frozen=True)
class TextSlice:
    """Characters [start, end) of one text node."""

    node: TextNode
    start: int
    end: int


def mark_range(
    document: Document,
    tree_range: TreeRange,
    annotation_id: str,
    options: HighlightOptions | None = None,
    *,
    revision: int | None = None,
) -> MarkResult:
    """
    Mark every non-blank piece of text inside a range.

    Args:
        document: Document owning the range
        tree_range: Range to mark
        annotation_id: Id stored on every mark
        options: Highlight type and colour
        revision: Revision the range was resolved against, if known

    Returns:
        MarkResult; NOTHING_MARKABLE if the range holds only whitespace

    Raises:
        StaleSnapshotError: If revision is given and the document has moved on
    """
    if revision is not None and revision != document.revision:
        raise StaleSnapshotError(revision, document.revision)
    options = options or HighlightOptions()
    snapshot = document.snapshot()

    offsets = snapshot.tree_range_to_offsets(tree_range)
    ancestor = tree_range.common_ancestor()
    if offsets is None or ancestor is None:
        logger.warning(f"Cannot mark {annotation_id}: range does not map to document text")
        return MarkResult(MarkOutcome.NOTHING_MARKABLE)
    start, end = offsets
    if start == end:
        return MarkResult(MarkOutcome.NOTHING_MARKABLE)

    slices: list[TextSlice] = []
    containers: list[etree._Element] = []
    _collect(ancestor, snapshot, start, end, slices, containers)

    if not slices and not containers:
        logger.debug(f"Nothing markable for {annotation_id} in {start}-{end}")
        return MarkResult(MarkOutcome.NOTHING_MARKABLE)

    for container in containers:
        _tag(container, annotation_id, options)
    # Later slices first: splitting a node never disturbs an earlier slice
    wrappers = [_wrap(text_slice, annotation_id, options) for text_slice in reversed(slices)]
    wrappers.reverse()

    document.touch()
    logger.debug(
        f"Marked {annotation_id}: {len(wrappers)} wrapper(s), {len(containers)} tagged element(s)"
    )
    return MarkResult(MarkOutcome.MARKED, wrappers=wrappers, tagged=containers)


def _collect(
    element: etree._Element,
    snapshot: Snapshot,
    start: int,
    end: int,
    slices: list[TextSlice],
    containers: list[etree._Element],
) -> None:
    """Gather text slices and fully covered elements below element, in document order."""
    for node in child_nodes(element):
        if isinstance(node, TextNode):
            segment = snapshot.segment_for(node)
            if segment is None:
                continue
            slice_start = max(segment.start, start)
            slice_end = min(segment.end, end)
            if slice_start >= slice_end:
                continue
            local_start = slice_start - segment.start
            local_end = slice_end - segment.start
            if not node.data[local_start:local_end].strip():
                continue
            slices.append(TextSlice(node, local_start, local_end))
            continue

        if not is_rendering(node):
            continue
        extent = snapshot.text_extent(node)
        if extent is None or extent[0] >= end or extent[1] <= start or extent[0] == extent[1]:
            continue
        if start <= extent[0] and extent[1] <= end and snapshot.text[extent[0] : extent[1]].strip():
            containers.append(node)
        else:
            _collect(node, snapshot, start, end, slices, containers)


def _mark_attributes(annotation_id: str, options: HighlightOptions) -> dict[str, str]:
    attrib = {ANNOTATION_ID_ATTR: annotation_id}
    if options.type:
        attrib[HIGHLIGHT_TYPE_ATTR] = options.type
    return attrib


def _wrap(text_slice: TextSlice, annotation_id: str, options: HighlightOptions) -> etree._Element:
    """Split a text node into prefix / wrapped slice / suffix."""
    node = text_slice.node
    data = node.data
    attrib = {"class": HIGHLIGHT_CLASS, WRAPPER_ATTR: "true", **_mark_attributes(annotation_id, options)}
    if options.color:
        attrib["style"] = f"background-color: {options.color}"
    span = node.owner.makeelement("span", attrib)
    span.text = data[text_slice.start : text_slice.end]
    span.tail = data[text_slice.end :] or None
    node.data = data[: text_slice.start]

    if node.slot == "text":
        node.owner.insert(0, span)
    else:
        parent = node.owner.getparent()
        parent.insert(parent.index(node.owner) + 1, span)
    return span


def _tag(element: etree._Element, annotation_id: str, options: HighlightOptions) -> None:
    """Tag a fully covered element in place."""
    classes = (element.get("class") or "").split()
    if HIGHLIGHT_CLASS not in classes:
        element.set("class", " ".join([*classes, HIGHLIGHT_CLASS]))
    for name, value in _mark_attributes(annotation_id, options).items():
        element.set(name, value)
    if options.color:
        # Keep the author's style so clearing can restore it
        if element.get(SAVED_STYLE_ATTR) is None:
            element.set(SAVED_STYLE_ATTR, element.get("style") or "")
        base = element.get(SAVED_STYLE_ATTR).rstrip("; ")
        declaration = f"background-color: {options.color}"
        element.set("style", f"{base}; {declaration}" if base else declaration)


def find_marks(root: etree._Element, annotation_id: str | None = None) -> list[etree._Element]:
    """All marked elements (wrappers and tagged elements) under root, in document order."""
    marks = root.xpath(_MARKS_XPATH)
    if annotation_id is not None:
        marks = [mark for mark in marks if mark.get(ANNOTATION_ID_ATTR) == annotation_id]
    return marks


def mark_annotation_id(element: etree._Element) -> str | None:
    """The annotation id carried by a mark, or None if element is not marked."""
    return element.get(ANNOTATION_ID_ATTR)


def clear_marks(document: Document) -> int:
    """
    Remove every mark from the document.

    Wrapper spans are replaced by their contents (text merged back into the
    neighbouring runs); tagged elements lose the class and attributes.

    Returns:
        Number of marks removed
    """
    marks = find_marks(document.root)
    for mark in reversed(marks):
        if mark.get(WRAPPER_ATTR) is not None:
            _unwrap(mark)
        else:
            _untag(mark)
    if marks:
        document.touch()
        logger.debug(f"Cleared {len(marks)} mark(s)")
    return len(marks)


def _unwrap(wrapper: etree._Element) -> None:
    """Replace a wrapper span by its text and children."""
    parent = wrapper.getparent()
    index = parent.index(wrapper)
    previous = wrapper.getprevious()
    if wrapper.text:
        if previous is not None:
            previous.tail = (previous.tail or "") + wrapper.text
        else:
            parent.text = (parent.text or "") + wrapper.text
    children = list(wrapper)
    for offset, child in enumerate(children):
        parent.insert(index + offset, child)
    last = children[-1] if children else previous
    if wrapper.tail:
        if last is not None:
            last.tail = (last.tail or "") + wrapper.tail
        else:
            parent.text = (parent.text or "") + wrapper.tail
    parent.remove(wrapper)


def _untag(element: etree._Element) -> None:
    classes = [cls for cls in (element.get("class") or "").split() if cls != HIGHLIGHT_CLASS]
    if classes:
        element.set("class", " ".join(classes))
    else:
        element.attrib.pop("class", None)
    for name in (ANNOTATION_ID_ATTR, HIGHLIGHT_TYPE_ATTR):
        element.attrib.pop(name, None)
    saved = element.attrib.pop(SAVED_STYLE_ATTR, None)
    if saved:
        element.set("style", saved)
    elif saved is not None:
        element.attrib.pop("style", None)
