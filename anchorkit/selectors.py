"""
Selectors describing a selected span, and the builder that produces them.

Three redundant selectors are built for every selection:

- ``StructuralSelector``: element paths from the root (``div[1]/p[2]``) plus
  character offsets within each boundary element's text
- ``TextPositionSelector``: global offsets into the document text
- ``TextQuoteSelector``: the selected text with up to 32 characters of
  context on either side

Selector sets are immutable once built.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from anchorkit.config import TEXT_QUOTE_CONTEXT_LENGTH, validate_context_length, validate_offsets
from anchorkit.errors import SelectorBuildError, StaleSnapshotError
from anchorkit.logging_config import logger
from anchorkit.tree import containing_element, get_tag_name, is_under

if TYPE_CHECKING:
    from lxml import etree

    from anchorkit.document import Snapshot
    from anchorkit.tree import TreeRange

PATH_STEP_PATTERN = re.compile(r"^([A-Za-z][\w.:-]*)\[([1-9]\d*)\]$")


class _Selector(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class StructuralSelector(_Selector):
    """
    Element paths and local offsets for both ends of a range.

    Attributes:
        start: Path from the root to the element containing the start
        end: Path from the root to the element containing the end
        start_offset: Offset within the start element's descendant text
        end_offset: Offset within the end element's descendant text
    """

    type: str = "RangeSelector"
    start: str
    end: str
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)


class TextPositionSelector(_Selector):
    """Global character offsets [start, end) into the document text."""

    type: str = "TextPositionSelector"
    start: int
    end: int

    @model_validator(mode="after")
    def _check_offsets(self) -> Self:
        validate_offsets(self.start, self.end)
        return self


class TextQuoteSelector(_Selector):
    """
    W3C Web Annotation TextQuoteSelector.

    Selects text by an exact quote with optional prefix/suffix context. The
    context disambiguates quotes that appear more than once.

    Attributes:
        type: Selector type identifier (always "TextQuoteSelector")
        exact: The exact text to match
        prefix: Text that appeared immediately before the quote
        suffix: Text that appeared immediately after the quote
    """

    type: str = "TextQuoteSelector"
    exact: str
    prefix: str = ""
    suffix: str = ""


class SelectorSet(BaseModel):
    """The redundant selectors stored for one selection; at least one is required."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    structural: StructuralSelector | None = Field(default=None, alias="range")
    position: TextPositionSelector | None = Field(default=None, alias="textPosition")
    quote: TextQuoteSelector | None = Field(default=None, alias="textQuote")

    @model_validator(mode="after")
    def _require_one(self) -> Self:
        if self.structural is None and self.position is None and self.quote is None:
            raise ValueError("A selector set needs at least one selector")
        return self


class PathStep(NamedTuple):
    """One step of an element path: tag name and 1-based index among same-tag siblings."""

    tag: str
    index: int


def parse_path(path: str) -> list[PathStep]:
    """Parse ``div[1]/p[2]`` into steps; the empty path addresses the root.

    Raises:
        ValueError: If a step is malformed
    """
    if not path.strip("/"):
        return []
    steps = []
    for part in path.strip("/").split("/"):
        match = PATH_STEP_PATTERN.match(part)
        if not match:
            raise ValueError(f"Invalid path step: '{part}' in '{path}'")
        steps.append(PathStep(tag=match.group(1).lower(), index=int(match.group(2))))
    return steps


def format_path(steps: Iterable[PathStep]) -> str:
    return "/".join(f"{step.tag}[{step.index}]" for step in steps)


def element_path(element: etree._Element, root: etree._Element) -> str:
    """Path from root to element.

    Raises:
        SelectorBuildError: If element is not root or one of its descendants
    """
    steps: list[PathStep] = []
    current = element
    while current is not root:
        parent = current.getparent()
        if parent is None:
            raise SelectorBuildError("boundary is not inside the root", f"<{get_tag_name(element)}>")
        tag = get_tag_name(current)
        index = 1 + sum(1 for sibling in current.itersiblings(preceding=True) if get_tag_name(sibling) == tag)
        steps.append(PathStep(tag=tag, index=index))
        current = parent
    return format_path(reversed(steps))


def resolve_path(root: etree._Element, path: str) -> etree._Element | None:
    """Follow a path down from root; None if any step is missing or malformed."""
    try:
        steps = parse_path(path)
    except ValueError as e:
        logger.warning(f"{e}")
        return None
    current = root
    for step in steps:
        same_tag = [child for child in current if get_tag_name(child) == step.tag]
        if step.index > len(same_tag):
            return None
        current = same_tag[step.index - 1]
    return current


def build_selectors(
    tree_range: TreeRange,
    snapshot: Snapshot,
    *,
    root: etree._Element | None = None,
    prefix_length: int = TEXT_QUOTE_CONTEXT_LENGTH,
    suffix_length: int = TEXT_QUOTE_CONTEXT_LENGTH,
) -> SelectorSet:
    """
    Describe a selected range with structural, position and quote selectors.

    Args:
        tree_range: The selection
        snapshot: Current snapshot of the document containing the selection
        root: Root the structural paths are relative to (default: the snapshot's root)
        prefix_length: Characters of context to keep before the quote
        suffix_length: Characters of context to keep after the quote

    Returns:
        SelectorSet with all three selectors

    Raises:
        SelectorBuildError: If the range is outside root, cannot be mapped, or is empty
        StaleSnapshotError: If the snapshot no longer describes its document
    """
    validate_context_length(prefix_length)
    validate_context_length(suffix_length)
    if snapshot.stale:
        raise StaleSnapshotError(snapshot.revision, snapshot.document.revision)
    root = snapshot.root if root is None else root

    start_elem = containing_element(tree_range.start.node)
    end_elem = containing_element(tree_range.end.node)
    for elem in (start_elem, end_elem):
        if elem is None or not is_under(elem, root):
            raise SelectorBuildError("boundary is not inside the root")

    offsets = snapshot.tree_range_to_offsets(tree_range)
    if offsets is None:
        raise SelectorBuildError("range cannot be mapped to document text")
    start, end = offsets
    if start == end:
        raise SelectorBuildError("range is empty")

    structural = StructuralSelector(
        start=element_path(start_elem, root),
        end=element_path(end_elem, root),
        start_offset=_local_offset(snapshot, start_elem, start),
        end_offset=_local_offset(snapshot, end_elem, end),
    )
    text = snapshot.text
    quote = TextQuoteSelector(
        exact=text[start:end],
        prefix=text[max(0, start - prefix_length) : start],
        suffix=text[end : end + suffix_length],
    )
    logger.debug(f"Built selectors for {start}-{end}: {structural.start} .. {structural.end}")
    return SelectorSet(
        structural=structural,
        position=TextPositionSelector(start=start, end=end),
        quote=quote,
    )


def _local_offset(snapshot: Snapshot, element: etree._Element, offset: int) -> int:
    extent = snapshot.text_extent(element)
    if extent is None:
        raise SelectorBuildError("boundary element holds no document text", f"<{get_tag_name(element)}>")
    return max(0, offset - extent[0])
