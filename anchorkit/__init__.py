"""
anchorkit: durable text anchoring and highlighting for HTML documents.

This library provides:
- A text extractor that maps flat offsets to and from tree positions
- Structural, position and quote selectors for a selection
- A four-strategy resolver that re-anchors selectors in a changed tree
- A marker that highlights a resolved range without breaking structure

Import patterns:

    # Primary API (recommended)
    from anchorkit import Document, annotate, load_into

    # Full submodule imports (for internal types)
    from anchorkit.matcher import Match, normalize_whitespace
    from anchorkit.resolver import TraceStep

Example usage:

    from anchorkit import Document, TreeRange, annotate, load_into

    document = Document.from_html(html)
    snapshot = document.snapshot()
    selection = snapshot.offsets_to_tree_range(10, 19)
    annotation = annotate(document, selection, source="https://example.org/page")

    # later, against a changed page
    report = load_into(Document.from_html(new_html), [annotation])
    print(report.summary())  # "1 of 1 shown"
"""

__version__ = "0.1.0"

from anchorkit.batch import BatchReport, annotate, check_reattach, load_from_store, load_into
from anchorkit.document import Document, Snapshot, build
from anchorkit.errors import AnchorkitError, SelectorBuildError, StaleSnapshotError, StoreError
from anchorkit.marker import HighlightOptions, MarkOutcome, clear_marks, find_marks, mark_range
from anchorkit.models import Annotation, AnnotationBody, Target
from anchorkit.resolver import AnchorResult, AnchorStatus, ResolutionTrace, Strategy, resolve
from anchorkit.selectors import (
    SelectorSet,
    StructuralSelector,
    TextPositionSelector,
    TextQuoteSelector,
    build_selectors,
)
from anchorkit.store import LoadFilter, MemoryStore, YamlStore
from anchorkit.tree import BoundaryPoint, TextNode, TreeRange

__all__ = [
    "AnchorResult",
    "AnchorStatus",
    "AnchorkitError",
    "Annotation",
    "AnnotationBody",
    "BatchReport",
    "BoundaryPoint",
    "Document",
    "HighlightOptions",
    "LoadFilter",
    "MarkOutcome",
    "MemoryStore",
    "ResolutionTrace",
    "SelectorBuildError",
    "SelectorSet",
    "Snapshot",
    "StaleSnapshotError",
    "StoreError",
    "Strategy",
    "StructuralSelector",
    "Target",
    "TextNode",
    "TextPositionSelector",
    "TextQuoteSelector",
    "TreeRange",
    "YamlStore",
    "annotate",
    "build",
    "build_selectors",
    "check_reattach",
    "clear_marks",
    "find_marks",
    "load_from_store",
    "load_into",
    "mark_range",
    "resolve",
]
