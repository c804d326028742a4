"""
Creating annotations and loading them back into a document.

Marking mutates the tree, so a batch resolves and marks one annotation at a
time, taking a fresh snapshot before each resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from anchorkit.config import DEFAULT_HIGHLIGHT_COLOR, DEFAULT_HIGHLIGHT_TYPE, TEXT_QUOTE_CONTEXT_LENGTH
from anchorkit.errors import AnchorkitError
from anchorkit.logging_config import logger
from anchorkit.marker import HighlightOptions, MarkResult, clear_marks, mark_range
from anchorkit.models import Annotation, AnnotationBody, Target
from anchorkit.resolver import AnchorResult, ResolutionTrace, Strategy, resolve
from anchorkit.selectors import SelectorSet, build_selectors
from anchorkit.store import LoadFilter

if TYPE_CHECKING:
    from anchorkit.document import Document
    from anchorkit.store import AnnotationStore
    from anchorkit.tree import TreeRange


@dataclass
class AnnotationOutcome:
    """What happened to one annotation in a batch."""

    annotation: Annotation
    result: AnchorResult | None = None
    mark: MarkResult | None = None
    error: str | None = None

    @property
    def shown(self) -> bool:
        return self.mark is not None and self.mark.marked

    @property
    def strategy(self) -> Strategy | None:
        return self.result.strategy if self.result is not None else None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.shown:
            return "shown"
        if self.result is not None and self.result.anchored:
            return "not shown"
        return "orphaned"


@dataclass
class BatchReport:
    """Per-annotation outcomes of loading a batch."""

    outcomes: list[AnnotationOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def shown(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "shown")

    @property
    def resolved_not_shown(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "not shown")

    @property
    def orphaned(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "orphaned")

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "failed")

    def summary(self) -> str:
        return f"{self.shown} of {self.total} shown"


def annotate(
    document: Document,
    tree_range: TreeRange,
    *,
    source: str,
    page_url: str | None = None,
    base_url: str | None = None,
    project_id: str | None = None,
    note: str | None = None,
    highlight_type: str = DEFAULT_HIGHLIGHT_TYPE,
    highlight_color: str = DEFAULT_HIGHLIGHT_COLOR,
    store: AnnotationStore | None = None,
    mark: bool = True,
    prefix_length: int = TEXT_QUOTE_CONTEXT_LENGTH,
    suffix_length: int = TEXT_QUOTE_CONTEXT_LENGTH,
) -> Annotation:
    """
    Create an annotation for a selection.

    Selectors are built against the current snapshot before anything is
    marked, then the annotation is saved (if a store is given) and marked.

    Raises:
        SelectorBuildError: If the selection cannot be described
    """
    selectors = build_selectors(
        tree_range,
        document.snapshot(),
        prefix_length=prefix_length,
        suffix_length=suffix_length,
    )
    annotation = Annotation(
        target=Target(source=source, selector=selectors),
        page_url=page_url or source,
        base_url=base_url,
        project_id=project_id,
        body=AnnotationBody(value=note) if note else None,
        highlight_type=highlight_type,
        highlight_color=highlight_color,
    )
    if store is not None:
        annotation = store.save(annotation)
    if mark:
        mark_range(document, tree_range, annotation.id, _options(annotation), revision=document.revision)
    logger.info(f"Created annotation {annotation.id} for {selectors.quote.exact[:40]!r}")
    return annotation


def _options(annotation: Annotation) -> HighlightOptions:
    return HighlightOptions(type=annotation.highlight_type, color=annotation.highlight_color)


def load_into(
    document: Document,
    annotations: list[Annotation],
    *,
    clear: bool = True,
) -> BatchReport:
    """
    Resolve and mark a batch of annotations.

    Each annotation is resolved against a fresh snapshot and marked before
    the next one is resolved. One annotation's failure never aborts the batch.

    Args:
        document: Document to mark
        annotations: Annotations to load
        clear: Remove existing marks first

    Returns:
        BatchReport with one outcome per annotation
    """
    if clear:
        clear_marks(document)

    report = BatchReport()
    with logger.indent_block(f"Loading {len(annotations)} annotation(s)"):
        for annotation in annotations:
            outcome = AnnotationOutcome(annotation=annotation)
            try:
                outcome.result = resolve(annotation.target, document.snapshot())
                if outcome.result.anchored:
                    outcome.mark = mark_range(
                        document,
                        outcome.result.range,
                        annotation.id,
                        _options(annotation),
                        revision=outcome.result.revision,
                    )
            except AnchorkitError as e:
                logger.error(f"Annotation {annotation.id} failed: {e}")
                outcome.error = str(e)
            report.outcomes.append(outcome)
            logger.debug(f"{annotation.id}: {outcome.status}")

    logger.info(f"Loaded annotations: {report.summary()}")
    return report


def load_from_store(
    document: Document,
    store: AnnotationStore,
    *,
    page_url: str | None = None,
    base_url: str | None = None,
    project_id: str | None = None,
    clear: bool = True,
) -> BatchReport:
    """Load the store's annotations for a page into a document."""
    annotations = store.load(LoadFilter(page_url=page_url, base_url=base_url, project_id=project_id))
    return load_into(document, annotations, clear=clear)


@dataclass
class ReattachCheck:
    """Selectors built for a selection and the result of anchoring them again."""

    selectors: SelectorSet
    result: AnchorResult
    trace: ResolutionTrace


def check_reattach(document: Document, tree_range: TreeRange) -> ReattachCheck:
    """Build selectors for a selection and immediately re-anchor them."""
    selectors = build_selectors(tree_range, document.snapshot())
    trace = ResolutionTrace()
    result = resolve(selectors, document.snapshot(), trace=trace)
    return ReattachCheck(selectors=selectors, result=result, trace=trace)
