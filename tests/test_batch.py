"""Tests for creating annotations and loading batches."""

import pytest
from lxml import etree

from anchorkit.batch import annotate, check_reattach, load_from_store, load_into
from anchorkit.document import Document
from anchorkit.errors import AnchorkitError, SelectorBuildError
from anchorkit.marker import find_marks
from anchorkit.models import Annotation, Target
from anchorkit.resolver import Strategy
from anchorkit.selectors import SelectorSet, TextPositionSelector, TextQuoteSelector
from anchorkit.store import MemoryStore

PAGE = "https://example.org/fox"


def _quote_annotation(annotation_id: str, exact: str, source: str = PAGE) -> Annotation:
    selectors = SelectorSet(quote=TextQuoteSelector(exact=exact))
    return Annotation(id=annotation_id, target=Target(source=source, selector=selectors))


class TestAnnotate:
    """Tests for creating annotations."""

    def test_annotate_saves_and_marks(self, fox_document, select) -> None:
        """A new annotation carries all three selectors and is marked at once."""
        store = MemoryStore()
        annotation = annotate(fox_document, select(fox_document, 10, 19), source=PAGE, note="nice", store=store)

        assert store.load() == [annotation]
        assert annotation.page_url == PAGE
        assert annotation.body.value == "nice"
        assert annotation.selector.position == TextPositionSelector(start=10, end=19)
        assert annotation.selector.quote.exact == "brown fox"
        assert annotation.selector.structural.start == "p[1]"
        [mark] = find_marks(fox_document.root, annotation.id)
        assert mark.text == "brown fox"

    def test_annotate_without_marking(self, fox_document, select) -> None:
        """mark=False leaves the document untouched."""
        annotate(fox_document, select(fox_document, 10, 19), source=PAGE, mark=False)
        assert find_marks(fox_document.root) == []
        assert fox_document.revision == 0

    def test_empty_selection(self, fox_document, select) -> None:
        """A collapsed selection cannot be annotated."""
        with pytest.raises(SelectorBuildError, match="range is empty"):
            annotate(fox_document, select(fox_document, 4, 4), source=PAGE)


class TestLoadInto:
    """Tests for loading batches of annotations."""

    def test_mixed_batch(self, whitespace_document) -> None:
        """Shown, orphaned and resolved-but-not-shown annotations are all reported."""
        whitespace_only = Annotation(
            id="gap",
            target=Target(selector=SelectorSet(position=TextPositionSelector(start=1, end=4))),
        )
        annotations = [_quote_annotation("a", "A"), _quote_annotation("zebra", "zebra"), whitespace_only]

        report = load_into(whitespace_document, annotations)

        assert [outcome.status for outcome in report.outcomes] == ["shown", "orphaned", "not shown"]
        assert (report.shown, report.orphaned, report.resolved_not_shown, report.failed) == (1, 1, 1, 0)
        assert report.summary() == "1 of 3 shown"
        assert report.outcomes[0].strategy == Strategy.QUOTE_CONTEXT
        assert report.outcomes[2].strategy == Strategy.POSITION

    def test_two_annotations_in_one_node(self, fox_document) -> None:
        """The second annotation resolves against the tree as changed by the first."""
        report = load_into(
            fox_document, [_quote_annotation("quick", "quick"), _quote_annotation("lazy", "lazy")]
        )

        assert report.shown == 2
        assert [mark.text for mark in find_marks(fox_document.root)] == ["quick", "lazy"]
        assert fox_document.snapshot().text == "The quick brown fox jumps over the lazy dog."

    def test_failure_does_not_abort_batch(self, fox_document, monkeypatch) -> None:
        """An error on one annotation is recorded and the rest still load."""
        import anchorkit.batch

        real_resolve = anchorkit.batch.resolve

        def flaky_resolve(target, snapshot, trace=None):
            if target.selector.quote.exact == "quick":
                raise AnchorkitError("boom")
            return real_resolve(target, snapshot, trace)

        monkeypatch.setattr(anchorkit.batch, "resolve", flaky_resolve)
        report = load_into(
            fox_document, [_quote_annotation("quick", "quick"), _quote_annotation("lazy", "lazy")]
        )

        assert [outcome.status for outcome in report.outcomes] == ["failed", "shown"]
        assert report.outcomes[0].error == "boom"
        assert report.failed == 1

    def test_reloading_does_not_duplicate_marks(self, fox_document) -> None:
        """Existing marks are cleared before a batch is loaded again."""
        annotations = [_quote_annotation("fox", "brown fox")]
        load_into(fox_document, annotations)
        load_into(fox_document, annotations)

        assert len(find_marks(fox_document.root)) == 1

    def test_reloading_plain_etree_tree(self) -> None:
        """Clearing earlier marks works on trees built with lxml.etree."""
        document = Document(etree.fromstring("<div><p>hello brave world</p></div>"))
        annotations = [_quote_annotation("brave", "brave")]
        load_into(document, annotations)

        report = load_into(document, annotations)

        assert report.shown == 1
        assert [mark.text for mark in find_marks(document.root)] == ["brave"]
        assert document.snapshot().text == "hello brave world"

    def test_load_from_store_filters_by_page(self, fox_document) -> None:
        """Only annotations for the requested page are loaded."""
        store = MemoryStore(
            [_quote_annotation("here", "fox"), _quote_annotation("elsewhere", "dog", source="https://other.org")]
        )
        report = load_from_store(fox_document, store, page_url=PAGE)

        assert [outcome.annotation.id for outcome in report.outcomes] == ["here"]
        assert report.shown == 1


class TestCheckReattach:
    """Tests for the round-trip check."""

    def test_selection_reattaches_structurally(self, fox_document, select) -> None:
        """A fresh selection anchors through the first strategy."""
        check = check_reattach(fox_document, select(fox_document, 10, 19))

        assert check.result.anchored
        assert check.result.strategy == Strategy.STRUCTURAL
        assert (check.result.start, check.result.end) == (10, 19)
        assert check.trace.winner == Strategy.STRUCTURAL
        assert check.selectors.quote.prefix == "The quick "

    def test_check_leaves_document_unmarked(self) -> None:
        """Checking never marks anything."""
        document = Document.from_html("<div><p>one</p><p>two</p></div>")
        check_reattach(document, document.snapshot().offsets_to_tree_range(1, 5))
        assert find_marks(document.root) == []
