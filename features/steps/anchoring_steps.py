"""
Step definitions for re-anchoring annotations after a page changes.
"""

from behave import given, then, when  # type: ignore[import-untyped]

from anchorkit.batch import annotate, load_into
from anchorkit.document import Document
from anchorkit.marker import find_marks
from anchorkit.store import MemoryStore


# === Page Setup ===


@given("the page:")  # type: ignore[misc]
def step_given_page(context):
    """Parse the page the annotation is created on."""
    context.html = context.text.strip()
    context.document = Document.from_html(context.html)
    context.store = MemoryStore()


@given('I annotate "{quote}"')  # type: ignore[misc]
def step_given_annotation(context, quote):
    """Select the first occurrence of quote and save an annotation for it."""
    snapshot = context.document.snapshot()
    start = snapshot.text.find(quote)
    assert start >= 0, f"'{quote}' not in page text {snapshot.text!r}"
    tree_range = snapshot.offsets_to_tree_range(start, start + len(quote))
    context.annotation = annotate(
        context.document, tree_range, source="page", store=context.store, mark=False
    )


# === Reload Actions ===


@when("the page is reloaded unchanged")  # type: ignore[misc]
def step_when_reloaded_unchanged(context):
    context.document = Document.from_html(context.html)


@when("the page is reloaded as:")  # type: ignore[misc]
def step_when_reloaded_as(context):
    context.document = Document.from_html(context.text.strip())


@when("the annotations are loaded")  # type: ignore[misc]
def step_when_loaded(context):
    """Resolve and mark every stored annotation."""
    context.report = load_into(context.document, context.store.load())
    context.outcome = context.report.outcomes[0]


# === Assertions ===


@then('the annotation is shown via "{strategy}"')  # type: ignore[misc]
def step_then_shown_via(context, strategy):
    outcome = context.outcome
    assert outcome.shown, f"Expected annotation to be shown, got {outcome.status}"
    assert outcome.strategy.value == strategy, f"Expected {strategy}, got {outcome.strategy.value}"


@then("the annotation is orphaned")  # type: ignore[misc]
def step_then_orphaned(context):
    outcome = context.outcome
    assert outcome.status == "orphaned", f"Expected orphaned, got {outcome.status}"
    assert "quote-only" in outcome.result.error


@then('the highlighted text is "{text}"')  # type: ignore[misc]
def step_then_highlighted(context, text):
    """All marks of the annotation together read as the quote."""
    marks = find_marks(context.document.root, context.annotation.id)
    highlighted = "".join(mark.text_content() for mark in marks)
    assert highlighted == text, f"Expected '{text}', got '{highlighted}'"


@then("nothing is highlighted")  # type: ignore[misc]
def step_then_nothing(context):
    marks = find_marks(context.document.root)
    assert not marks, f"Expected no marks, found {len(marks)}"


@then("the table row still has {count:d} cells")  # type: ignore[misc]
def step_then_row_cells(context, count):
    [row] = context.document.root.xpath(".//tr")
    cells = [child.tag for child in row]
    assert cells == ["td"] * count, f"Expected {count} cells, got {cells}"
