"""Shared fixtures for anchorkit tests."""

import lxml.html
import pytest

from anchorkit.document import Document
from anchorkit.logging_config import logger

FOX_HTML = "<div><p>The quick brown fox jumps over the lazy dog.</p></div>"
FOX_TEXT = "The quick brown fox jumps over the lazy dog."


@pytest.fixture(autouse=True)
def reset_log_indent():
    """Leave no open log blocks behind between tests."""
    logger.state.reset()
    yield
    logger.state.reset()


@pytest.fixture
def fox_document() -> Document:
    """Single paragraph holding the classic pangram."""
    return Document.from_html(FOX_HTML)


@pytest.fixture
def inline_document() -> Document:
    """Paragraph mixing text and an inline element."""
    return Document.from_html("<div><p>Hello <b>big</b> world</p></div>")


@pytest.fixture
def whitespace_document() -> Document:
    """Two paragraphs separated only by whitespace.

    The whitespace tail is set after parsing so the HTML parser cannot
    drop it.
    """
    root = lxml.html.fromstring("<div><p>A</p><p>B</p></div>")
    root[0].tail = "   "
    return Document(root, reparse=False)


@pytest.fixture
def table_document() -> Document:
    """One-row table with two cells."""
    return Document.from_html("<table><tr><td>Alpha</td><td>Beta</td></tr></table>")


@pytest.fixture
def select():
    """Factory turning document offsets into a tree range.

    Usage:
        def test_example(fox_document, select):
            selection = select(fox_document, 10, 19)
    """

    def _select(document: Document, start: int, end: int):
        tree_range = document.snapshot().offsets_to_tree_range(start, end)
        assert tree_range is not None
        return tree_range

    return _select
