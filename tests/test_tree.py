"""Tests for the node, boundary and range interfaces."""

import lxml.html
import pytest

from anchorkit.tree import (
    BoundaryPoint,
    TextNode,
    TreeRange,
    child_nodes,
    containing_element,
    get_tag_name,
    is_rendering,
    is_under,
)


@pytest.fixture
def paragraph():
    return lxml.html.fromstring("<p>Hello <b>big</b> world</p>")


class TestTextNode:
    """Tests for TextNode handles."""

    def test_data_reads_slot(self, paragraph) -> None:
        """Text and tail slots read the matching lxml attribute."""
        bold = paragraph[0]
        assert TextNode(paragraph, "text").data == "Hello "
        assert TextNode(bold, "tail").data == " world"
        assert TextNode(bold, "text").data == "big"

    def test_setting_empty_data_clears_slot(self, paragraph) -> None:
        """Empty strings are stored as None, the way lxml represents no text."""
        node = TextNode(paragraph, "text")
        node.data = ""
        assert paragraph.text is None
        assert node.data == ""

    def test_handles_compare_by_slot(self, paragraph) -> None:
        """Separately created handles for one slot are equal and hash alike."""
        first = TextNode(paragraph, "text")
        second = TextNode(paragraph, "text")
        assert first == second
        assert hash(first) == hash(second)
        assert first != TextNode(paragraph[0], "tail")

    def test_parent_of_tail_is_owner_parent(self, paragraph) -> None:
        """A tail belongs to the element containing its owner."""
        assert TextNode(paragraph[0], "tail").parent is paragraph
        assert TextNode(paragraph[0], "text").parent is paragraph[0]

    def test_invalid_slot(self, paragraph) -> None:
        """Only text and tail slots exist."""
        with pytest.raises(ValueError, match="Invalid text slot"):
            TextNode(paragraph, "body")


class TestChildNodes:
    """Tests for DOM-style child lists."""

    def test_text_children_and_tails_in_order(self, paragraph) -> None:
        """Leading text, then each child followed by its tail."""
        bold = paragraph[0]
        assert child_nodes(paragraph) == [
            TextNode(paragraph, "text"),
            bold,
            TextNode(bold, "tail"),
        ]

    def test_empty_runs_are_not_nodes(self) -> None:
        """Elements without text contribute only their children."""
        div = lxml.html.fromstring("<div><p>a</p><p>b</p></div>")
        assert child_nodes(div) == [div[0], div[1]]


class TestTagHelpers:
    """Tests for tag name and rendering helpers."""

    def test_comment_has_no_tag_name(self) -> None:
        """Comments are not rendered and have no tag name."""
        div = lxml.html.fromstring("<div><!-- note --><p>x</p></div>")
        comment = div[0]
        assert get_tag_name(comment) == ""
        assert not is_rendering(comment)

    def test_script_is_not_rendering(self) -> None:
        """Script contents never count as text."""
        div = lxml.html.fromstring("<div><script>var x;</script><p>x</p></div>")
        assert not is_rendering(div[0])
        assert is_rendering(div[1])

    def test_namespace_is_stripped(self) -> None:
        """Namespaced tags are reduced to their local name."""
        from lxml import etree

        elem = etree.Element("{http://www.w3.org/1999/xhtml}P")
        assert get_tag_name(elem) == "p"


class TestTreeRange:
    """Tests for ranges and their common ancestor."""

    def test_common_ancestor_of_text_and_tail(self, paragraph) -> None:
        """A range from inside <b> to its tail is rooted at the paragraph."""
        bold = paragraph[0]
        tree_range = TreeRange(
            BoundaryPoint(TextNode(bold, "text"), 1),
            BoundaryPoint(TextNode(bold, "tail"), 2),
        )
        assert tree_range.common_ancestor() is paragraph

    def test_common_ancestor_within_one_node(self, paragraph) -> None:
        """A range inside one text node is rooted at that node's element."""
        tree_range = TreeRange.within(TextNode(paragraph[0], "text"), 0, 2)
        assert tree_range.common_ancestor() is paragraph[0]

    def test_negative_offset_rejected(self, paragraph) -> None:
        """Boundary offsets cannot be negative."""
        with pytest.raises(ValueError):
            BoundaryPoint(paragraph, -1)

    def test_containment_helpers(self, paragraph) -> None:
        """is_under and containing_element follow the element tree."""
        bold = paragraph[0]
        assert containing_element(TextNode(bold, "tail")) is paragraph
        assert is_under(bold, paragraph)
        assert not is_under(paragraph, bold)
