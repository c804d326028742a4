"""Tests for quote search and disambiguation scoring."""

from anchorkit.matcher import (
    Match,
    anchor_from_quote_context,
    anchor_from_quote_only,
    find_all,
    normalize_whitespace,
    pick_best_match,
    quote_context_candidates,
    quote_only_candidates,
    rank_matches,
    score_candidate,
)


class TestNormalizeWhitespace:
    """Tests for whitespace collapsing with offset mapping."""

    def test_collapses_and_trims(self) -> None:
        """Runs become one space; leading and trailing runs disappear."""
        normalized = normalize_whitespace("  a \n\t b  ")
        assert normalized.text == "a b"
        assert normalized.starts == [2, 3, 7]
        assert normalized.ends == [3, 7, 8]

    def test_maps_back_to_original(self) -> None:
        """Normalized spans map to the original characters they came from."""
        normalized = normalize_whitespace("  a \n\t b  ")
        assert normalized.to_original(0, 3) == (2, 8)
        assert normalized.to_original(2, 3) == (7, 8)
        assert normalized.from_original(5) == 1

    def test_empty_text(self) -> None:
        """Whitespace-only text normalizes to nothing."""
        normalized = normalize_whitespace(" \n ")
        assert normalized.text == ""
        assert normalized.to_original(0, 0) == (0, 0)


class TestFindAll:
    """Tests for find_all."""

    def test_overlapping_hits(self) -> None:
        """Overlapping occurrences are all reported."""
        assert find_all("aaa", "aa") == [0, 1]

    def test_empty_needle(self) -> None:
        """An empty needle finds nothing."""
        assert find_all("abc", "") == []


class TestScoring:
    """Tests for candidate scoring."""

    def test_context_bonus_per_side(self) -> None:
        """Each agreeing side earns the context bonus."""
        text = "ab se se cd"
        first = score_candidate(text, Match(start=3, end=5), prefix="ab ", suffix=" se")
        second = score_candidate(text, Match(start=6, end=8), prefix="ab ", suffix=" se")
        assert first.score == 20
        assert first.prefix_matched and first.suffix_matched
        assert second.score == 0

    def test_trimmed_context_comparison(self) -> None:
        """Context compares after trimming surrounding whitespace."""
        scored = score_candidate("ab\nse", Match(start=3, end=5), prefix="ab ")
        assert scored.prefix_matched

    def test_position_hint_bonus(self) -> None:
        """The hint bonus shrinks with distance and stops at the scale."""
        near = score_candidate("x" * 300, Match(start=10, end=12), position_hint=11)
        far = score_candidate("x" * 300, Match(start=250, end=252), position_hint=11)
        assert near.score == 20 + 100
        assert far.score == 20

    def test_candidates_with_both_sides_win(self) -> None:
        """Only candidates matching prefix and suffix are kept when any exist."""
        text = "ab se se cd"
        matches = [Match(start=3, end=5), Match(start=6, end=8)]
        ranked = rank_matches(text, matches, prefix="ab ", suffix=" se", position_hint=7)
        assert [m.start for m in ranked] == [3]

    def test_ties_fall_back_to_hint_then_order(self) -> None:
        """Equal scores prefer the candidate nearest the hint, then the first."""
        text = "cat cat cat"
        matches = [Match(start=0, end=3), Match(start=4, end=7), Match(start=8, end=11)]
        assert pick_best_match(text, matches).start == 0
        best = pick_best_match(text, matches, prefix="zzz", position_hint=300)
        assert best.start == 8

    def test_no_candidates(self) -> None:
        """No candidates, no pick."""
        assert pick_best_match("text", []) is None


class TestQuoteContext:
    """Tests for the context-anchored search."""

    def test_offsets_exclude_context(self) -> None:
        """The returned span covers only the exact part."""
        match = anchor_from_quote_context(
            "The quick brown fox jumps", "brown fox", prefix="The quick ", suffix=" jumps"
        )
        assert (match.start, match.end) == (10, 19)

    def test_whitespace_fallback(self) -> None:
        """Collapsed whitespace still finds the quote and maps back."""
        text = "The quick\n   brown fox jumps"
        candidates = quote_context_candidates(text, "brown fox", prefix="quick ", suffix=" jumps")
        assert len(candidates) == 1
        assert (candidates[0].start, candidates[0].end) == (13, 22)
        assert candidates[0].normalized

    def test_changed_context_is_not_found(self) -> None:
        """A prefix that no longer precedes the quote fails the search."""
        assert anchor_from_quote_context("The brown fox", "brown fox", prefix="The quick ") is None

    def test_multiple_hits_use_hint(self) -> None:
        """Repeated context is resolved by the position hint."""
        text = "a cat. a cat. a cat."
        match = anchor_from_quote_context(text, "cat", prefix="a ", suffix=".", position_hint=15)
        assert match.start == 16


class TestQuoteOnly:
    """Tests for the bare quote search."""

    def test_strips_surrounding_quotes(self) -> None:
        """A quote stored with literal double quotes is searched without them."""
        candidates = quote_only_candidates('The "fox" and the fox', '"fox"')
        assert [c.start for c in candidates] == [5, 18]

    def test_blank_exact(self) -> None:
        """A blank quote never matches."""
        assert quote_only_candidates("text", "   ") == []

    def test_disambiguation_example(self) -> None:
        """In "ab se se cd" the first "se" is the only one with both sides matching."""
        match = anchor_from_quote_only("ab se se cd", "se", prefix="ab ", suffix=" se")
        assert (match.start, match.end) == (3, 5)

    def test_whitespace_fallback(self) -> None:
        """Whitespace differences inside the quote are tolerated."""
        match = anchor_from_quote_only("one brown\n\n fox two", "brown fox")
        assert (match.start, match.end) == (4, 15)
        assert match.normalized
