"""
Text search for quote-based anchoring.

Finds a stored quote in document text, first verbatim and then with all
whitespace runs collapsed, and scores multiple candidates against the stored
prefix, suffix and position hint.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass

from pydantic import BaseModel

from anchorkit.config import CONTEXT_MATCH_BONUS, POSITION_HINT_SCALE
from anchorkit.logging_config import logger

_WHITESPACE_RUN = re.compile(r"\s+")
_RUN_OR_CHAR = re.compile(r"\s+|\S")
_QUOTED = re.compile(r'^"[^"]*"$')


class Match(BaseModel):
    """
    A candidate location of a quote in document text.

    Attributes:
        start: Character offset where the match begins
        end: Character offset where the match ends
        matched_text: The document text covered by the match
        score: Disambiguation score (0 when not scored)
        prefix_matched: Whether the text before the match agrees with the stored prefix
        suffix_matched: Whether the text after the match agrees with the stored suffix
        normalized: True if found only after collapsing whitespace
    """

    start: int
    end: int
    matched_text: str = ""
    score: float = 0.0
    prefix_matched: bool = False
    suffix_matched: bool = False
    normalized: bool = False


@dataclass(frozen=True)
class NormalizedText:
    """Whitespace-collapsed text with a map back to the original.

    ``starts[i]`` and ``ends[i]`` delimit the original characters that
    produced normalized character ``i``.
    """

    text: str
    starts: list[int]
    ends: list[int]

    def to_original(self, start: int, end: int) -> tuple[int, int]:
        """Map a normalized span [start, end) to original offsets."""
        if start >= len(self.starts):
            edge = self.ends[-1] if self.ends else 0
            return (edge, edge)
        original_start = self.starts[start]
        if end <= start:
            return (original_start, original_start)
        return (original_start, self.ends[min(end, len(self.ends)) - 1])

    def from_original(self, offset: int) -> int:
        """Index of the normalized character produced from original offset."""
        return max(0, bisect_right(self.starts, offset) - 1)


def normalize_whitespace(text: str) -> NormalizedText:
    """Collapse whitespace runs to one space and trim both ends."""
    chars: list[str] = []
    starts: list[int] = []
    ends: list[int] = []
    for token in _RUN_OR_CHAR.finditer(text):
        is_space = token.group().isspace()
        if is_space and not chars:
            continue
        chars.append(" " if is_space else token.group())
        starts.append(token.start())
        ends.append(token.end())
    if chars and chars[-1] == " ":
        chars.pop()
        starts.pop()
        ends.pop()
    return NormalizedText(text="".join(chars), starts=starts, ends=ends)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text).strip()


def find_all(text: str, needle: str) -> list[int]:
    """Start offsets of every occurrence of needle, overlapping ones included."""
    if not needle:
        return []
    positions = []
    index = text.find(needle)
    while index >= 0:
        positions.append(index)
        index = text.find(needle, index + 1)
    return positions


def score_candidate(
    text: str,
    match: Match,
    prefix: str = "",
    suffix: str = "",
    position_hint: int | None = None,
) -> Match:
    """Score one candidate against the stored context and position hint.

    The ``len(prefix)`` characters before the candidate must end with the
    stored prefix once both are trimmed (likewise the suffix, at the start of
    the following characters). An empty prefix or suffix always agrees.
    """
    before = text[max(0, match.start - len(prefix)) : match.start]
    after = text[match.end : match.end + len(suffix)]
    prefix_matched = not prefix or before == prefix or before.strip().endswith(prefix.strip())
    suffix_matched = not suffix or after.startswith(suffix) or after.strip().startswith(suffix.strip())

    score = 0.0
    if prefix_matched:
        score += CONTEXT_MATCH_BONUS
    if suffix_matched:
        score += CONTEXT_MATCH_BONUS
    if position_hint is not None:
        score += max(0.0, POSITION_HINT_SCALE - _distance(match, position_hint))

    return match.model_copy(
        update={"score": score, "prefix_matched": prefix_matched, "suffix_matched": suffix_matched}
    )


def _distance(match: Match, position_hint: int) -> float:
    return abs((match.start + match.end) / 2 - position_hint)


def rank_matches(
    text: str,
    matches: list[Match],
    prefix: str = "",
    suffix: str = "",
    position_hint: int | None = None,
) -> list[Match]:
    """Order candidates best first.

    If any candidate agrees with both a non-empty prefix and suffix, only
    those candidates are kept. Ties fall back to the nearest to the position
    hint, then to document order.
    """
    scored = [score_candidate(text, m, prefix, suffix, position_hint) for m in matches]
    if prefix or suffix:
        with_context = [m for m in scored if m.prefix_matched and m.suffix_matched]
        if with_context:
            scored = with_context

    def sort_key(m: Match) -> tuple[float, float, int]:
        distance = _distance(m, position_hint) if position_hint is not None else 0.0
        return (-m.score, distance, m.start)

    return sorted(scored, key=sort_key)


def pick_best_match(
    text: str,
    matches: list[Match],
    prefix: str = "",
    suffix: str = "",
    position_hint: int | None = None,
) -> Match | None:
    """Pick one candidate, or None if there are no candidates."""
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]
    ranked = rank_matches(text, matches, prefix, suffix, position_hint)
    logger.debug(
        f"Picked {ranked[0].start}-{ranked[0].end} (score {ranked[0].score:g}) "
        f"of {len(matches)} candidates"
    )
    return ranked[0]


def quote_context_candidates(text: str, exact: str, prefix: str = "", suffix: str = "") -> list[Match]:
    """Find ``prefix + exact + suffix`` and return spans of the exact part.

    Falls back to whitespace-collapsed search when there is no verbatim hit.
    """
    if not exact.strip():
        return []

    needle = prefix + exact + suffix
    hits = find_all(text, needle)
    if hits:
        return [
            Match(
                start=hit + len(prefix),
                end=hit + len(prefix) + len(exact),
                matched_text=exact,
            )
            for hit in hits
        ]

    normalized_text = normalize_whitespace(text)
    normalized_needle = normalize_whitespace(needle)
    hits = find_all(normalized_text.text, normalized_needle.text)
    if not hits:
        return []

    # Position of the exact part inside the collapsed needle
    exact_start = normalized_needle.from_original(len(prefix) + _leading_space(exact))
    exact_end = normalized_needle.from_original(len(prefix) + len(exact.rstrip()) - 1) + 1

    matches = []
    for hit in hits:
        start, end = normalized_text.to_original(hit + exact_start, hit + exact_end)
        matches.append(Match(start=start, end=end, matched_text=text[start:end], normalized=True))
    return matches


def quote_only_candidates(text: str, exact: str) -> list[Match]:
    """Find the trimmed exact text, verbatim first, then whitespace-collapsed."""
    needle = exact.strip()
    if _QUOTED.match(needle):
        needle = needle[1:-1].strip()
    if not needle:
        return []

    hits = find_all(text, needle)
    if hits:
        return [Match(start=hit, end=hit + len(needle), matched_text=needle) for hit in hits]

    normalized_text = normalize_whitespace(text)
    normalized_needle = collapse_whitespace(needle)
    matches = []
    for hit in find_all(normalized_text.text, normalized_needle):
        start, end = normalized_text.to_original(hit, hit + len(normalized_needle))
        matches.append(Match(start=start, end=end, matched_text=text[start:end], normalized=True))
    return matches


def _leading_space(text: str) -> int:
    return len(text) - len(text.lstrip())


def anchor_from_quote_context(
    text: str,
    exact: str,
    prefix: str = "",
    suffix: str = "",
    position_hint: int | None = None,
) -> Match | None:
    """Locate a quote by its surrounding context.

    Context is already part of the search needle, so several hits are told
    apart by the position hint alone.
    """
    candidates = quote_context_candidates(text, exact, prefix, suffix)
    logger.debug(f"Context search found {len(candidates)} candidate(s)")
    return pick_best_match(text, candidates, position_hint=position_hint)


def anchor_from_quote_only(
    text: str,
    exact: str,
    prefix: str = "",
    suffix: str = "",
    position_hint: int | None = None,
) -> Match | None:
    """Locate a bare quote, using context and position hint as soft signals."""
    candidates = quote_only_candidates(text, exact)
    logger.debug(f"Quote search found {len(candidates)} candidate(s)")
    return pick_best_match(text, candidates, prefix, suffix, position_hint)
