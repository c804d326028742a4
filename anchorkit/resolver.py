"""
Anchoring: recover a live tree range from a stored selector set.

Four strategies run in a fixed order and the first one that yields a valid,
non-empty range wins:

1. structural   element paths + local offsets
2. position     global offsets against the current text
3. quote-context  prefix + exact + suffix search
4. quote-only   bare exact search with soft context scoring

Structural and position matches are rejected when a stored quote disagrees
with the text they cover. A validated structural or position match is final.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable

from anchorkit.errors import StaleSnapshotError
from anchorkit.logging_config import logger
from anchorkit.matcher import anchor_from_quote_context, anchor_from_quote_only
from anchorkit.selectors import SelectorSet, resolve_path

if TYPE_CHECKING:
    from anchorkit.document import Snapshot
    from anchorkit.models import Target
    from anchorkit.tree import TreeRange


class Strategy(str, Enum):
    """Anchoring strategies, in the order they are tried."""

    STRUCTURAL = "structural"
    POSITION = "position"
    QUOTE_CONTEXT = "quote-context"
    QUOTE_ONLY = "quote-only"


STRATEGY_ORDER = tuple(Strategy)


class AnchorStatus(str, Enum):
    """Outcome of resolving a selector set."""

    ANCHORED = "anchored"
    ORPHANED = "orphaned"


@dataclass
class AnchorResult:
    """A resolved range and the strategy that found it, or a definitive failure."""

    status: AnchorStatus
    strategy: Strategy | None = None
    range: TreeRange | None = None
    start: int | None = None
    end: int | None = None
    revision: int = 0
    """Document revision the range belongs to."""
    attempted: list[Strategy] = field(default_factory=list)

    @property
    def anchored(self) -> bool:
        return self.status == AnchorStatus.ANCHORED

    @property
    def orphaned(self) -> bool:
        return self.status == AnchorStatus.ORPHANED

    @property
    def error(self) -> str | None:
        if self.anchored:
            return None
        tried = ", ".join(strategy.value for strategy in self.attempted)
        return f"No strategy could anchor the selection (tried {tried})"


@dataclass
class TraceStep:
    """What one strategy did during a resolution."""

    strategy: Strategy
    outcome: str
    """One of "skipped", "failed", "rejected" or "matched"."""
    detail: str = ""
    start: int | None = None
    end: int | None = None


@dataclass
class ResolutionTrace:
    """Optional record of every strategy attempt in one resolution."""

    steps: list[TraceStep] = field(default_factory=list)

    def record(self, step: TraceStep) -> None:
        self.steps.append(step)

    @property
    def winner(self) -> Strategy | None:
        for step in self.steps:
            if step.outcome == "matched":
                return step.strategy
        return None

    def outcome_of(self, strategy: Strategy) -> str | None:
        for step in self.steps:
            if step.strategy == strategy:
                return step.outcome
        return None


class StrategyFailed(Exception):
    """Raised inside a strategy to fall through to the next one."""

    def __init__(self, reason: str, outcome: str = "failed") -> None:
        self.outcome = outcome
        super().__init__(reason)


def resolve(
    target: Target | SelectorSet,
    snapshot: Snapshot,
    trace: ResolutionTrace | None = None,
) -> AnchorResult:
    """
    Resolve stored selectors against the current document.

    Args:
        target: Target or bare selector set to resolve
        snapshot: Fresh snapshot of the document
        trace: Optional trace collecting one step per strategy

    Returns:
        AnchorResult; ORPHANED results name all four strategies

    Raises:
        StaleSnapshotError: If the snapshot no longer describes its document
    """
    if snapshot.stale:
        raise StaleSnapshotError(snapshot.revision, snapshot.document.revision)
    selectors = target if isinstance(target, SelectorSet) else target.selector

    with logger.indent_block(f"Resolving against snapshot r{snapshot.revision}"):
        for strategy in STRATEGY_ORDER:
            try:
                start, end = _STRATEGIES[strategy](selectors, snapshot)
                tree_range = snapshot.offsets_to_tree_range(start, end)
                if tree_range is None:
                    raise StrategyFailed(f"offsets {start}-{end} cannot be mapped")
            except StrategyFailed as failure:
                logger.debug(f"{strategy.value}: {failure.outcome} ({failure})")
                if trace is not None:
                    trace.record(TraceStep(strategy, failure.outcome, str(failure)))
                continue

            logger.debug(f"{strategy.value}: matched {start}-{end}")
            if trace is not None:
                trace.record(TraceStep(strategy, "matched", start=start, end=end))
            return AnchorResult(
                status=AnchorStatus.ANCHORED,
                strategy=strategy,
                range=tree_range,
                start=start,
                end=end,
                revision=snapshot.revision,
                attempted=list(STRATEGY_ORDER[: STRATEGY_ORDER.index(strategy) + 1]),
            )

    result = AnchorResult(
        status=AnchorStatus.ORPHANED,
        revision=snapshot.revision,
        attempted=list(STRATEGY_ORDER),
    )
    logger.debug(result.error)
    return result


def _check_span(start: int, end: int) -> None:
    if end <= start:
        raise StrategyFailed(f"range {start}-{end} is collapsed")


def _validate_quote(selectors: SelectorSet, snapshot: Snapshot, start: int, end: int) -> None:
    """Reject a span whose trimmed text disagrees with the stored quote."""
    if selectors.quote is None:
        return
    actual = snapshot.text[start:end].strip()
    expected = selectors.quote.exact.strip()
    if actual != expected:
        raise StrategyFailed(f"text {actual[:40]!r} does not match quote {expected[:40]!r}", "rejected")


def _global_offset(snapshot: Snapshot, path: str, local_offset: int) -> int:
    element = resolve_path(snapshot.root, path)
    if element is None:
        raise StrategyFailed(f"path '{path}' not found")
    extent = snapshot.text_extent(element)
    if extent is None:
        raise StrategyFailed(f"element at '{path}' holds no document text")
    if local_offset > extent[1] - extent[0]:
        raise StrategyFailed(f"offset {local_offset} is beyond the text of '{path}'")
    return extent[0] + local_offset


def _anchor_structural(selectors: SelectorSet, snapshot: Snapshot) -> tuple[int, int]:
    selector = selectors.structural
    if selector is None:
        raise StrategyFailed("no structural selector", "skipped")
    start = _global_offset(snapshot, selector.start, selector.start_offset)
    end = _global_offset(snapshot, selector.end, selector.end_offset)
    _check_span(start, end)
    _validate_quote(selectors, snapshot, start, end)
    return start, end


def _anchor_position(selectors: SelectorSet, snapshot: Snapshot) -> tuple[int, int]:
    selector = selectors.position
    if selector is None:
        raise StrategyFailed("no position selector", "skipped")
    if selector.end > len(snapshot.text):
        raise StrategyFailed(f"offsets {selector.start}-{selector.end} are out of bounds")
    _check_span(selector.start, selector.end)
    _validate_quote(selectors, snapshot, selector.start, selector.end)
    return selector.start, selector.end


def _position_hint(selectors: SelectorSet) -> int | None:
    return selectors.position.start if selectors.position is not None else None


def _anchor_quote_context(selectors: SelectorSet, snapshot: Snapshot) -> tuple[int, int]:
    quote = selectors.quote
    if quote is None or not quote.exact.strip():
        raise StrategyFailed("no quote selector", "skipped")
    match = anchor_from_quote_context(
        snapshot.text, quote.exact, quote.prefix, quote.suffix, _position_hint(selectors)
    )
    if match is None:
        raise StrategyFailed("quote with context not found")
    _check_span(match.start, match.end)
    return match.start, match.end


def _anchor_quote_only(selectors: SelectorSet, snapshot: Snapshot) -> tuple[int, int]:
    quote = selectors.quote
    if quote is None or not quote.exact.strip():
        raise StrategyFailed("no quote selector", "skipped")
    match = anchor_from_quote_only(
        snapshot.text, quote.exact, quote.prefix, quote.suffix, _position_hint(selectors)
    )
    if match is None:
        raise StrategyFailed("quote not found")
    _check_span(match.start, match.end)
    return match.start, match.end


_STRATEGIES: dict[Strategy, Callable[[SelectorSet, Snapshot], tuple[int, int]]] = {
    Strategy.STRUCTURAL: _anchor_structural,
    Strategy.POSITION: _anchor_position,
    Strategy.QUOTE_CONTEXT: _anchor_quote_context,
    Strategy.QUOTE_ONLY: _anchor_quote_only,
}
