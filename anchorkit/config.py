"""Shared configuration for the anchoring engine."""

# Characters of context stored before and after a quote
TEXT_QUOTE_CONTEXT_LENGTH = 32

# Disambiguation: bonus per matching context side, and the distance (in
# characters) beyond which a position hint contributes nothing
CONTEXT_MATCH_BONUS = 10
POSITION_HINT_SCALE = 100

# Elements whose contents never render as text
NON_RENDERING_TAGS = frozenset({"script", "style", "noscript", "template"})

# Marker vocabulary
HIGHLIGHT_CLASS = "annotator-highlight"
ANNOTATION_ID_ATTR = "data-annotation-id"
HIGHLIGHT_TYPE_ATTR = "data-highlight-type"
WRAPPER_ATTR = "data-annotator-wrapper"
SAVED_STYLE_ATTR = "data-annotator-style"

DEFAULT_HIGHLIGHT_TYPE = "highlight"
DEFAULT_HIGHLIGHT_COLOR = "rgba(255, 220, 0, 0.35)"

# Default location of the YAML annotation store used by the CLI
DEFAULT_STORE_FILE = "annotations.yaml"


def validate_context_length(length: int) -> None:
    """Validate a prefix or suffix length.

    Args:
        length: Number of context characters requested

    Raises:
        ValueError: If the length is negative
    """
    if length < 0:
        raise ValueError(f"Invalid context length: {length}. Expected 0 or more")


def validate_offsets(start: int, end: int) -> None:
    """Validate a pair of flat document offsets.

    Args:
        start: Start offset (inclusive)
        end: End offset (exclusive)

    Raises:
        ValueError: If an offset is negative or end precedes start
    """
    if start < 0 or end < 0:
        raise ValueError(f"Invalid offsets: ({start}, {end}). Offsets cannot be negative")
    if end < start:
        raise ValueError(f"Invalid offsets: ({start}, {end}). End precedes start")


def validate_color(color: str) -> None:
    """Validate a highlight colour before it is written into a style attribute.

    Raises:
        ValueError: If the colour is empty or would break out of the declaration
    """
    if not color.strip() or any(char in color for char in ";{}\"'"):
        raise ValueError(f"Invalid highlight color: '{color}'")
