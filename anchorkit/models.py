"""
Annotation models.

An annotation pairs a Target (the page it belongs to plus its selector set)
with a body and highlight style. Annotations travel as camelCase payloads:

    id: 0d9c...
    target:
      source: https://example.org/article
      selector:
        range: {start: div[1]/p[2], end: div[1]/p[2], startOffset: 4, endOffset: 13}
        textPosition: {start: 120, end: 129}
        textQuote: {exact: brown fox, prefix: "The quick ", suffix: " jumps"}
    pageUrl: https://example.org/article
    highlightType: highlight
    highlightColor: rgba(255, 220, 0, 0.35)
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Self
from uuid import uuid4

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from anchorkit.config import DEFAULT_HIGHLIGHT_COLOR, DEFAULT_HIGHLIGHT_TYPE, validate_color
from anchorkit.selectors import SelectorSet


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class AnnotationBody(_Payload):
    """Free-text note attached to an annotation."""

    type: str = "TextualBody"
    value: str = ""


class Target(_Payload):
    """
    What an annotation points at.

    Attributes:
        source: Identifier of the document (usually its URL)
        selector: Redundant selectors for the selected span
    """

    source: str = ""
    selector: SelectorSet


class Annotation(_Payload):
    """
    A stored annotation.

    Attributes:
        id: Stable identifier, also written onto every mark
        target: Document and selectors
        page_url: Page the annotation was created on
        base_url: Origin of the page, for filtering
        project_id: Project the annotation belongs to
        body: Optional note
        created: Creation time (UTC)
        highlight_type: e.g. "highlight", "underline", "sticky-note"
        highlight_color: CSS colour of the mark
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    target: Target
    page_url: str | None = None
    base_url: str | None = None
    project_id: str | None = None
    body: AnnotationBody | None = None
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    highlight_type: str = DEFAULT_HIGHLIGHT_TYPE
    highlight_color: str = DEFAULT_HIGHLIGHT_COLOR

    @field_validator("highlight_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        validate_color(value)
        return value

    @property
    def selector(self) -> SelectorSet:
        return self.target.selector

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Self:
        """Create an annotation from its camelCase payload."""
        return cls.model_validate(data)

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the camelCase payload (JSON-compatible values only)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_yaml(cls, yaml_text: str) -> Self:
        """
        Load an annotation from YAML text.

        Example:
            annotation = Annotation.from_yaml('''
                target:
                  source: https://example.org/article
                  selector:
                    textQuote:
                      exact: brown fox
            ''')
        """
        return cls.from_payload(yaml.safe_load(yaml_text))

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> Self:
        """Load an annotation from a YAML file."""
        with open(path, encoding="utf-8") as f:
            return cls.from_payload(yaml.safe_load(f))
