"""Annotation stores: the persistence collaborator of the engine."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import yaml
from pydantic import ValidationError

from anchorkit.errors import StoreError
from anchorkit.logging_config import logger
from anchorkit.models import Annotation


@dataclass
class LoadFilter:
    """Criteria for loading annotations; unset fields match everything."""

    page_url: str | None = None
    base_url: str | None = None
    project_id: str | None = None

    def matches(self, annotation: Annotation) -> bool:
        if self.page_url and self.page_url not in (annotation.page_url, annotation.target.source):
            return False
        if self.base_url and annotation.base_url != self.base_url:
            return False
        if self.project_id and annotation.project_id != self.project_id:
            return False
        return True


class AnnotationStore(Protocol):
    """Protocol for annotation persistence."""

    def load(self, load_filter: LoadFilter | None = None) -> list[Annotation]:
        """Annotations matching the filter, in insertion order."""
        ...

    def save(self, annotation: Annotation) -> Annotation:
        """Insert or replace an annotation by id; returns the stored annotation."""
        ...

    def delete(self, annotation_id: str) -> None:
        """Remove an annotation; unknown ids are ignored."""
        ...


class MemoryStore:
    """In-memory store, for tests and short-lived sessions."""

    def __init__(self, annotations: list[Annotation] | None = None) -> None:
        self._annotations: dict[str, Annotation] = {}
        for annotation in annotations or []:
            self.save(annotation)

    def load(self, load_filter: LoadFilter | None = None) -> list[Annotation]:
        load_filter = load_filter or LoadFilter()
        return [a for a in self._annotations.values() if load_filter.matches(a)]

    def save(self, annotation: Annotation) -> Annotation:
        self._annotations[annotation.id] = annotation
        return annotation

    def delete(self, annotation_id: str) -> None:
        self._annotations.pop(annotation_id, None)

    def __len__(self) -> int:
        return len(self._annotations)


class YamlStore:
    """
    Store backed by a YAML file of the form::

        annotations:
          - id: ...
            target: ...

    The file is read on every load and rewritten on every change.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> list[Annotation]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise StoreError(f"Cannot parse annotation file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Annotation file {self.path} must contain a mapping")

        annotations = []
        for index, item in enumerate(data.get("annotations") or []):
            try:
                annotations.append(Annotation.from_payload(item))
            except ValidationError as e:
                raise StoreError(f"Invalid annotation #{index} in {self.path}: {e}") from e
        return annotations

    def _write(self, annotations: list[Annotation]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"annotations": [annotation.to_payload() for annotation in annotations]}
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, allow_unicode=True, sort_keys=False, default_flow_style=False)
        logger.debug(f"Wrote {len(annotations)} annotation(s) to {self.path}")

    def load(self, load_filter: LoadFilter | None = None) -> list[Annotation]:
        load_filter = load_filter or LoadFilter()
        return [a for a in self._read() if load_filter.matches(a)]

    def save(self, annotation: Annotation) -> Annotation:
        annotations = self._read()
        for index, existing in enumerate(annotations):
            if existing.id == annotation.id:
                annotations[index] = annotation
                break
        else:
            annotations.append(annotation)
        self._write(annotations)
        return annotation

    def delete(self, annotation_id: str) -> None:
        annotations = self._read()
        remaining = [a for a in annotations if a.id != annotation_id]
        if len(remaining) != len(annotations):
            self._write(remaining)
