"""Exceptions raised by the anchoring engine."""


class AnchorkitError(Exception):
    """Base class for all anchoring errors."""


class SelectorBuildError(AnchorkitError):
    """Raised when a selection cannot be described by a selector set."""

    def __init__(self, reason: str, context: str = "") -> None:
        """Initialize the error.

        Args:
            reason: Why the selectors could not be built
            context: Optional description of the offending boundary
        """
        self.reason = reason
        msg = f"Cannot build selectors: {reason}"
        if context:
            msg = f"{msg} ({context})"
        super().__init__(msg)


class StaleSnapshotError(AnchorkitError):
    """Raised when a snapshot is used after its document was mutated."""

    def __init__(self, snapshot_revision: int, document_revision: int) -> None:
        self.snapshot_revision = snapshot_revision
        self.document_revision = document_revision
        super().__init__(
            f"Snapshot of revision {snapshot_revision} is stale "
            f"(document is at revision {document_revision})"
        )


class StoreError(AnchorkitError):
    """Raised when an annotation store cannot be read or written."""
