"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.render.models import BatchReport


class FieldNotFoundError(LookupError):
    """Raised when a target field does not exist in the loaded form."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"Field not found: {field_name}")
        self.field_name = field_name


class FieldKindError(TypeError):
    """Raised when a field exists but is not of the requested kind."""

    def __init__(self, field_name: str, *, expected: str, actual: str | None) -> None:
        super().__init__(f"Field '{field_name}' is {actual or 'untyped'}, not {expected}")
        self.field_name = field_name
        self.expected = expected
        self.actual = actual


class EnrichmentError(Exception):
    """Raised by one enrichment step; never escapes the step runner."""


class TemplateSourceError(Exception):
    """Raised when template source bytes cannot be fetched."""

    def __init__(self, message: str, *, source_id: str) -> None:
        super().__init__(message)
        self.source_id = source_id


class DuplicateEntryError(ValueError):
    """Raised when an archive entry name is added twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate archive entry: {name}")
        self.name = name


class BatchPreconditionError(Exception):
    """Raised before a run starts when its inputs are not ready."""

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class BatchRunError(Exception):
    """Raised when a started run aborts; accumulated output is discarded."""

    def __init__(self, message: str, *, report: BatchReport | None = None) -> None:
        super().__init__(message)
        self.report = report
