"""Fill and batch report models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FieldWarningReason = Literal["not_found", "unsupported_kind"]
UnitStatus = Literal["success", "failed"]
BatchStatus = Literal["completed", "partial", "failed"]


class FieldWarning(BaseModel):
    """A target field that could not be written; never fatal."""

    model_config = ConfigDict(extra="forbid")

    field_name: str
    reason: FieldWarningReason
    column: str | None = None
    detail: str | None = None


class StepFailure(BaseModel):
    """An enrichment step that raised; the remaining steps still ran."""

    model_config = ConfigDict(extra="forbid")

    step: str
    error_type: str
    message: str


class FillReport(BaseModel):
    """Per-document diagnostics for one (row, document) unit."""

    model_config = ConfigDict(extra="forbid")

    label: str
    filled_fields: list[str] = Field(default_factory=list)
    skipped_columns: list[str] = Field(default_factory=list)
    warnings: list[FieldWarning] = Field(default_factory=list)
    step_failures: list[StepFailure] = Field(default_factory=list)


class UnitOutcome(BaseModel):
    """Structured result of one (row, document) unit."""

    model_config = ConfigDict(extra="forbid")

    row_index: int
    label: str
    status: UnitStatus
    filename: str | None = None
    report: FillReport | None = None
    error_type: str | None = None
    error_message: str | None = None


class BatchReport(BaseModel):
    """Summary of one batch run.

    Rules:
    - total_units == rows * documents per row
    - succeeded + failed == len(outcomes)
    - status is "partial" when some but not all units failed
    """

    model_config = ConfigDict(extra="forbid")

    template_id: str
    status: BatchStatus
    row_count: int
    documents_per_row: int
    total_units: int
    succeeded: int
    failed: int
    archive_name: str | None = None
    outcomes: list[UnitOutcome] = Field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return sum(
            len(outcome.report.warnings)
            for outcome in self.outcomes
            if outcome.report is not None
        )

    def summary_message(self) -> str:
        if self.status == "completed":
            return f"Generated {self.succeeded} PDF(s) from {self.row_count} row(s)."
        if self.status == "partial":
            return (
                f"Generated {self.succeeded} of {self.total_units} PDF(s); "
                f"{self.failed} failed."
            )
        return f"No PDFs generated; {self.failed} of {self.total_units} unit(s) failed."
