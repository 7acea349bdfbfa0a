"""Batch orchestration: rows x documents -> one zip archive."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal

from core.forms.enrichment import Row
from core.forms.models import FormTemplate, OutputDescriptor
from core.forms.registry import TemplateRegistry
from core.orchestrator.archive import ZipAccumulator
from core.orchestrator.naming import (
    DEFAULT_NAME_MAX_LENGTH,
    build_archive_name,
    build_document_name,
)
from core.render.filler import fill_document
from core.render.models import BatchReport, BatchStatus, UnitOutcome
from core.render.pdf_form import DocumentLoader, PdfFormDocument
from core.templates.sources import TemplateSource, load_template_sources
from core.utils.errors import BatchPreconditionError, BatchRunError, TemplateSourceError

logger = logging.getLogger(__name__)

BatchState = Literal["idle", "running", "completed", "failed"]
ProgressCallback = Callable[[str], None]

REPORT_ENTRY_NAME = "batch_report.json"


@dataclass(frozen=True)
class BatchResult:
    """Finalized archive handed to the delivery surface."""

    archive_name: str
    archive_bytes: bytes
    report: BatchReport


@dataclass(frozen=True)
class _Unit:
    number: int
    row_index: int
    row: Row
    descriptor: OutputDescriptor


@dataclass
class _RunPlan:
    template: FormTemplate
    rows: list[Row]
    sources: dict[str, bytes]
    run_date: dt.date
    archive: ZipAccumulator = field(default_factory=ZipAccumulator)
    outcomes: list[UnitOutcome] = field(default_factory=list)

    @property
    def total_units(self) -> int:
        return len(self.rows) * self.template.documents_per_row

    def units(self) -> Iterator[_Unit]:
        number = 0
        for row_index, row in enumerate(self.rows):
            for descriptor in self.template.documents:
                number += 1
                yield _Unit(number=number, row_index=row_index, row=row, descriptor=descriptor)


class BatchOrchestrator:
    """Run one template over a sequence of rows, one unit at a time.

    States: ``idle -> running -> completed | failed``. Precondition failures
    leave the orchestrator ``idle``. A unit that fails to fill is recorded and
    skipped; anything failing outside a unit aborts the run and discards the
    archive.
    """

    def __init__(
        self,
        registry: TemplateRegistry,
        source: TemplateSource,
        *,
        name_column: str = "Tenant",
        name_max_length: int = DEFAULT_NAME_MAX_LENGTH,
        load_document: DocumentLoader = PdfFormDocument.load,
        progress: ProgressCallback | None = None,
        clock: Callable[[], dt.date] = dt.date.today,
        include_report: bool = False,
    ) -> None:
        self._registry = registry
        self._source = source
        self._name_column = name_column
        self._name_max_length = name_max_length
        self._load_document = load_document
        self._progress = progress
        self._clock = clock
        self._include_report = include_report
        self.state: BatchState = "idle"
        self.status = "Idle"

    def run(self, template_id: str | None, rows: Sequence[Row]) -> BatchResult:
        plan = self._start(template_id, rows)
        try:
            for unit in plan.units():
                self._process_unit(plan, unit)
                self._report_unit_done(plan, unit)
            return self._finish(plan)
        except BatchRunError:
            raise
        except Exception as exc:
            raise self._abort(plan, exc) from exc

    async def run_async(self, template_id: str | None, rows: Sequence[Row]) -> BatchResult:
        """Same as ``run`` but yields to the event loop between units."""

        plan = self._start(template_id, rows)
        try:
            for unit in plan.units():
                self._process_unit(plan, unit)
                self._report_unit_done(plan, unit)
                await asyncio.sleep(0)
            return self._finish(plan)
        except BatchRunError:
            raise
        except Exception as exc:
            raise self._abort(plan, exc) from exc

    def _start(self, template_id: str | None, rows: Sequence[Row]) -> _RunPlan:
        if self.state == "running":
            raise RuntimeError("A batch run is already in progress")

        if not template_id:
            raise self._reject("Please select a template.", reason="no_template")
        template = self._registry.resolve(template_id)
        if template is None:
            raise self._reject(f"Unknown template: {template_id}", reason="unknown_template")
        if not rows:
            raise self._reject(
                "No rows to process; upload a CSV with at least one data row.", reason="no_rows"
            )
        try:
            sources = load_template_sources(template, self._source)
        except TemplateSourceError as exc:
            raise self._reject(str(exc), reason="template_source") from exc

        plan = _RunPlan(
            template=template, rows=list(rows), sources=sources, run_date=self._clock()
        )
        self.state = "running"
        self.status = f"Processing {plan.total_units} document(s) from {len(plan.rows)} row(s)..."
        logger.info(
            "Batch started: template=%s rows=%d units=%d",
            template.template_id,
            len(plan.rows),
            plan.total_units,
        )
        return plan

    def _process_unit(self, plan: _RunPlan, unit: _Unit) -> None:
        descriptor = unit.descriptor
        try:
            filled = fill_document(
                plan.sources[descriptor.source_id],
                descriptor,
                unit.row,
                load_document=self._load_document,
                today=plan.run_date,
            )
            filename = build_document_name(
                unit.row,
                unit.row_index,
                descriptor,
                plan.template.documents_per_row,
                name_column=plan.template.name_column or self._name_column,
                max_length=self._name_max_length,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Unit %d/%d failed (row %d, %s): %s",
                unit.number,
                plan.total_units,
                unit.row_index + 1,
                descriptor.label,
                exc,
                exc_info=True,
            )
            plan.outcomes.append(
                UnitOutcome(
                    row_index=unit.row_index,
                    label=descriptor.label,
                    status="failed",
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                )
            )
            return

        plan.archive.add(filename, filled.content)
        plan.outcomes.append(
            UnitOutcome(
                row_index=unit.row_index,
                label=descriptor.label,
                status="success",
                filename=filename,
                report=filled.report,
            )
        )
        logger.info(
            "Unit %d/%d -> %s (%d fields, %d warnings)",
            unit.number,
            plan.total_units,
            filename,
            len(filled.report.filled_fields),
            len(filled.report.warnings),
        )

    def _finish(self, plan: _RunPlan) -> BatchResult:
        succeeded = sum(1 for outcome in plan.outcomes if outcome.status == "success")
        failed = len(plan.outcomes) - succeeded
        if succeeded == 0:
            report = self._build_report(plan, status="failed", archive_name=None)
            raise self._abort(plan, None, report=report)

        archive_name = build_archive_name(plan.template.template_id, today=plan.run_date)
        report = self._build_report(
            plan,
            status="completed" if failed == 0 else "partial",
            archive_name=archive_name,
        )
        if self._include_report:
            plan.archive.add(REPORT_ENTRY_NAME, report.model_dump_json(indent=2).encode("utf-8"))
        archive_bytes = plan.archive.finalize()

        self.state = "completed"
        self.status = report.summary_message()
        self._report_progress(self.status)
        logger.info("Batch %s: %s", report.status, self.status)
        return BatchResult(archive_name=archive_name, archive_bytes=archive_bytes, report=report)

    def _build_report(
        self, plan: _RunPlan, *, status: BatchStatus, archive_name: str | None
    ) -> BatchReport:
        succeeded = sum(1 for outcome in plan.outcomes if outcome.status == "success")
        return BatchReport(
            template_id=plan.template.template_id,
            status=status,
            row_count=len(plan.rows),
            documents_per_row=plan.template.documents_per_row,
            total_units=plan.total_units,
            succeeded=succeeded,
            failed=len(plan.outcomes) - succeeded,
            archive_name=archive_name,
            outcomes=list(plan.outcomes),
        )

    def _reject(self, message: str, *, reason: str) -> BatchPreconditionError:
        self.state = "idle"
        self.status = message
        logger.warning("Batch rejected (%s): %s", reason, message)
        return BatchPreconditionError(message, reason=reason)

    def _abort(
        self,
        plan: _RunPlan,
        exc: Exception | None,
        *,
        report: BatchReport | None = None,
    ) -> BatchRunError:
        plan.archive.discard()
        self.state = "failed"
        if exc is None:
            message = f"Error filling PDFs: all {plan.total_units} document(s) failed."
        else:
            message = f"Error filling PDFs: {exc}"
            report = self._build_report(plan, status="failed", archive_name=None)
        self.status = message
        self._report_progress(message)
        logger.error("Batch failed: %s", message)
        return BatchRunError(message, report=report)

    def _report_unit_done(self, plan: _RunPlan, unit: _Unit) -> None:
        self.status = (
            f"Processed {unit.number} of {plan.total_units} "
            f"(row {unit.row_index + 1}, {unit.descriptor.label})."
        )
        self._report_progress(self.status)

    def _report_progress(self, message: str) -> None:
        if self._progress is not None:
            self._progress(message)
