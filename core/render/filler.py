"""Apply one output document descriptor to one row."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from core.forms.enrichment import Row, apply_enrichment
from core.forms.models import OutputDescriptor, normalize_targets
from core.render.models import FieldWarning, FieldWarningReason, FillReport
from core.render.pdf_form import DocumentLoader, FormDocument, PdfFormDocument
from core.utils.errors import FieldKindError, FieldNotFoundError

logger = logging.getLogger(__name__)

_AFFIRMATIVE_VALUES = frozenset({"true", "yes"})


def is_checked_value(value: str) -> bool:
    """Checkbox interpretation: "true"/"yes" in any case, or exactly "1"."""

    return value.lower() in _AFFIRMATIVE_VALUES or value == "1"


class FieldSetter:
    """Text-first, checkbox-fallback writer that records per-field warnings."""

    def __init__(
        self, document: FormDocument, *, label: str, today: dt.date | None = None
    ) -> None:
        self._document = document
        self._label = label
        self.today = today or dt.date.today()
        self.filled_fields: list[str] = []
        self.warnings: list[FieldWarning] = []

    def set(self, field_name: str, value: object, *, column: str | None = None) -> bool:
        text = str(value)
        try:
            self._document.set_text(field_name, text)
        except FieldNotFoundError as exc:
            self._warn(field_name, "not_found", column, str(exc))
            return False
        except FieldKindError:
            checked = is_checked_value(text)
            try:
                self._document.set_checkbox(field_name, checked)
            except (FieldNotFoundError, FieldKindError) as exc:
                self._warn(field_name, "unsupported_kind", column, str(exc))
                return False
            logger.debug("[%s] checkbox %r = %s", self._label, field_name, checked)
        else:
            logger.debug("[%s] text %r = %r", self._label, field_name, text)

        if field_name not in self.filled_fields:
            self.filled_fields.append(field_name)
        return True

    def _warn(
        self, field_name: str, reason: FieldWarningReason, column: str | None, detail: str
    ) -> None:
        logger.warning("[%s] field %r skipped (%s): %s", self._label, field_name, reason, detail)
        self.warnings.append(
            FieldWarning(field_name=field_name, reason=reason, column=column, detail=detail)
        )


@dataclass(frozen=True)
class FilledDocument:
    """Filled PDF bytes plus diagnostics for one unit."""

    content: bytes
    report: FillReport


def fill_document(
    template_bytes: bytes,
    descriptor: OutputDescriptor,
    row: Row,
    *,
    load_document: DocumentLoader = PdfFormDocument.load,
    today: dt.date | None = None,
) -> FilledDocument:
    """Load a private copy of the template, map the row, enrich, serialize.

    ``today`` is the run date seen by date-stamping steps.
    """

    document = load_document(template_bytes)
    setter = FieldSetter(document, label=descriptor.label, today=today)
    skipped_columns: list[str] = []

    for column, targets in descriptor.mapping.items():
        value = row.get(column)
        if value is None or value == "":
            skipped_columns.append(column)
            continue
        for field_name in normalize_targets(targets):
            setter.set(field_name, value, column=column)

    step_failures = apply_enrichment(descriptor.enrichment, setter, row)
    content = document.save()

    return FilledDocument(
        content=content,
        report=FillReport(
            label=descriptor.label,
            filled_fields=setter.filled_fields,
            skipped_columns=skipped_columns,
            warnings=setter.warnings,
            step_failures=step_failures,
        ),
    )
