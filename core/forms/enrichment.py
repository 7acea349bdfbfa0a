"""Declarative post-mapping enrichment steps.

A document's post-processing rule is an ordered tuple of steps. Each step reads
the row, derives one value and writes it through the field setter. Steps run
after the static mapping, so they may overwrite mapped fields. A step that
cannot derive its value either returns quietly (nothing to enrich) or raises
``EnrichmentError``; ``apply_enrichment`` isolates every step from the others.
"""

from __future__ import annotations

import datetime as dt
import logging
import string
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Protocol

from core.reference.courts import COURT_ADDRESSES, ReferenceTable
from core.render.models import StepFailure
from core.utils.errors import EnrichmentError

logger = logging.getLogger(__name__)

Row = Mapping[str, str]


class FieldSink(Protocol):
    """Field-setter capability handed to enrichment steps."""

    today: dt.date

    def set(self, field_name: str, value: object, *, column: str | None = None) -> bool:
        """Write one value; return False when the field could not be set."""


class EnrichmentStep(Protocol):
    """One derived-field action."""

    @property
    def name(self) -> str:
        """Stable identifier used in reports."""

    def apply(self, sink: FieldSink, row: Row) -> None:
        """Derive and write the field, or raise ``EnrichmentError``."""


def row_value(row: Row, column: str) -> str | None:
    """Return the stripped cell value, or None when absent or blank."""

    value = row.get(column)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class CourtAddressStep:
    """Look up the row's county and write the one-line court address."""

    county_column: str
    target_field: str
    table: ReferenceTable = COURT_ADDRESSES

    @property
    def name(self) -> str:
        return f"court_address:{self.target_field}"

    def apply(self, sink: FieldSink, row: Row) -> None:
        county = row_value(row, self.county_column)
        record = self.table.lookup(county)
        if record is None:
            logger.info("No court address for %s=%r; skipping", self.county_column, county)
            return
        sink.set(self.target_field, record.one_line())


@dataclass(frozen=True)
class DateStampStep:
    """Write the run date into a field.

    The date comes from ``clock`` when one is given, otherwise from the sink's
    ``today``.
    """

    target_field: str
    date_format: str = "%m/%d/%Y"
    clock: Callable[[], dt.date] | None = None

    @property
    def name(self) -> str:
        return f"date_stamp:{self.target_field}"

    def apply(self, sink: FieldSink, row: Row) -> None:
        day = self.clock() if self.clock is not None else sink.today
        sink.set(self.target_field, day.strftime(self.date_format))


@dataclass(frozen=True)
class StripCurrencyStep:
    """Copy a money column into a field without its leading currency symbol.

    ``"$1,250"`` becomes ``"1,250.00"``. Malformed amounts raise
    ``EnrichmentError``.
    """

    source_column: str
    target_field: str
    symbol: str = "$"

    @property
    def name(self) -> str:
        return f"strip_currency:{self.target_field}"

    def apply(self, sink: FieldSink, row: Row) -> None:
        raw = row_value(row, self.source_column)
        if raw is None:
            return
        sink.set(self.target_field, format_amount(raw, symbol=self.symbol), column=self.source_column)


@dataclass(frozen=True)
class ComposeStep:
    """Fill a field from a ``str.format`` pattern over row columns.

    The step is skipped when any referenced column is absent or blank.
    """

    target_field: str
    pattern: str
    transforms: Mapping[str, Callable[[str], str]] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return f"compose:{self.target_field}"

    @property
    def columns(self) -> list[str]:
        names = []
        for _, field_name, _, _ in string.Formatter().parse(self.pattern):
            if field_name and field_name not in names:
                names.append(field_name)
        return names

    def apply(self, sink: FieldSink, row: Row) -> None:
        values: dict[str, str] = {}
        for column in self.columns:
            value = row_value(row, column)
            if value is None:
                logger.debug("Compose %s skipped: column %r is empty", self.target_field, column)
                return
            transform = self.transforms.get(column)
            values[column] = transform(value) if transform is not None else value
        sink.set(self.target_field, self.pattern.format_map(values))


@dataclass(frozen=True)
class CustomStep:
    """Escape hatch: run an arbitrary callable with the sink and row."""

    step_name: str
    action: Callable[[FieldSink, Row], None]

    @property
    def name(self) -> str:
        return f"custom:{self.step_name}"

    def apply(self, sink: FieldSink, row: Row) -> None:
        self.action(sink, row)


def format_amount(raw: str, *, symbol: str = "$") -> str:
    """Normalize a money string such as ``" $1,250.5"`` to ``"1,250.50"``."""

    text = raw.strip()
    if symbol and text.startswith(symbol):
        text = text[len(symbol) :].strip()
    try:
        amount = Decimal(text.replace(",", ""))
    except InvalidOperation as exc:
        raise EnrichmentError(f"Malformed amount: {raw!r}") from exc
    if not amount.is_finite():
        raise EnrichmentError(f"Malformed amount: {raw!r}")
    return f"{amount:,.2f}"


def apply_enrichment(
    steps: tuple[EnrichmentStep, ...], sink: FieldSink, row: Row
) -> list[StepFailure]:
    """Run every step; a failing step is logged and recorded, never raised."""

    failures: list[StepFailure] = []
    for step in steps:
        try:
            step.apply(sink, row)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Enrichment step %s failed: %s", step.name, exc)
            failures.append(
                StepFailure(step=step.name, error_type=type(exc).__name__, message=str(exc))
            )
    return failures
