"""Delimited-text row source."""

from __future__ import annotations

import csv
import io
from pathlib import Path

_BOM = "\ufeff"


def parse_rows(text: str, *, delimiter: str = ",") -> list[dict[str, str]]:
    """Parse CSV text with a header line into string-keyed rows.

    Empty lines are skipped. A line of only delimiters or whitespace is kept as
    a row of blank values so later rows keep their position. Cells missing at
    the end of a short line are left out of that row rather than set to an
    empty string; extra cells beyond the header are dropped. Values are never
    coerced.
    """

    if text.startswith(_BOM):
        text = text[len(_BOM) :]

    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows: list[dict[str, str]] = []
    for record in reader:
        row = {
            column: value
            for column, value in record.items()
            if column is not None and value is not None
        }
        rows.append(row)
    return rows


def read_rows(path: Path, *, delimiter: str = ",") -> list[dict[str, str]]:
    return parse_rows(path.read_text(encoding="utf-8-sig"), delimiter=delimiter)


def column_names(text: str, *, delimiter: str = ",") -> list[str]:
    """Return the header columns of CSV text."""

    if text.startswith(_BOM):
        text = text[len(_BOM) :]
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    for header in reader:
        if any(cell.strip() for cell in header):
            return header
    return []
