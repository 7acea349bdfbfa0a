"""Output file naming for filled documents and archives."""

from __future__ import annotations

import datetime as dt
import re

from core.forms.enrichment import Row
from core.forms.models import OutputDescriptor

DEFAULT_NAME_MAX_LENGTH = 50

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")


def sanitize_base(value: str, *, max_length: int = DEFAULT_NAME_MAX_LENGTH) -> str:
    return _UNSAFE_CHARS.sub("_", value)[:max_length]


def build_document_name(
    row: Row,
    row_index: int,
    descriptor: OutputDescriptor,
    total_descriptors: int,
    *,
    name_column: str = "Tenant",
    max_length: int = DEFAULT_NAME_MAX_LENGTH,
) -> str:
    """Return ``<base>_<n>.pdf`` or ``<base>_<n>_<label-slug>.pdf``.

    ``base`` is the identifying column value, or ``Row_<n>`` when it is absent
    or empty; ``n`` is the 1-based row number.
    """

    number = row_index + 1
    raw_base = row.get(name_column) or f"Row_{number}"
    base = sanitize_base(str(raw_base), max_length=max_length)
    if total_descriptors == 1:
        return f"{base}_{number}.pdf"
    return f"{base}_{number}_{descriptor.slug}.pdf"


def build_archive_name(template_id: str, *, today: dt.date | None = None) -> str:
    day = today or dt.date.today()
    return f"{template_id}-filled-forms-{day.isoformat()}.zip"
