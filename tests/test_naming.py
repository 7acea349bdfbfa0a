from __future__ import annotations

import datetime as dt

from core.forms.models import OutputDescriptor
from core.orchestrator.naming import build_archive_name, build_document_name, sanitize_base

COMPLAINT = OutputDescriptor("c.pdf", "Complaint", {"Tenant": "A"})
SUMMONS = OutputDescriptor("s.pdf", "Summons", {"Tenant": "A"})


def test_single_document_name_uses_sanitized_column() -> None:
    name = build_document_name({"Tenant": "Jane Q. Public"}, 0, COMPLAINT, 1)

    assert name == "Jane_Q__Public_1.pdf"


def test_multi_document_names_append_label_slug() -> None:
    row = {"Tenant": "Jane Q. Public"}

    names = [build_document_name(row, 0, doc, 2) for doc in (COMPLAINT, SUMMONS)]

    assert names == ["Jane_Q__Public_1_complaint.pdf", "Jane_Q__Public_1_summons.pdf"]


def test_missing_name_column_falls_back_to_row_number() -> None:
    assert build_document_name({}, 4, COMPLAINT, 1) == "Row_5_5.pdf"
    assert build_document_name({"Tenant": ""}, 0, COMPLAINT, 1) == "Row_1_1.pdf"


def test_label_slug_collapses_whitespace() -> None:
    notice = OutputDescriptor("n.pdf", "Notice  To Quit", {"Tenant": "A"})

    assert build_document_name({"Tenant": "Bo"}, 1, notice, 3) == "Bo_2_notice_to_quit.pdf"


def test_custom_name_column() -> None:
    row = {"Case Number": "2024C-001", "Tenant": "Jane"}

    name = build_document_name(row, 0, COMPLAINT, 1, name_column="Case Number")

    assert name == "2024C_001_1.pdf"


def test_sanitize_truncates_to_max_length() -> None:
    assert sanitize_base("x" * 80) == "x" * 50
    assert sanitize_base("Ünïcode name", max_length=5) == "_n_co"


def test_archive_name_is_dated() -> None:
    name = build_archive_name("co_fed_packet", today=dt.date(2024, 6, 1))

    assert name == "co_fed_packet-filled-forms-2024-06-01.zip"
