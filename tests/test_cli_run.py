from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path

from typer.testing import CliRunner

from apps.cli.main import app
from core.forms.specs import DEMAND_NOTICE, FED_COMPLAINT
from core.orchestrator.naming import build_archive_name
from scripts.make_sample_templates import build_descriptor_pdf, build_form_pdf

runner = CliRunner()

_ROWS = (
    "Tenant,Landlord,Street Address,City,Zip,Rent Owed,Nonpayment,Lease Violation\n"
    "Jane Q. Public,Acme Rentals,1 Main St,Boulder,80302,$1250,yes,no\n"
    "Bob Roe,Acme Rentals,2 Oak Ave,Denver,80202,,true,\n"
)


def _write_templates(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / DEMAND_NOTICE.source_id).write_bytes(build_descriptor_pdf(DEMAND_NOTICE))
    return directory


def _write_rows(path: Path, text: str = _ROWS) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def _report_path(tmp_path: Path, template_id: str = "co_demand_notice") -> Path:
    archive = Path(build_archive_name(template_id))
    return tmp_path / "out" / f"{archive.stem}.report.json"


def _run_args(tmp_path: Path, *extra: str, template_id: str = "co_demand_notice") -> list[str]:
    return [
        "run",
        "--template-id",
        template_id,
        "--rows",
        str(tmp_path / "rows.csv"),
        "--templates-dir",
        str(tmp_path / "templates"),
        "--out-dir",
        str(tmp_path / "out"),
        *extra,
    ]


def test_cli_run_writes_archive_and_report(tmp_path: Path) -> None:
    _write_templates(tmp_path / "templates")
    _write_rows(tmp_path / "rows.csv")

    result = runner.invoke(app, _run_args(tmp_path))

    assert result.exit_code == 0, result.output
    assert "INFO: Processed 1 of 2 (row 1, Demand)." in result.output
    assert "INFO: success" in result.output

    archive = tmp_path / "out" / build_archive_name("co_demand_notice")
    with zipfile.ZipFile(io.BytesIO(archive.read_bytes())) as zipped:
        assert zipped.namelist() == ["Jane_Q__Public_1.pdf", "Bob_Roe_2.pdf"]

    report = json.loads(_report_path(tmp_path).read_text(encoding="utf-8"))
    assert report["status"] == "completed"
    assert report["succeeded"] == 2
    assert report["outcomes"][1]["report"]["skipped_columns"] == ["Lease Violation"]


def test_cli_runs_of_different_templates_keep_separate_reports(tmp_path: Path) -> None:
    templates = _write_templates(tmp_path / "templates")
    (templates / FED_COMPLAINT.source_id).write_bytes(build_descriptor_pdf(FED_COMPLAINT))
    _write_rows(tmp_path / "rows.csv")

    first = runner.invoke(app, _run_args(tmp_path))
    second = runner.invoke(app, _run_args(tmp_path, template_id="co_fed_complaint"))

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    notice = json.loads(_report_path(tmp_path).read_text(encoding="utf-8"))
    complaint = json.loads(
        _report_path(tmp_path, "co_fed_complaint").read_text(encoding="utf-8")
    )
    assert notice["template_id"] == "co_demand_notice"
    assert complaint["template_id"] == "co_fed_complaint"


def test_cli_unknown_template_is_precondition_failure(tmp_path: Path) -> None:
    _write_templates(tmp_path / "templates")
    _write_rows(tmp_path / "rows.csv")

    result = runner.invoke(app, _run_args(tmp_path, template_id="nope"))

    assert result.exit_code == 3
    assert "ERROR: Unknown template: nope" in result.output
    assert not (tmp_path / "out").exists()


def test_cli_header_only_csv_is_precondition_failure(tmp_path: Path) -> None:
    _write_templates(tmp_path / "templates")
    _write_rows(tmp_path / "rows.csv", "Tenant,City\n")

    result = runner.invoke(app, _run_args(tmp_path))

    assert result.exit_code == 3
    assert "No rows to process" in result.output


def test_cli_missing_template_file_is_precondition_failure(tmp_path: Path) -> None:
    (tmp_path / "templates").mkdir()
    _write_rows(tmp_path / "rows.csv")

    result = runner.invoke(app, _run_args(tmp_path))

    assert result.exit_code == 3
    assert "Template file not found" in result.output


def test_cli_all_units_failing_writes_failure_report(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / DEMAND_NOTICE.source_id).write_bytes(b"not a pdf at all")
    _write_rows(tmp_path / "rows.csv")

    result = runner.invoke(app, _run_args(tmp_path))

    assert result.exit_code == 1
    assert "ERROR: Error filling PDFs" in result.output
    report = json.loads(_report_path(tmp_path).read_text(encoding="utf-8"))
    assert report["status"] == "failed"
    assert report["error"]["stage"] == "run"
    assert not (tmp_path / "out" / build_archive_name("co_demand_notice")).exists()


def test_cli_rejects_force_with_no_overwrite(tmp_path: Path) -> None:
    _write_templates(tmp_path / "templates")
    _write_rows(tmp_path / "rows.csv")

    result = runner.invoke(app, _run_args(tmp_path, "--force", "--no-overwrite"))

    assert result.exit_code == 1
    assert "cannot be used together" in result.output


def test_cli_no_overwrite_blocks_existing_outputs(tmp_path: Path) -> None:
    _write_templates(tmp_path / "templates")
    _write_rows(tmp_path / "rows.csv")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    _report_path(tmp_path).write_text("{}", encoding="utf-8")

    result = runner.invoke(app, _run_args(tmp_path, "--no-overwrite"))

    assert result.exit_code == 1
    assert "--no-overwrite" in result.output
    assert _report_path(tmp_path).read_text(encoding="utf-8") == "{}"


def test_cli_templates_lists_registry() -> None:
    result = runner.invoke(app, ["templates"])

    assert result.exit_code == 0
    assert "co_fed_packet\tColorado FED Filing Packet" in result.output
    assert "  - Summons (jdf102_summons.pdf)" in result.output


def test_cli_fields_reports_kinds_and_coverage(tmp_path: Path) -> None:
    pdf = tmp_path / DEMAND_NOTICE.source_id
    pdf.write_bytes(build_descriptor_pdf(DEMAND_NOTICE))

    result = runner.invoke(
        app, ["fields", "--pdf", str(pdf), "--template-id", "co_demand_notice"]
    )

    assert result.exit_code == 0, result.output
    assert "Tenant Name\ttext" in result.output
    assert "Nonpayment\tcheckbox" in result.output
    assert "INFO: all mapped fields present" in result.output


def test_cli_fields_warns_about_missing_targets(tmp_path: Path) -> None:
    pdf = tmp_path / "partial.pdf"
    pdf.write_bytes(build_form_pdf(["Tenant Name"]))

    result = runner.invoke(
        app, ["fields", "--pdf", str(pdf), "--template-id", "co_demand_notice"]
    )

    assert result.exit_code == 2
    assert "WARNING: fields not in PDF:" in result.output
    assert "Landlord Name" in result.output
