"""Typer CLI entrypoint for formfill-agent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer

from apps.cli.io import (
    build_output_paths,
    existing_output_files,
    write_batch_output_atomic,
    write_failure_report_atomic,
)
from core.config.settings_loader import load_settings
from core.forms.registry import build_default_registry
from core.orchestrator.batch import BatchOrchestrator
from core.orchestrator.naming import build_archive_name
from core.render.pdf_form import PdfFormDocument
from core.rows.csv_source import read_rows
from core.templates.sources import DirectoryTemplateSource
from core.utils.errors import BatchPreconditionError, BatchRunError

app = typer.Typer(help="Eviction form batch filler CLI", rich_markup_mode=None)
registry = build_default_registry()


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep `formfill run` as explicit command form."""


@app.command("run")
def run_command(
    template_id: Annotated[str, typer.Option("--template-id", help="Registered template id.")],
    rows: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    templates_dir: Annotated[
        Path | None,
        typer.Option(help="Directory with blank form PDFs; defaults to settings."),
    ] = None,
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    settings: Annotated[Path | None, typer.Option()] = None,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool,
        typer.Option(
            "--no-overwrite",
            help="Fail when outputs already exist.",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log per-field diagnostics to stderr.")
    ] = False,
) -> None:
    """Fill every row of a CSV into the template's PDFs and write one zip."""

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if force and no_overwrite:
        typer.echo("ERROR: --force and --no-overwrite cannot be used together.")
        raise typer.Exit(code=1)

    try:
        settings_model = load_settings(settings)
        row_data = read_rows(rows)
    except (ValueError, OSError, UnicodeDecodeError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    paths = build_output_paths(out_dir, build_archive_name(template_id))
    existing = existing_output_files(paths)
    if existing and no_overwrite:
        typer.echo("ERROR: outputs already exist and --no-overwrite is enabled.")
        raise typer.Exit(code=1)
    if existing:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"INFO: overwriting existing outputs: {names}")

    orchestrator = BatchOrchestrator(
        registry,
        DirectoryTemplateSource(templates_dir or settings_model.templates_dir),
        name_column=settings_model.name_column,
        name_max_length=settings_model.name_max_length,
        progress=lambda message: typer.echo(f"INFO: {message}"),
    )

    try:
        result = orchestrator.run(template_id, row_data)
    except BatchPreconditionError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=3) from exc
    except BatchRunError as exc:
        typer.echo(f"ERROR: {exc}")
        _safe_write_failure_report(paths.report, exc)
        raise typer.Exit(code=1) from exc

    paths = build_output_paths(out_dir, result.archive_name)
    try:
        write_batch_output_atomic(paths, result)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: write output failed: {exc}")
        raise typer.Exit(code=1) from exc

    warning_count = result.report.warning_count
    if warning_count:
        typer.echo(f"WARNING: {warning_count} field(s) could not be set; see {paths.report.name}.")
    typer.echo(f"INFO: wrote {paths.archive}")

    if result.report.status == "partial":
        raise typer.Exit(code=2)
    typer.echo("INFO: success")
    raise typer.Exit(code=0)


@app.command("templates")
def templates_command() -> None:
    """List registered templates and the documents each produces per row."""

    for template in registry.list_templates():
        typer.echo(f"{template.template_id}\t{template.display_name}")
        for document in template.documents:
            typer.echo(f"  - {document.label} ({document.source_id})")


@app.command("fields")
def fields_command(
    pdf: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    template_id: Annotated[
        str | None,
        typer.Option("--template-id", help="Report mapped fields missing from the PDF."),
    ] = None,
) -> None:
    """Enumerate the form fields of a PDF and their kinds."""

    try:
        document = PdfFormDocument.load(pdf.read_bytes())
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    names = document.field_names()
    for name in names:
        typer.echo(f"{name}\t{document.field_kind(name) or '-'}")

    if template_id is None:
        raise typer.Exit(code=0)

    template = registry.resolve(template_id)
    if template is None:
        typer.echo(f"ERROR: unknown template: {template_id}")
        raise typer.Exit(code=1)

    matching = [doc for doc in template.documents if doc.source_id == pdf.name]
    documents = matching or list(template.documents)
    missing: list[str] = []
    for document_spec in documents:
        for name in document_spec.target_fields(include_enrichment=True):
            if name not in names and name not in missing:
                missing.append(name)

    if missing:
        typer.echo(f"WARNING: fields not in PDF: {', '.join(missing)}")
        raise typer.Exit(code=2)
    typer.echo("INFO: all mapped fields present")


def _safe_write_failure_report(path: Path, exc: BatchRunError) -> None:
    try:
        write_failure_report_atomic(
            path,
            error_type=type(exc.__cause__ or exc).__name__,
            error_message=str(exc),
            stage="run",
            report=exc.report,
        )
    except Exception:  # noqa: BLE001
        pass


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
