"""Generate placeholder AcroForm PDFs for every registered template document."""

from __future__ import annotations

import argparse
import io
from collections.abc import Iterable, Sequence
from pathlib import Path

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from core.forms.models import OutputDescriptor
from core.forms.registry import TemplateRegistry, build_default_registry

CHECKBOX_FIELDS = frozenset({"Nonpayment", "Lease Violation"})

_PAGE_WIDTH, _PAGE_HEIGHT = letter
_TOP = _PAGE_HEIGHT - 72
_BOTTOM = 60
_ROW_HEIGHT = 28
_FIELD_X = 220
_FIELD_WIDTH = 320


def build_form_pdf(
    text_fields: Sequence[str],
    checkbox_fields: Sequence[str] = (),
    *,
    title: str = "Sample form",
) -> bytes:
    """Return a PDF with one labelled widget per field name."""

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    pdf.setTitle(title)
    y = _start_page(pdf, title)

    entries = [(name, False) for name in text_fields] + [(name, True) for name in checkbox_fields]
    for name, is_checkbox in entries:
        if y < _BOTTOM:
            pdf.showPage()
            y = _start_page(pdf, title)
        pdf.setFont("Helvetica", 10)
        # Standard fonts only cover Latin-1.
        pdf.drawString(40, y + 6, name.encode("latin-1", "replace").decode("latin-1"))
        if is_checkbox:
            pdf.acroForm.checkbox(
                name=name,
                tooltip=name,
                x=_FIELD_X,
                y=y,
                size=16,
                buttonStyle="check",
                checked=False,
            )
        else:
            pdf.acroForm.textfield(
                name=name,
                tooltip=name,
                x=_FIELD_X,
                y=y,
                width=_FIELD_WIDTH,
                height=20,
                fontSize=9,
                maxlen=400,
                borderStyle="underlined",
            )
        y -= _ROW_HEIGHT

    pdf.save()
    return buffer.getvalue()


def build_descriptor_pdf(descriptor: OutputDescriptor) -> bytes:
    names = descriptor.target_fields(include_enrichment=True)
    return build_form_pdf(
        [name for name in names if name not in CHECKBOX_FIELDS],
        [name for name in names if name in CHECKBOX_FIELDS],
        title=f"{descriptor.label} (sample)",
    )


def write_sample_templates(
    out_dir: Path,
    registry: TemplateRegistry | None = None,
) -> list[Path]:
    """Write one placeholder PDF per distinct source id; return the paths."""

    registry = registry or build_default_registry()
    out_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for descriptor in _unique_descriptors(registry):
        path = out_dir / descriptor.source_id
        path.write_bytes(build_descriptor_pdf(descriptor))
        written.append(path)
    return written


def _unique_descriptors(registry: TemplateRegistry) -> Iterable[OutputDescriptor]:
    seen: set[str] = set()
    for template in registry.list_templates():
        for descriptor in template.documents:
            if descriptor.source_id in seen:
                continue
            seen.add(descriptor.source_id)
            yield descriptor


def _start_page(pdf: canvas.Canvas, title: str) -> float:
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(40, _PAGE_HEIGHT - 48, title)
    return _TOP


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write placeholder form PDFs.")
    parser.add_argument("--out-dir", type=Path, default=Path("templates"))
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    for path in write_sample_templates(args.out_dir):
        print(f"wrote {path}")


if __name__ == "__main__":
    main()
