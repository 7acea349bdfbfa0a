"""AcroForm document primitive backed by pypdf."""

from __future__ import annotations

import io
from collections.abc import Callable, Iterator
from typing import Literal, Protocol

from pypdf import PdfReader, PdfWriter
from pypdf.generic import DictionaryObject, NameObject

from core.utils.errors import FieldKindError, FieldNotFoundError

FieldKind = Literal["text", "checkbox", "radio", "pushbutton", "choice", "signature"]

_FLAG_RADIO = 1 << 15
_FLAG_PUSHBUTTON = 1 << 16
_OFF_STATE = "/Off"
_DEFAULT_ON_STATE = "/Yes"


class FormDocument(Protocol):
    """Mutable form document loaded from template bytes."""

    def field_names(self) -> list[str]:
        """Return fully qualified field names in document order."""

    def field_kind(self, name: str) -> FieldKind | None:
        """Return the field kind, raising ``FieldNotFoundError`` when absent."""

    def set_text(self, name: str, value: str) -> None:
        """Set a text field value."""

    def set_checkbox(self, name: str, checked: bool) -> None:
        """Check or uncheck a checkbox field."""

    def save(self) -> bytes:
        """Serialize the document to bytes."""


DocumentLoader = Callable[[bytes], FormDocument]


class PdfFormDocument:
    """One private, writable copy of a PDF form.

    Text values are buffered and written in one pass per page on ``save`` so a
    later write to the same field wins. Checkbox states are applied directly on
    the widget annotations.
    """

    def __init__(self, reader: PdfReader) -> None:
        self._fields = reader.get_fields() or {}
        self._writer = PdfWriter(clone_from=reader)
        self._text_values: dict[str, str] = {}

    @classmethod
    def load(cls, data: bytes) -> PdfFormDocument:
        return cls(PdfReader(io.BytesIO(data), strict=False))

    def field_names(self) -> list[str]:
        return list(self._fields)

    def field_kind(self, name: str) -> FieldKind | None:
        field = self._fields.get(name)
        if field is None:
            raise FieldNotFoundError(name)

        field_type = field.get("/FT")
        flags = int(field.get("/Ff", 0) or 0)
        if field_type == "/Tx":
            return "text"
        if field_type == "/Btn":
            if flags & _FLAG_PUSHBUTTON:
                return "pushbutton"
            if flags & _FLAG_RADIO:
                return "radio"
            return "checkbox"
        if field_type == "/Ch":
            return "choice"
        if field_type == "/Sig":
            return "signature"
        return None

    def set_text(self, name: str, value: str) -> None:
        kind = self.field_kind(name)
        if kind != "text":
            raise FieldKindError(name, expected="text", actual=kind)
        self._text_values[name] = value

    def set_checkbox(self, name: str, checked: bool) -> None:
        kind = self.field_kind(name)
        if kind != "checkbox":
            raise FieldKindError(name, expected="checkbox", actual=kind)

        for annotation, field in self._iter_widgets(name):
            state = NameObject(_on_state(annotation) if checked else _OFF_STATE)
            annotation[NameObject("/AS")] = state
            field[NameObject("/V")] = state

    def save(self) -> bytes:
        if self._text_values:
            for page in self._writer.pages:
                if "/Annots" not in page:
                    continue
                self._writer.update_page_form_field_values(
                    page, dict(self._text_values), auto_regenerate=False
                )
            self._writer.set_need_appearances_writer(True)

        buffer = io.BytesIO()
        self._writer.write(buffer)
        return buffer.getvalue()

    def _iter_widgets(self, name: str) -> Iterator[tuple[DictionaryObject, DictionaryObject]]:
        for page in self._writer.pages:
            for reference in page.get("/Annots", None) or []:
                annotation = reference.get_object()
                if annotation.get("/Subtype") != "/Widget":
                    continue
                if "/T" in annotation:
                    field = annotation
                elif "/Parent" in annotation:
                    field = annotation["/Parent"].get_object()
                else:
                    continue
                if qualified_field_name(field) == name:
                    yield annotation, field


def qualified_field_name(field: DictionaryObject) -> str:
    """Join partial ``/T`` names up the ``/Parent`` chain with dots."""

    parts: list[str] = []
    node: DictionaryObject | None = field
    while node is not None:
        partial = node.get("/T")
        if partial is not None:
            parts.append(str(partial))
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
    return ".".join(reversed(parts))


def _on_state(annotation: DictionaryObject) -> str:
    appearance = annotation.get("/AP")
    if appearance is None:
        return _DEFAULT_ON_STATE
    normal = appearance.get_object().get("/N")
    if normal is None or not hasattr(normal.get_object(), "keys"):
        return _DEFAULT_ON_STATE
    for state in normal.get_object().keys():
        if state != _OFF_STATE:
            return str(state)
    return _DEFAULT_ON_STATE
