"""Form template and output document descriptors."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from core.forms.enrichment import EnrichmentStep

FieldTargets = str | tuple[str, ...]

_WHITESPACE_RUN = re.compile(r"\s+")


def label_slug(label: str) -> str:
    """Lower-case the label and collapse whitespace runs to ``_``."""

    return _WHITESPACE_RUN.sub("_", label.strip().lower())


def normalize_targets(targets: FieldTargets) -> tuple[str, ...]:
    if isinstance(targets, str):
        return (targets,)
    return tuple(targets)


@dataclass(frozen=True)
class OutputDescriptor:
    """One physical PDF produced for every row."""

    source_id: str
    label: str
    mapping: Mapping[str, FieldTargets]
    enrichment: tuple[EnrichmentStep, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.label.strip():
            raise ValueError(f"Document label must not be blank: {self.source_id}")
        for column, targets in self.mapping.items():
            names = normalize_targets(targets)
            if not names or any(not name for name in names):
                raise ValueError(
                    f"Mapping for column '{column}' in '{self.label}' has no target field"
                )
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))
        object.__setattr__(self, "enrichment", tuple(self.enrichment))

    @property
    def slug(self) -> str:
        return label_slug(self.label)

    @property
    def columns(self) -> list[str]:
        return list(self.mapping)

    def target_fields(self, *, include_enrichment: bool = False) -> list[str]:
        names: list[str] = []
        for targets in self.mapping.values():
            for name in normalize_targets(targets):
                if name not in names:
                    names.append(name)
        if include_enrichment:
            for step in self.enrichment:
                target = getattr(step, "target_field", None)
                if target and target not in names:
                    names.append(target)
        return names


@dataclass(frozen=True)
class FormTemplate:
    """Selectable template: an ordered set of output documents."""

    template_id: str
    display_name: str
    documents: tuple[OutputDescriptor, ...]
    name_column: str | None = None

    def __post_init__(self) -> None:
        documents = tuple(self.documents)
        if not documents:
            raise ValueError(f"Template '{self.template_id}' defines no documents")

        labels = [document.label for document in documents]
        slugs = [document.slug for document in documents]
        if len(set(labels)) != len(labels) or len(set(slugs)) != len(slugs):
            raise ValueError(
                f"Template '{self.template_id}' has duplicate document labels: {labels}"
            )
        object.__setattr__(self, "documents", documents)

    @property
    def documents_per_row(self) -> int:
        return len(self.documents)

    def source_ids(self) -> list[str]:
        ordered: list[str] = []
        for document in self.documents:
            if document.source_id not in ordered:
                ordered.append(document.source_id)
        return ordered
