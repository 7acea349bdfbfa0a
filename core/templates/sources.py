"""Template source byte loading."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from core.forms.models import FormTemplate
from core.utils.errors import TemplateSourceError

logger = logging.getLogger(__name__)


class TemplateSource(Protocol):
    """Byte-source collaborator keyed by a descriptor's source id."""

    def fetch(self, source_id: str) -> bytes:
        """Return template bytes or raise ``TemplateSourceError``."""


class DirectoryTemplateSource:
    """Read template PDFs from one directory; source ids are file names."""

    def __init__(self, templates_dir: Path) -> None:
        self.templates_dir = Path(templates_dir)

    def fetch(self, source_id: str) -> bytes:
        candidate = (self.templates_dir / source_id).resolve()
        root = self.templates_dir.resolve()
        if root not in candidate.parents:
            raise TemplateSourceError(
                f"Template source escapes templates dir: {source_id}", source_id=source_id
            )
        try:
            data = candidate.read_bytes()
        except FileNotFoundError as exc:
            raise TemplateSourceError(
                f"Template file not found: {candidate}", source_id=source_id
            ) from exc
        except OSError as exc:
            raise TemplateSourceError(
                f"Template file unreadable: {candidate}: {exc}", source_id=source_id
            ) from exc
        if not data:
            raise TemplateSourceError(f"Template file is empty: {candidate}", source_id=source_id)
        return data


class InMemoryTemplateSource:
    """Serve template bytes from a mapping (uploads, tests)."""

    def __init__(self, sources: Mapping[str, bytes]) -> None:
        self._sources = dict(sources)

    def fetch(self, source_id: str) -> bytes:
        try:
            data = self._sources[source_id]
        except KeyError as exc:
            raise TemplateSourceError(
                f"Template source not provided: {source_id}", source_id=source_id
            ) from exc
        if not data:
            raise TemplateSourceError(f"Template source is empty: {source_id}", source_id=source_id)
        return data


def load_template_sources(template: FormTemplate, source: TemplateSource) -> dict[str, bytes]:
    """Fetch every distinct source of a template once for the whole run."""

    loaded: dict[str, bytes] = {}
    for source_id in template.source_ids():
        loaded[source_id] = source.fetch(source_id)
        logger.info("Loaded template source %s (%d bytes)", source_id, len(loaded[source_id]))
    return loaded
