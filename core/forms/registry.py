"""Template registry for CLI/API template resolution."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from core.forms.models import FormTemplate
from core.forms.specs import DEFAULT_TEMPLATES


class TemplateRegistry:
    """Immutable identifier -> template lookup built once at startup."""

    def __init__(self, templates: Iterable[FormTemplate]) -> None:
        by_id: dict[str, FormTemplate] = {}
        for template in templates:
            if template.template_id in by_id:
                raise ValueError(f"Duplicate template id: {template.template_id}")
            by_id[template.template_id] = template
        self._templates: Mapping[str, FormTemplate] = MappingProxyType(by_id)

    def resolve(self, template_id: str | None) -> FormTemplate | None:
        """Return the template registered under exactly ``template_id``."""

        if template_id is None:
            return None
        return self._templates.get(template_id)

    def list_template_ids(self) -> list[str]:
        """Return registered template ids in stable order."""

        return sorted(self._templates)

    def list_templates(self) -> list[FormTemplate]:
        return [self._templates[key] for key in self.list_template_ids()]

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def build_default_registry() -> TemplateRegistry:
    return TemplateRegistry(DEFAULT_TEMPLATES)
