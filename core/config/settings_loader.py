"""Run settings loading utilities."""

from __future__ import annotations

import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

_TEMPLATES_DIR_ENV = "FORMFILL_TEMPLATES_DIR"


class FormfillSettings(BaseModel):
    """Settings loaded from YAML."""

    model_config = ConfigDict(extra="forbid")

    templates_dir: Path
    name_column: str = "Tenant"
    name_max_length: int = Field(default=50, ge=1, le=200)


def load_settings(path: Path | None = None) -> FormfillSettings:
    """Load and validate run settings from YAML.

    ``FORMFILL_TEMPLATES_DIR`` overrides ``templates_dir`` when set.
    """

    settings_path = path or Path(__file__).with_name("settings.yaml")

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    normalized = dict(raw)
    override = os.getenv(_TEMPLATES_DIR_ENV)
    if override:
        normalized["templates_dir"] = override

    try:
        return FormfillSettings.model_validate(normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc
