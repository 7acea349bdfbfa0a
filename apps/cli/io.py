"""CLI I/O helpers for atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.orchestrator.batch import BatchResult
from core.render.models import BatchReport


@dataclass(frozen=True)
class OutputPaths:
    """Output artifact paths for a single run."""

    archive: Path
    report: Path


def build_output_paths(out_dir: Path, archive_name: str) -> OutputPaths:
    """Build output file paths under out_dir; the report is named after the archive."""

    return OutputPaths(
        archive=out_dir / archive_name,
        report=out_dir / f"{Path(archive_name).stem}.report.json",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among artifact paths."""

    return [path for path in (paths.archive, paths.report) if path.exists()]


def write_batch_output_atomic(paths: OutputPaths, result: BatchResult) -> None:
    """Write the archive and its JSON report using temporary files + replace."""

    paths.archive.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_bytes(paths.archive, result.archive_bytes)
    _atomic_write_json(paths.report, result.report.model_dump(mode="json"))


def write_failure_report_atomic(
    path: Path,
    *,
    error_type: str,
    error_message: str,
    stage: str,
    report: BatchReport | None = None,
) -> None:
    """Write the batch report of a failed run with an error block."""

    payload: dict[str, Any] = report.model_dump(mode="json") if report is not None else {}
    payload["error"] = {
        "error_type": error_type,
        "error_message": error_message,
        "stage": stage,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(path, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def _atomic_write_bytes(path: Path, content: bytes) -> None:
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_bytes(content)
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
