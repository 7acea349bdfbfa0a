"""FastAPI wrapper for the batch form filler."""

from __future__ import annotations

import csv
import json
import logging
import os
import time
import uuid
from typing import Annotated, Any

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from core.config.settings_loader import FormfillSettings, load_settings
from core.forms.registry import build_default_registry
from core.orchestrator.batch import BatchOrchestrator, BatchResult
from core.rows.csv_source import parse_rows
from core.templates.sources import DirectoryTemplateSource
from core.utils.errors import BatchPreconditionError, BatchRunError

app = FastAPI(title="formfill-agent API", version="0.1.0")
logger = logging.getLogger("formfill.api")
registry = build_default_registry()

_DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
_REQUEST_ID_HEADER = "X-Formfill-Request-Id"
_ARGUMENT_REASONS = frozenset({"no_template", "unknown_template"})


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """List selectable templates, their documents and the columns they read."""

    request_id = _request_id_from_request(request)
    payload = {
        "templates": [
            {
                "template_id": template.template_id,
                "display_name": template.display_name,
                "documents_per_row": template.documents_per_row,
                "documents": [
                    {
                        "label": document.label,
                        "source_id": document.source_id,
                        "columns": document.columns,
                    }
                    for document in template.documents
                ],
            }
            for template in registry.list_templates()
        ],
        "max_upload_bytes": _max_upload_bytes(),
        "version": app.version,
    }
    return JSONResponse(
        status_code=200,
        headers={_REQUEST_ID_HEADER: request_id},
        content=payload,
    )


@app.post("/v1/generate", response_model=None)
async def generate_v1(
    request: Request,
    rows: Annotated[UploadFile, File(...)],
    template_id: Annotated[str | None, Form()] = None,
) -> Response:
    """Fill every CSV row into the selected template and return one zip."""

    request_id = _request_id_from_request(request)
    request_started = time.perf_counter()
    failure_stage = "upload"
    max_upload_bytes = _max_upload_bytes()

    try:
        _validate_upload_name(rows.filename, expected_suffix=".csv", field_name="rows")
        raw = _read_upload_with_limit(upload=rows, max_bytes=max_upload_bytes, field_name="rows")

        failure_stage = "parse_rows"
        row_data = _parse_upload_rows(raw)

        failure_stage = "settings"
        settings = load_settings()

        _log_event(
            logging.INFO,
            "start",
            request_id,
            template_id=template_id,
            row_count=len(row_data),
            upload_bytes=len(raw),
            max_upload_bytes=max_upload_bytes,
        )

        failure_stage = "run"
        result = await _run_batch(settings, template_id, row_data)

        failure_stage = "respond"
        report = result.report
        _log_event(
            logging.INFO,
            "done",
            request_id,
            template_id=report.template_id,
            status=report.status,
            succeeded=report.succeeded,
            failed=report.failed,
            warnings=report.warning_count,
            total_ms=_elapsed_ms(request_started),
        )
        headers = {
            _REQUEST_ID_HEADER: request_id,
            "X-Formfill-Status": report.status,
            "X-Formfill-Succeeded": str(report.succeeded),
            "X-Formfill-Failed": str(report.failed),
            "Content-Disposition": f'attachment; filename="{result.archive_name}"',
        }
        return Response(
            content=result.archive_bytes,
            media_type="application/zip",
            headers=headers,
        )
    except ApiRequestError as exc:
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )
    except Exception as exc:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage=failure_stage,
        )
        return _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"error": str(exc), "total_ms": _elapsed_ms(request_started)},
        )


async def _run_batch(
    settings: FormfillSettings,
    template_id: str | None,
    row_data: list[dict[str, str]],
) -> BatchResult:
    orchestrator = BatchOrchestrator(
        registry,
        DirectoryTemplateSource(settings.templates_dir),
        name_column=settings.name_column,
        name_max_length=settings.name_max_length,
        include_report=True,
    )
    try:
        return await orchestrator.run_async(template_id, row_data)
    except BatchPreconditionError as exc:
        if exc.reason in _ARGUMENT_REASONS:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message=str(exc),
                detail={"field": "template_id", "reason": exc.reason},
            ) from exc
        raise ApiRequestError(
            status_code=422,
            error_code="PRECONDITION_FAILED",
            message=str(exc),
            detail={"reason": exc.reason},
        ) from exc
    except BatchRunError as exc:
        detail: dict[str, Any] = {}
        if exc.report is not None:
            detail["report"] = exc.report.model_dump(mode="json")
        raise ApiRequestError(
            status_code=500,
            error_code="RUN_FAILED",
            message=str(exc),
            detail=detail,
        ) from exc


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _validate_upload_name(filename: str | None, *, expected_suffix: str, field_name: str) -> None:
    if filename is None or not filename.lower().endswith(expected_suffix):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message=f"{field_name} must be a {expected_suffix} file",
            detail={"field": field_name, "filename": filename},
        )


def _read_upload_with_limit(*, upload: UploadFile, max_bytes: int, field_name: str) -> bytes:
    total_size = 0
    chunks: list[bytes] = []

    source = upload.file
    source.seek(0)
    while True:
        chunk = source.read(1024 * 1024)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise ApiRequestError(
                status_code=413,
                error_code="PAYLOAD_TOO_LARGE",
                message=f"{field_name} exceeds upload size limit",
                detail={
                    "field": field_name,
                    "max_bytes": max_bytes,
                    "received_bytes": total_size,
                },
            )
        chunks.append(chunk)

    source.close()
    return b"".join(chunks)


def _parse_upload_rows(raw: bytes) -> list[dict[str, str]]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="rows must be UTF-8 encoded CSV",
            detail={"field": "rows", "error": str(exc)},
        ) from exc
    try:
        return parse_rows(text)
    except csv.Error as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="rows is not valid CSV",
            detail={"field": "rows", "error": str(exc)},
        ) from exc


def _max_upload_bytes() -> int:
    raw = os.getenv("FORMFILL_MAX_UPLOAD_BYTES")
    if raw is None:
        return _DEFAULT_MAX_UPLOAD_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_UPLOAD_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_UPLOAD_BYTES


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
