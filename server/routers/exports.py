from __future__ import annotations

import asyncio
import time
import traceback
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from docexport.models import ExportFormat, Failed
from docexport.services.export.errors import ValidationError
from docexport.services.export.latex import generate_document
from docexport.services.export.orchestrator import ExportOrchestrator
from docexport.utils.fs import safe_filename
from ..config import Settings
from ..deps import get_orchestrator, get_settings
from ..metrics import record_export
from ..models import ErrorBody, ExportRequest, GenerateRequest

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/export", tags=["exports"])

LATEX_FILENAME = "full_document.tex"


async def _read_body(request: Request) -> Dict[str, Any]:
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f"attachment; filename={filename}"}


def _output_filename(requested: Optional[str], target: ExportFormat) -> str:
    name = safe_filename(requested or "", default=target.default_filename)
    if not name.lower().endswith(target.extension):
        name += target.extension
    return name


def _bad_request(message: str, details: Optional[str] = None) -> ORJSONResponse:
    body = ErrorBody(error=message, details=details)
    return ORJSONResponse(body.model_dump(exclude_none=True), status_code=400)


def _failure(cfg: Settings, details: str, error: Optional[BaseException]) -> ORJSONResponse:
    stack = None
    if error is not None and not cfg.is_production:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    body = ErrorBody(error="Failed to convert document", details=details, stack=stack)
    return ORJSONResponse(body.model_dump(exclude_none=True), status_code=500)


def parse_export_request(body: Dict[str, Any]) -> ExportRequest:
    try:
        req = ExportRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError("source is required") from e
    if not req.source:
        raise ValidationError("source is required")
    return req


async def _export(request: Request, target: ExportFormat, orchestrator: ExportOrchestrator, cfg: Settings):
    body = await _read_body(request)
    try:
        req = parse_export_request(body)
    except ValidationError as e:
        log.warning("export rejected", target=target.value, reason=str(e))
        record_export(target.value, "rejected")
        return _bad_request(str(e))

    filename = _output_filename(req.filename, target)
    started = time.perf_counter()
    try:
        # conversion blocks on the subprocess; keep it off the event loop
        result = await asyncio.to_thread(orchestrator.export, req.source, target)
    except Exception as e:
        log.exception("export crashed", target=target.value)
        record_export(target.value, "crashed", time.perf_counter() - started)
        return _failure(cfg, str(e), e)

    elapsed = time.perf_counter() - started
    if isinstance(result, Failed):
        record_export(target.value, "failed", elapsed)
        return _failure(cfg, result.message, result.error)
    record_export(target.value, "succeeded", elapsed)
    return Response(content=result.data, media_type=result.mime_type, headers=_attachment(filename))


@router.post("/word")
async def export_word(
    request: Request,
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
    cfg: Settings = Depends(get_settings),
):
    """
    Convert LaTeX to DOCX.
    Body: {"source": "<latex>", "filename": "optional.docx"}
    """
    return await _export(request, ExportFormat.word, orchestrator, cfg)


@router.post("/pdf")
async def export_pdf(
    request: Request,
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
    cfg: Settings = Depends(get_settings),
):
    """
    Convert LaTeX to PDF.
    Body: {"source": "<latex>", "filename": "optional.pdf"}
    """
    return await _export(request, ExportFormat.pdf, orchestrator, cfg)


@router.post("/latex")
async def export_latex(request: Request):
    """
    Generate the LaTeX source for a section tree without converting it.
    Body:
      {
        "structure": [{"id": "1", "name": "Intro", "nodes": [...]}],
        "contents": {"1": "text with [CITE:key]"},   # or [{"nodeId", "content"}]
        "auditLog": [{"toolName", "usageForm", "affectedParts", "remarks"}],
        "profile": "word" | "pdf"
      }
    """
    body = await _read_body(request)
    try:
        req = GenerateRequest.model_validate(body)
    except PydanticValidationError as e:
        log.warning("latex generation rejected", errors=e.error_count())
        return _bad_request("structure is required", details=str(e))

    source = generate_document(req.structure, req.contents, req.audit_log, target=req.profile)
    name = safe_filename(req.filename or "", default=LATEX_FILENAME)
    return Response(
        content=source.encode("utf-8"),
        media_type="application/x-tex; charset=utf-8",
        headers=_attachment(name),
    )
