from __future__ import annotations
from fastapi import APIRouter, Depends

from docexport.services.export.orchestrator import ExportOrchestrator
from ..config import Settings
from ..deps import get_orchestrator, get_settings

router = APIRouter(tags=["health"])

@router.get("/healthz")
def healthz(cfg: Settings = Depends(get_settings)):
    return {"ok": True, "service": "docexport-api", "version": cfg.APP_VERSION}

@router.get("/readyz")
def readyz(orchestrator: ExportOrchestrator = Depends(get_orchestrator)):
    check = orchestrator.converter.check()
    return {"ok": check.ok, "converter": check.name, "executable": check.path or check.executable}
