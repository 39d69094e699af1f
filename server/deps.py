from __future__ import annotations
from functools import lru_cache

from fastapi import Request

from docexport.services.export.orchestrator import ExportOrchestrator, resolve_sandbox_root
from docexport.services.export.pandoc import BaseConverter, build_converter
from .config import Settings


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()


def get_settings(request: Request) -> Settings:
    # create_app(cfg) pins its settings on the app; env/.env otherwise
    return getattr(request.app.state, "settings", None) or load_settings()


def get_converter(cfg: Settings | None = None) -> BaseConverter:
    cfg = cfg or load_settings()
    return build_converter(
        cfg.CONVERTER_BACKEND,
        pandoc_bin=cfg.PANDOC_BIN,
        pdf_engine=cfg.PDF_ENGINE,
        docker_bin=cfg.DOCKER_BIN,
        docker_image=cfg.DOCKER_IMAGE,
        timeout=cfg.CONVERT_TIMEOUT,
    )


def build_orchestrator(cfg: Settings) -> ExportOrchestrator:
    return ExportOrchestrator(
        get_converter(cfg),
        sandbox_root=resolve_sandbox_root(cfg.SANDBOX_ROOT, app_root=cfg.APP_ROOT),
        sandbox_prefix=cfg.SANDBOX_PREFIX,
        fetch_timeout=cfg.FETCH_TIMEOUT,
        fetch_workers=cfg.FETCH_WORKERS,
    )


def get_orchestrator(request: Request) -> ExportOrchestrator:
    # one shared instance per app, built from that app's settings
    state = request.app.state
    orchestrator = getattr(state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = state.orchestrator = build_orchestrator(get_settings(request))
    return orchestrator
