from __future__ import annotations
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .config import Settings
from .logging import setup_logging
from .metrics import setup_metrics
from .routers import exports, health


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    """
    Application factory used by uvicorn/gunicorn and the tests.
    """
    cfg = cfg or Settings()
    logger = setup_logging(cfg.LOG_LEVEL, json=cfg.LOG_JSON)

    app = FastAPI(
        title=cfg.APP_NAME,
        version=cfg.APP_VERSION,
        default_response_class=ORJSONResponse,
    )
    app.state.settings = cfg

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.split(cfg.CORS_ALLOW_ORIGINS),
        allow_methods=cfg.split(cfg.CORS_ALLOW_METHODS),
        allow_headers=cfg.split(cfg.CORS_ALLOW_HEADERS),
        expose_headers=["Content-Disposition"],
    )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("unhandled error", path=request.url.path)
        return ORJSONResponse({"error": "Internal Server Error"}, status_code=500)

    # Routers
    app.include_router(health.router)
    app.include_router(exports.router)

    # Metrics
    setup_metrics(app, enable=cfg.ENABLE_PROMETHEUS)

    logger.info(
        "app ready",
        env=cfg.ENV,
        converter=cfg.CONVERTER_BACKEND,
        sandbox_root=cfg.SANDBOX_ROOT or "system temp",
    )
    return app


app = create_app()
