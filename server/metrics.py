from __future__ import annotations
from fastapi import FastAPI
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

EXPORTS = Counter(
    "docexport_exports_total",
    "Export requests by target format and outcome",
    ["target", "outcome"],
)
EXPORT_SECONDS = Histogram(
    "docexport_export_seconds",
    "Wall time of one export job, sandbox setup to cleanup",
    ["target"],
    buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)


def record_export(target: str, outcome: str, seconds: float | None = None) -> None:
    # outcome: succeeded | failed | rejected | crashed
    EXPORTS.labels(target=target, outcome=outcome).inc()
    if seconds is not None:
        EXPORT_SECONDS.labels(target=target).observe(seconds)


def setup_metrics(app: FastAPI, enable: bool = True):
    if not enable:
        return
    Instrumentator(excluded_handlers=["/metrics", "/healthz", "/readyz"]).instrument(app).expose(
        app, endpoint="/metrics", include_in_schema=False
    )
