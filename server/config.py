# server/config.py
from __future__ import annotations
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Document Export API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True  # false: human-readable console lines for local dev
    ENV: str = "dev"  # "production" hides stack traces in error bodies

    # Paths
    APP_ROOT: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[1])

    # CORS
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173"
    CORS_ALLOW_METHODS: str = "GET,POST,OPTIONS"
    CORS_ALLOW_HEADERS: str = "Content-Type,Accept"

    # Converter
    CONVERTER_BACKEND: str = "local"  # local | docker
    PANDOC_BIN: str = "pandoc"
    PDF_ENGINE: str = "xelatex"
    DOCKER_BIN: str = "docker"
    DOCKER_IMAGE: str = "pandoc/latex:3.1"
    CONVERT_TIMEOUT: Optional[float] = 120.0

    # Sandboxes (must be outside APP_ROOT; default: system temp dir)
    SANDBOX_ROOT: Optional[str] = None
    SANDBOX_PREFIX: str = "docexport-"

    # Remote images
    FETCH_TIMEOUT: Optional[float] = 15.0
    FETCH_WORKERS: int = 4

    # Observability
    ENABLE_PROMETHEUS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() in ("prod", "production")

    def split(self, value: str) -> list[str]:
        return [v.strip() for v in value.split(",") if v.strip()]

