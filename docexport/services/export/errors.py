# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations


class ExportError(Exception):
    """Base class for export pipeline failures."""

    stage = "export"


class ValidationError(ExportError):
    """Request input is missing or empty. Raised before any allocation."""

    stage = "validation"


class ResourceFetchError(ExportError):
    """A remote image could not be fetched. Never fatal to the job."""

    stage = "resources"

    def __init__(self, url: str, reason: str):
        super().__init__(f"could not fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class SpawnError(ExportError):
    """The converter executable could not be started."""

    stage = "spawn"


class ConversionError(ExportError):
    """The converter ran but failed (non-zero exit or timeout)."""

    stage = "conversion"

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class EmptyOutputError(ExportError):
    """The converter exited cleanly but produced no (or an empty) artifact."""

    stage = "output"


class CleanupError(ExportError):
    """Sandbox removal failed. Logged only."""

    stage = "cleanup"
