# SPDX-License-Identifier: Apache-2.0
"""
Per-request export jobs: allocate a sandbox, stage images, write the source,
run the converter and hand back the artifact. The sandbox is removed on every
exit path before `export()` returns.
"""
from __future__ import annotations

import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

import requests
import structlog

from ...models.conversion import ConversionResult, Failed, Succeeded
from ...models.document import ExportFormat
from ...utils.fs import is_under, remove_tree, temp_dir
from .errors import CleanupError, EmptyOutputError, ExportError
from .pandoc import BaseConverter
from .resources import prepare_resources
from .sanitize import sanitize_source

log = structlog.get_logger(__name__)

SOURCE_FILENAME = "document.tex"
DEFAULT_SANDBOX_PREFIX = "docexport-"


class JobState(str, Enum):
    created = "created"
    sandbox_ready = "sandbox_ready"
    source_written = "source_written"
    converting = "converting"
    succeeded = "succeeded"
    failed = "failed"
    cleaned_up = "cleaned_up"


_TRANSITIONS = {
    JobState.created: {JobState.sandbox_ready, JobState.failed, JobState.cleaned_up},
    JobState.sandbox_ready: {JobState.source_written, JobState.failed},
    JobState.source_written: {JobState.converting, JobState.failed},
    JobState.converting: {JobState.succeeded, JobState.failed},
    JobState.succeeded: {JobState.cleaned_up},
    JobState.failed: {JobState.cleaned_up},
    JobState.cleaned_up: set(),
}


@dataclass
class ExportJob:
    target: ExportFormat
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: JobState = JobState.created
    sandbox: Optional[Path] = None
    source_path: Optional[Path] = None
    resources: List[Path] = field(default_factory=list)
    result: Optional[ConversionResult] = None

    def advance(self, state: JobState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal job transition {self.state.value} -> {state.value}")
        log.debug("job state", job_id=self.id, previous=self.state.value, state=state.value)
        self.state = state


def resolve_sandbox_root(root: Optional[Path | str], app_root: Optional[Path | str] = None) -> Optional[Path]:
    """
    Sandboxes must not live inside the application tree, where dev servers
    and file watchers would see them. Such a root is ignored in favour of the
    system temp dir (None).
    """
    if not root:
        return None
    candidate = Path(root).expanduser().resolve()
    if app_root is not None and is_under(candidate, app_root):
        log.warning("sandbox root inside application tree; using system temp dir", root=str(candidate))
        return None
    candidate.mkdir(parents=True, exist_ok=True)
    return candidate


@contextmanager
def sandbox(root: Optional[Path] = None, prefix: str = DEFAULT_SANDBOX_PREFIX) -> Iterator[Path]:
    """
    Scoped sandbox directory: a fresh unique directory for the duration of the
    block, removed recursively afterwards whatever happened inside. Removal
    problems are logged and never replace the block's own outcome.
    """
    path = temp_dir(prefix=prefix, root=root or Path(tempfile.gettempdir()))
    try:
        yield path
    finally:
        try:
            remove_tree(path)
        except OSError as e:
            err = CleanupError(f"could not remove sandbox {path}: {e}")
            log.error("sandbox cleanup failed", path=str(path), error=str(err))


def read_artifact(path: Path) -> bytes:
    if not path.is_file():
        raise EmptyOutputError(f"Converter produced no output file ({path.name})")
    data = path.read_bytes()
    if not data:
        raise EmptyOutputError(f"Generated {path.suffix.lstrip('.').upper()} file is empty")
    return data


class ExportOrchestrator:
    """
    Runs one export job per call. Holds no per-job state, so one instance is
    shared by all requests.
    """

    def __init__(
        self,
        converter: BaseConverter,
        sandbox_root: Optional[Path] = None,
        sandbox_prefix: str = DEFAULT_SANDBOX_PREFIX,
        fetch_timeout: Optional[float] = None,
        fetch_workers: int = 4,
        session: Optional[requests.Session] = None,
    ):
        self.converter = converter
        self.sandbox_root = sandbox_root
        self.sandbox_prefix = sandbox_prefix
        self.fetch_timeout = fetch_timeout
        self.fetch_workers = fetch_workers
        self.session = session

    def _prepare(self, job: ExportJob, workdir: Path, source: str) -> Path:
        prepared = prepare_resources(
            source,
            workdir,
            session=self.session,
            timeout=self.fetch_timeout,
            max_workers=self.fetch_workers,
            link_root=self.converter.resource_root(workdir),
        )
        job.resources = prepared.resources
        source_path = workdir / SOURCE_FILENAME
        source_path.write_text(sanitize_source(prepared.text), encoding="utf-8")
        job.source_path = source_path
        return source_path

    def export(self, source: str, target: ExportFormat) -> ConversionResult:
        """
        Convert LaTeX `source` to `target`. Known pipeline failures come back
        as Failed; anything unexpected propagates, after cleanup.
        """
        job = ExportJob(target=target)
        result: ConversionResult
        log.info("export started", job_id=job.id, target=target.value, source_chars=len(source))
        try:
            with sandbox(self.sandbox_root, self.sandbox_prefix) as workdir:
                job.sandbox = workdir
                job.advance(JobState.sandbox_ready)
                try:
                    source_path = self._prepare(job, workdir, source)
                    job.advance(JobState.source_written)
                    job.advance(JobState.converting)
                    output = self.converter.convert(source_path, target, workdir)
                    data = read_artifact(output)
                except ExportError as e:
                    stage = job.state.value
                    result = Failed(stage=stage, message=str(e), error=e)
                    job.result = result
                    job.advance(JobState.failed)
                    log.error("export failed", job_id=job.id, stage=stage, error=str(e))
                else:
                    result = Succeeded(data=data, mime_type=target.mime_type)
                    job.result = result
                    job.advance(JobState.succeeded)
                    log.info("export succeeded", job_id=job.id, size=len(data), images=len(job.resources))
        finally:
            if job.state in (JobState.succeeded, JobState.failed):
                job.advance(JobState.cleaned_up)
        return result
