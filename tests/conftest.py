from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest
import requests

from docexport.models import ExportFormat
from docexport.services.export.pandoc import BaseConverter


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", reason: str = "OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeSession:
    """Stands in for requests.Session; answers by URL, optionally after a delay."""

    def __init__(self, responses: Dict[str, Union[FakeResponse, Exception]], delays: Optional[Dict[str, float]] = None):
        self.responses = responses
        self.delays = delays or {}
        self.calls: List[str] = []
        self.timeouts: List[Optional[float]] = []

    def get(self, url: str, timeout: Optional[float] = None):
        self.calls.append(url)
        self.timeouts.append(timeout)
        if url in self.delays:
            time.sleep(self.delays[url])
        answer = self.responses.get(url)
        if answer is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self) -> None:
        pass


class FakeConverter(BaseConverter):
    """Records what it was asked to convert and writes a canned artifact."""

    name = "fake"
    executable = "fake-pandoc"

    def __init__(self, output: Optional[bytes] = b"artifact", error: Optional[BaseException] = None):
        super().__init__()
        self.output = output
        self.error = error
        self.workdirs: List[Path] = []
        self.sources: List[str] = []
        self.staged: List[List[str]] = []

    def command(self, source_file, output_file, target, workdir):
        return [self.executable, str(source_file)]

    def convert(self, source_file: Path, target: ExportFormat, workdir: Path) -> Path:
        self.workdirs.append(workdir)
        self.sources.append(source_file.read_text(encoding="utf-8"))
        self.staged.append(sorted(p.name for p in workdir.iterdir()))
        if self.error is not None:
            raise self.error
        out = workdir / f"document{target.extension}"
        if self.output is not None:
            out.write_bytes(self.output)
        return out


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_converter():
    return FakeConverter
