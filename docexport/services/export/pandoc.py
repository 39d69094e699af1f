# docexport/services/export/pandoc.py
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import structlog

from ...models.document import ExportFormat
from ...utils.fs import rewrite_for_container
from .errors import ConversionError, SpawnError

log = structlog.get_logger(__name__)

DEFAULT_PDF_ENGINE = "xelatex"
DEFAULT_DOCKER_IMAGE = "pandoc/latex:3.1"
CONTAINER_WORKDIR = "/data"


@dataclass(frozen=True)
class ConverterCheck:
    name: str
    executable: str
    path: Optional[str]

    @property
    def ok(self) -> bool:
        return self.path is not None


def _decode(stream: object) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return str(stream)


def _run(cmd: List[str], name: str, cwd: Optional[Path] = None, timeout: Optional[float] = None) -> None:
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ConversionError(f"{name} timed out after {timeout:g}s", stderr=_decode(e.stderr)) from e
    except OSError as e:
        raise SpawnError(f"{name} execution failed: {e}") from e
    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        log.warning("converter failed", converter=name, returncode=proc.returncode, cmd=" ".join(cmd))
        raise ConversionError(
            f"{name} exited with code {proc.returncode}: {stderr}",
            returncode=proc.returncode,
            stderr=stderr,
        )


def pandoc_arguments(
    source: str,
    output: str,
    target: ExportFormat,
    resource_path: str,
    pdf_engine: str = DEFAULT_PDF_ENGINE,
) -> List[str]:
    """
    Fixed argument profile: LaTeX in, standalone output, no wrapping,
    citations processed, numbered sections. Paths are as the converter sees them.
    """
    args = [
        "-f", "latex",
        "-t", target.pandoc_target,
        "-s",
        "--wrap=none",
        "--citeproc",
        "--number-sections",
        f"--resource-path={resource_path}",
        "-o", output,
    ]
    if target is ExportFormat.pdf:
        args.append(f"--pdf-engine={pdf_engine}")
    args.append(source)
    return args


class BaseConverter(ABC):
    """
    Turns a LaTeX source file inside a sandbox into the requested format.
    Implementations raise SpawnError when they cannot start and
    ConversionError when the conversion itself fails.
    """

    name = "converter"
    executable = ""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def check(self) -> ConverterCheck:
        return ConverterCheck(self.name, self.executable, shutil.which(self.executable))

    def resource_root(self, workdir: Path) -> str:
        """Where the converter process sees the sandbox; staged images are linked under it."""
        return Path(workdir).resolve().as_posix()

    @abstractmethod
    def command(self, source_file: Path, output_file: Path, target: ExportFormat, workdir: Path) -> List[str]:
        ...

    def convert(self, source_file: Path, target: ExportFormat, workdir: Path) -> Path:
        output_file = workdir / f"document{target.extension}"
        cmd = self.command(source_file, output_file, target, workdir)
        log.info("converter started", converter=self.name, target=target.value, workdir=str(workdir))
        _run(cmd, self.name, cwd=workdir, timeout=self.timeout)
        return output_file


class PandocConverter(BaseConverter):
    """pandoc installed on the host."""

    name = "pandoc"

    def __init__(self, pandoc_bin: str = "pandoc", pdf_engine: str = DEFAULT_PDF_ENGINE, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.executable = pandoc_bin
        self.pdf_engine = pdf_engine

    def command(self, source_file: Path, output_file: Path, target: ExportFormat, workdir: Path) -> List[str]:
        return [self.executable] + pandoc_arguments(
            str(source_file), str(output_file), target, str(workdir), self.pdf_engine
        )


class DockerPandocConverter(BaseConverter):
    """
    pandoc from a container image. Only the sandbox is mounted and the
    container has no network; images were staged beforehand.
    """

    name = "Pandoc Docker"

    def __init__(
        self,
        docker_bin: str = "docker",
        image: str = DEFAULT_DOCKER_IMAGE,
        pdf_engine: str = DEFAULT_PDF_ENGINE,
        timeout: Optional[float] = None,
    ):
        super().__init__(timeout=timeout)
        self.executable = docker_bin
        self.image = image
        self.pdf_engine = pdf_engine

    def resource_root(self, workdir: Path) -> str:
        return CONTAINER_WORKDIR

    def command(self, source_file: Path, output_file: Path, target: ExportFormat, workdir: Path) -> List[str]:
        source = rewrite_for_container(source_file, workdir, CONTAINER_WORKDIR)
        output = rewrite_for_container(output_file, workdir, CONTAINER_WORKDIR)
        if source is None or output is None:
            raise SpawnError(f"{self.name} execution failed: files must live inside {workdir}")
        cmd = [self.executable, "run", "--rm", "--network=none"]
        if hasattr(os, "getuid"):
            # keep output owned by us so the sandbox can be removed
            cmd += ["--user", f"{os.getuid()}:{os.getgid()}"]
        cmd += ["-v", f"{Path(workdir).resolve()}:{CONTAINER_WORKDIR}", "-w", CONTAINER_WORKDIR, self.image]
        return cmd + pandoc_arguments(source, output, target, CONTAINER_WORKDIR, self.pdf_engine)


def build_converter(
    backend: str = "local",
    pandoc_bin: str = "pandoc",
    pdf_engine: str = DEFAULT_PDF_ENGINE,
    docker_bin: str = "docker",
    docker_image: str = DEFAULT_DOCKER_IMAGE,
    timeout: Optional[float] = None,
) -> BaseConverter:
    kind = (backend or "local").strip().lower()
    if kind == "local":
        return PandocConverter(pandoc_bin=pandoc_bin, pdf_engine=pdf_engine, timeout=timeout)
    if kind == "docker":
        return DockerPandocConverter(docker_bin=docker_bin, image=docker_image, pdf_engine=pdf_engine, timeout=timeout)
    raise ValueError(f"unknown converter backend: {backend!r} (expected 'local' or 'docker')")
