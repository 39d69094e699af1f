from __future__ import annotations

import subprocess

import pytest

from docexport.models import ExportFormat
from docexport.services.export import pandoc as pandoc_mod
from docexport.services.export.errors import ConversionError, SpawnError
from docexport.services.export.pandoc import (
    DockerPandocConverter,
    PandocConverter,
    build_converter,
    pandoc_arguments,
)


def _fake_run(returncode=0, stderr="", raises=None, seen=None):
    def run(cmd, **kwargs):
        if seen is not None:
            seen.append((cmd, kwargs))
        if raises is not None:
            raise raises
        return subprocess.CompletedProcess(cmd, returncode, "", stderr)
    return run


def test_argument_profile_for_word():
    args = pandoc_arguments("/s/document.tex", "/s/document.docx", ExportFormat.word, "/s")
    assert args == [
        "-f", "latex",
        "-t", "docx",
        "-s",
        "--wrap=none",
        "--citeproc",
        "--number-sections",
        "--resource-path=/s",
        "-o", "/s/document.docx",
        "/s/document.tex",
    ]


def test_argument_profile_for_pdf_uses_pdf_engine():
    args = pandoc_arguments("in.tex", "out.pdf", ExportFormat.pdf, "/s", pdf_engine="lualatex")
    assert args[args.index("-t") + 1] == "latex"
    assert "--pdf-engine=lualatex" in args
    assert args[-1] == "in.tex"


def test_local_convert_runs_pandoc_in_sandbox(tmp_path, monkeypatch):
    seen = []
    monkeypatch.setattr(pandoc_mod.subprocess, "run", _fake_run(seen=seen))
    source = tmp_path / "document.tex"

    out = PandocConverter(pandoc_bin="/usr/bin/pandoc", timeout=30).convert(source, ExportFormat.word, tmp_path)

    assert out == tmp_path / "document.docx"
    cmd, kwargs = seen[0]
    assert cmd[0] == "/usr/bin/pandoc"
    assert cmd[-1] == str(source)
    assert kwargs["cwd"] == str(tmp_path)
    assert kwargs["timeout"] == 30
    assert kwargs["stderr"] == subprocess.PIPE


def test_nonzero_exit_reports_code_and_stderr(tmp_path, monkeypatch):
    monkeypatch.setattr(pandoc_mod.subprocess, "run", _fake_run(returncode=1, stderr="boom\n"))
    with pytest.raises(ConversionError) as info:
        PandocConverter().convert(tmp_path / "document.tex", ExportFormat.pdf, tmp_path)
    assert str(info.value) == "pandoc exited with code 1: boom"
    assert info.value.returncode == 1
    assert info.value.stderr == "boom"


def test_missing_executable_is_a_spawn_error(tmp_path, monkeypatch):
    err = FileNotFoundError(2, "No such file or directory", "pandoc")
    monkeypatch.setattr(pandoc_mod.subprocess, "run", _fake_run(raises=err))
    with pytest.raises(SpawnError) as info:
        PandocConverter().convert(tmp_path / "document.tex", ExportFormat.word, tmp_path)
    assert str(info.value).startswith("pandoc execution failed:")


def test_timeout_is_a_conversion_error(tmp_path, monkeypatch):
    err = subprocess.TimeoutExpired(["pandoc"], 5, stderr=b"still going")
    monkeypatch.setattr(pandoc_mod.subprocess, "run", _fake_run(raises=err))
    with pytest.raises(ConversionError) as info:
        PandocConverter(timeout=5).convert(tmp_path / "document.tex", ExportFormat.word, tmp_path)
    assert "timed out after 5s" in str(info.value)
    assert info.value.stderr == "still going"


def test_docker_command_mounts_only_the_sandbox(tmp_path):
    conv = DockerPandocConverter(docker_bin="docker", image="pandoc/latex:3.1")
    cmd = conv.command(tmp_path / "document.tex", tmp_path / "document.docx", ExportFormat.word, tmp_path)
    assert cmd[:4] == ["docker", "run", "--rm", "--network=none"]
    assert f"{tmp_path.resolve()}:/data" in cmd
    assert "pandoc/latex:3.1" in cmd
    assert "--resource-path=/data" in cmd
    assert cmd[cmd.index("-o") + 1] == "/data/document.docx"
    assert cmd[-1] == "/data/document.tex"


def test_docker_failure_names_the_container_converter(tmp_path, monkeypatch):
    monkeypatch.setattr(pandoc_mod.subprocess, "run", _fake_run(returncode=1, stderr="Conversion failed"))
    with pytest.raises(ConversionError) as info:
        DockerPandocConverter().convert(tmp_path / "document.tex", ExportFormat.word, tmp_path)
    assert str(info.value) == "Pandoc Docker exited with code 1: Conversion failed"


def test_build_converter_backends():
    assert isinstance(build_converter("local"), PandocConverter)
    docker = build_converter("Docker", docker_image="custom:1", timeout=9)
    assert isinstance(docker, DockerPandocConverter)
    assert docker.image == "custom:1"
    assert docker.timeout == 9
    with pytest.raises(ValueError):
        build_converter("remote")


def test_check_reports_executable_on_path(monkeypatch):
    monkeypatch.setattr(pandoc_mod.shutil, "which", lambda name: f"/opt/bin/{name}")
    check = PandocConverter().check()
    assert check.ok
    assert check.path == "/opt/bin/pandoc"
    monkeypatch.setattr(pandoc_mod.shutil, "which", lambda name: None)
    assert not PandocConverter().check().ok
