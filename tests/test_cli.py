from __future__ import annotations

import json

import pytest

from docexport import cli
from docexport.services.export.errors import ConversionError

DOCUMENT = {
    "structure": [{"id": "1", "name": "Intro"}],
    "nodeContents": [{"nodeId": "1", "content": "Hello & welcome"}],
    "auditLog": [],
}


@pytest.fixture
def document(tmp_path):
    path = tmp_path / "paper.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return path


def test_latex_is_written_next_to_input(document):
    assert cli.main([str(document)]) == 0
    tex = document.with_suffix(".tex").read_text(encoding="utf-8")
    assert "\\section{Intro}" in tex
    assert "Hello \\& welcome" in tex


def test_missing_document_exits_2(tmp_path):
    assert cli.main([str(tmp_path / "nope.json")]) == 2


def test_invalid_json_exits_2(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert cli.main([str(bad)]) == 2


def test_word_export_through_converter(document, tmp_path, monkeypatch, fake_converter):
    conv = fake_converter(output=b"DOCX")
    seen = {}

    def fake_build(backend, **kwargs):
        seen["backend"] = backend
        seen.update(kwargs)
        return conv

    monkeypatch.setattr(cli, "build_converter", fake_build)
    out = tmp_path / "out.docx"

    assert cli.main([str(document), "-f", "word", "-o", str(out), "--timeout", "30"]) == 0
    assert out.read_bytes() == b"DOCX"
    assert seen["backend"] == "local"
    assert seen["timeout"] == 30.0
    assert "There are no entries in the audit log." in conv.sources[0]


def test_failed_export_exits_5(document, monkeypatch, fake_converter):
    conv = fake_converter(error=ConversionError("fake exited with code 1: boom", returncode=1))
    monkeypatch.setattr(cli, "build_converter", lambda backend, **kw: conv)
    assert cli.main([str(document), "-f", "pdf"]) == 5
    assert not document.with_suffix(".pdf").exists()
