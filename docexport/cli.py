# SPDX-License-Identifier: Apache-2.0
"""Command-line export: `docexport document.json -f word -o out.docx`."""
from __future__ import annotations
import argparse, json, sys
from pathlib import Path

from .models import ExportFormat, Failed, content_map_from_records
from .services.export.latex import generate_document
from .services.export.orchestrator import ExportOrchestrator
from .services.export.pandoc import build_converter


def load_document(path: Path) -> dict:
    data = json.loads(path.read_text(encoding="utf-8"))
    contents = data.get("contents") or data.get("nodeContents") or {}
    if isinstance(contents, list):
        contents = content_map_from_records(contents)
    return {
        "structure": data.get("structure") or [],
        "contents": contents,
        "audit_log": data.get("auditLog") or data.get("audit_log") or [],
    }


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="docexport", description="Generate LaTeX from a section tree and optionally convert it")
    ap.add_argument("document", help="JSON file with structure, contents and auditLog")
    ap.add_argument("-f", "--format", choices=["latex", "word", "pdf"], default="latex")
    ap.add_argument("-o", "--output", default=None, help="Output file (default: next to the input)")
    ap.add_argument("--backend", choices=["local", "docker"], default="local")
    ap.add_argument("--pandoc", default="pandoc")
    ap.add_argument("--pdf-engine", default="xelatex")
    ap.add_argument("--docker-image", default="pandoc/latex:3.1")
    ap.add_argument("--timeout", type=float, default=120.0)
    a = ap.parse_args(argv)

    src = Path(a.document).resolve()
    if not src.exists():
        print(f"❌ Document not found: {src}", file=sys.stderr)
        return 2
    try:
        doc = load_document(src)
    except (ValueError, OSError) as e:
        print(f"❌ Could not read {src}: {e}", file=sys.stderr)
        return 2

    profile = ExportFormat.word if a.format == "word" else ExportFormat.pdf
    latex = generate_document(doc["structure"], doc["contents"], doc["audit_log"], target=profile)

    if a.format == "latex":
        out = Path(a.output) if a.output else src.with_suffix(".tex")
        out.write_text(latex, encoding="utf-8")
        print(f"✅ LaTeX written: {out}")
        return 0

    converter = build_converter(
        a.backend,
        pandoc_bin=a.pandoc,
        pdf_engine=a.pdf_engine,
        docker_image=a.docker_image,
        timeout=a.timeout,
    )
    result = ExportOrchestrator(converter, fetch_timeout=15.0).export(latex, profile)
    if isinstance(result, Failed):
        print(f"❌ Export failed at {result.stage}: {result.message}", file=sys.stderr)
        return 5
    out = Path(a.output) if a.output else src.with_suffix(profile.extension)
    out.write_bytes(result.data)
    print(f"✅ {profile.value} written: {out} ({len(result.data)} bytes)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
