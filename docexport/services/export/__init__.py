# SPDX-License-Identifier: Apache-2.0
"""
Export services for section-tree documents.

This package provides:
- LaTeX generation from a structure tree, content map and audit log
- Remote image staging into a job sandbox
- Source sanitizing for the converter
- Pandoc-based converters (local subprocess or Docker image)
- The orchestrator that ties them together per export job

Public entry points:
- latex.generate_document(structure, contents, audit_log?, target?, today?)
- orchestrator.ExportOrchestrator(converter).export(source, target)
- pandoc.build_converter(backend, ...)
"""
from __future__ import annotations

__all__ = [
    "errors",
    "latex",
    "orchestrator",
    "pandoc",
    "resources",
    "sanitize",
]
