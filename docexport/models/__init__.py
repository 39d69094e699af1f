# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

# Re-export commonly used models for convenience
from .document import AuditEntry, ContentMap, ExportFormat, StructureNode, content_map_from_records
from .conversion import ConversionResult, Failed, Succeeded

__all__ = [
    "AuditEntry",
    "ContentMap",
    "ExportFormat",
    "StructureNode",
    "content_map_from_records",
    "ConversionResult",
    "Failed",
    "Succeeded",
]
