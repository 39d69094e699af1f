# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# node id -> raw author text (rich markup source)
ContentMap = Dict[str, str]


class ExportFormat(str, Enum):
    word = "word"
    pdf = "pdf"

    @property
    def pandoc_target(self) -> str:
        # PDF goes through pandoc's LaTeX writer and a PDF engine.
        return "docx" if self is ExportFormat.word else "latex"

    @property
    def extension(self) -> str:
        return ".docx" if self is ExportFormat.word else ".pdf"

    @property
    def mime_type(self) -> str:
        if self is ExportFormat.word:
            return "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        return "application/pdf"

    @property
    def default_filename(self) -> str:
        return f"document{self.extension}"


class StructureNode(BaseModel):
    """
    One section/chapter of the document tree. Children are ordered.
    """
    id: str
    name: str = ""
    category: Optional[str] = None
    nodes: List["StructureNode"] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        # ids arrive as numbers from some clients
        if v is None:
            raise ValueError("id is required")
        return str(v)

    @field_validator("nodes", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return v or []


StructureNode.model_rebuild()


class AuditEntry(BaseModel):
    """
    Record of an assisted edit, rendered as a row of the audit-log appendix.
    Accepts the camelCase keys sent by the editor (and the legacy `aiName`).
    """
    model_config = ConfigDict(populate_by_name=True)

    tool_name: str = Field(
        default="",
        validation_alias=AliasChoices("toolName", "aiName", "tool_name"),
        serialization_alias="toolName",
    )
    usage_form: str = Field(
        default="",
        validation_alias=AliasChoices("usageForm", "usage_form"),
        serialization_alias="usageForm",
    )
    affected_parts: str = Field(
        default="",
        validation_alias=AliasChoices("affectedParts", "affected_parts"),
        serialization_alias="affectedParts",
    )
    remarks: str = ""
    created_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )


def content_map_from_records(records: Iterable[Mapping[str, object]]) -> ContentMap:
    """
    Build a ContentMap from stored node-content records ({nodeId, name, content}).
    Later records win when a node id repeats.
    """
    out: ContentMap = {}
    for rec in records:
        node_id = rec.get("nodeId")
        if node_id is None:
            continue
        out[str(node_id)] = str(rec.get("content") or "")
    return out
