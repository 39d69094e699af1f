from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from docexport.models import AuditEntry, ExportFormat, StructureNode, content_map_from_records


class ExportRequest(BaseModel):
    # `latexContent` is what older editor builds send
    source: Optional[str] = Field(default=None, validation_alias=AliasChoices("source", "latexContent"))
    filename: Optional[str] = None


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    structure: List[StructureNode]
    contents: Dict[str, str] = Field(
        default_factory=dict, validation_alias=AliasChoices("contents", "nodeContents")
    )
    audit_log: List[AuditEntry] = Field(
        default_factory=list, validation_alias=AliasChoices("auditLog", "audit_log")
    )
    profile: ExportFormat = ExportFormat.pdf
    filename: Optional[str] = None

    @field_validator("contents", mode="before")
    @classmethod
    def _records_to_map(cls, v: Any):
        if v is None:
            return {}
        if isinstance(v, list):
            return content_map_from_records(v)
        return v


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None
    stack: Optional[str] = None
