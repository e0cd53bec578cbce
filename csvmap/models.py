from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, computed_field

SKIP_TARGET = "skip"

RawRow = Dict[str, str]
TransformedRecord = Dict[str, str]


class TargetFieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    required: bool = False


class KeywordRule(BaseModel):
    """A header containing any of ``keywords`` (case-insensitive) maps to ``target``."""

    model_config = ConfigDict(frozen=True)

    target: str
    keywords: Tuple[str, ...]


class FieldMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str = ""

    @computed_field
    @property
    def mapped(self) -> bool:
        return self.target not in ("", SKIP_TARGET)


class MappingSet(BaseModel):
    """One FieldMapping per header, in header order."""

    model_config = ConfigDict(frozen=True)

    mappings: Tuple[FieldMapping, ...] = ()

    @property
    def sources(self) -> List[str]:
        return [m.source for m in self.mappings]

    def get(self, source: str) -> Optional[FieldMapping]:
        for m in self.mappings:
            if m.source == source:
                return m
        return None


class ReportItem(BaseModel):
    row: Optional[int] = None
    column: Optional[str] = None
    issue: str
    value: Optional[str] = None
    action: str


class ParseReport(BaseModel):
    normalizations: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[ReportItem] = Field(default_factory=list)


class ParseResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: List[str]
    rows: List[RawRow]
    total_rows: int
    truncated: bool = False
    report: ParseReport = Field(default_factory=ParseReport)


class TransformResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: List[TransformedRecord]
    active_targets: List[str]


class ExportBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    filename: str
    content_type: str

    def encode(self) -> bytes:
        return self.content.encode("utf-8")


# --- API envelopes ---


class HealthResponse(BaseModel):
    ok: bool = True


class ExportFormatInfo(BaseModel):
    id: str
    label: str
    content_type: str


class CatalogResponse(BaseModel):
    fields: List[TargetFieldDefinition]
    formats: List[ExportFormatInfo]


class PreviewResponse(BaseModel):
    headers: List[str]
    rows: List[RawRow]
    mappings: List[FieldMapping]
    missing_required: List[str] = Field(default_factory=list)
    total_rows: int
    truncated: bool
    report: ParseReport


class OverrideRequest(BaseModel):
    mappings: List[FieldMapping]
    source: str
    target: str


class ExportedFile(BaseModel):
    filename: str
    content_type: str
    sha256: str
    content_b64: str


class ExportSummary(BaseModel):
    rows: int
    columns: int
    warnings: int = 0


class ExportResponse(BaseModel):
    export: ExportedFile
    summary: ExportSummary
