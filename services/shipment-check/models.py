"""Pydantic models shared by the intake, analysis and flow layers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FlowStage(str, Enum):
    COLLECT = "collect"
    ANALYZING = "analyzing"
    RESULT = "result"
    ERROR = "error"


class CandidateFile(BaseModel):
    """A file offered for analysis. Size is the declared byte count."""

    name: str
    content_type: str
    size: int
    content: bytes = b""

    @classmethod
    def from_bytes(cls, name: str, content_type: str, content: bytes) -> "CandidateFile":
        return cls(name=name, content_type=content_type, size=len(content), content=content)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    looks_like_shipment: bool
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str = Field(min_length=1)
    notes: str | None = None
    missing_items: list[str] = []


class FileMeta(BaseModel):
    name: str
    size: str
    content_type: str


class Helpline(BaseModel):
    number: str
    tel: str


class FlowSnapshot(BaseModel):
    stage: FlowStage
    result: AnalysisResult | None = None
    confidence_label: str | None = None
    error: str | None = None
    file: FileMeta | None = None
    preview_url: str | None = None
    helpline_eligible: bool = False
    helpline: Helpline | None = None


class SessionSnapshot(FlowSnapshot):
    session_id: str
