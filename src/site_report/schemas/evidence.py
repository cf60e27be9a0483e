"""Pydantic schemas for captured evidence and reports.

Defines EvidenceCapture (capture-time input), EvidenceItem, JobMetadata and Report.
"""

from __future__ import annotations

from datetime import date as date_type, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_EVIDENCE = 1
MAX_EVIDENCE = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnnotationKind(str, Enum):
    TEXT = "text"
    VOICE = "voice"


class ReportStatus(str, Enum):
    DRAFT = "draft"


class PipelineStage(str, Enum):
    CREATED = "created"
    ANALYZED = "analyzed"
    EDITED = "edited"
    ASSEMBLED = "assembled"


class JobMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    job_name: str = Field(..., min_length=1)
    client_name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    date: str = Field(default_factory=lambda: date_type.today().isoformat(), min_length=1)


class EvidenceCapture(BaseModel):
    """What the inspector captured for one photo: typed text or a voice note, not both."""
    image_path: str
    annotation_kind: AnnotationKind = AnnotationKind.TEXT
    text: Optional[str] = None
    audio_path: Optional[str] = None


class EvidenceItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_path: str
    annotation_kind: AnnotationKind
    description: str = ""
    raw_transcript: str = ""
    ingest_error: Optional[str] = None # swallowed transcription/captioning failure


class Report(BaseModel):
    id: str
    job: JobMetadata
    evidence: List[EvidenceItem] = Field(..., min_length=MIN_EVIDENCE, max_length=MAX_EVIDENCE)
    narrative_text: Optional[str] = None
    status: ReportStatus = ReportStatus.DRAFT
    stage: PipelineStage = PipelineStage.CREATED
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def ordered_descriptions(self) -> List[tuple[int, str]]:
        """(photo number, description) pairs in canonical evidence order."""
        return [(i + 1, item.description) for i, item in enumerate(self.evidence)]

    def revise(self, **changes) -> "Report":
        """Return an updated copy; the stored report is never mutated in place."""
        changes.setdefault("updated_at", _utcnow())
        return self.model_copy(update=changes)
