from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportContext(BaseModel):
    time: str | None = None
    location: str | None = None
    environmental_factors: str | None = None


class ReportRelevance(BaseModel):
    legal: bool = False
    hr: bool = False
    safety: bool = False
    explanation: str | None = None


class ReportOptions(BaseModel):
    case_id: str | None = None
    reviewed_by: str | None = None
    confidential: bool = False
    watermark: bool = False
    include_signature: bool = True
    include_timestamps: bool = True
    include_footer: bool = True


class ReportInput(BaseModel):
    """Canonical incident record consumed by the layout engine.

    Every field is optional; the engine substitutes its fallback strings for
    anything absent. Use ``normalize_report_input`` to build one from the
    loosely shaped payloads produced by the summarizer or the web client.
    """

    summary: str | None = None
    participants: list[str] = Field(default_factory=list)
    key_events: list[str] = Field(default_factory=list)
    context: ReportContext = Field(default_factory=ReportContext)
    notable_quotes: list[str] = Field(default_factory=list)
    report_relevance: ReportRelevance = Field(default_factory=ReportRelevance)
    video_url: str | None = None
    transcript_text: str | None = None
    transcript_label: str | None = None
    options: ReportOptions = Field(default_factory=ReportOptions)


class ReportResult(BaseModel):
    case_id: str
    page_count: int
    byte_size: int
    generated_at: datetime
    pdf_path: Path | None = None
    metadata_path: Path | None = None
    pdf: bytes = Field(default=b'', exclude=True, repr=False)
