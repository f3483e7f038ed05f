"""
Pydantic schemas for AI segment selection.

ProposedSegment and SelectionProposal validate the reasoning model's tool
call arguments. Cross-segment rules (contiguous indices, source bounds,
subtitle length) are checked by services.segment_selector.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .segment import SegmentResponse

NarrativeRole = Literal["hook", "context", "buildup", "climax", "cta"]


class ProposedSegment(BaseModel):
    """One segment as proposed by the selection model."""

    segment_index: int = Field(..., ge=0)
    start_ms: int = Field(..., ge=0)
    end_ms: int = Field(..., gt=0)
    score: Optional[float] = Field(default=None, ge=0, le=10)
    narrative_role: Optional[NarrativeRole] = None
    reason: Optional[str] = None
    transcript_text: Optional[str] = None
    subtitle_text: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_range(self) -> "ProposedSegment":
        if self.end_ms <= self.start_ms:
            raise ValueError(
                f"segment {self.segment_index}: end_ms ({self.end_ms}) must be "
                f"greater than start_ms ({self.start_ms})"
            )
        return self


class SelectionProposal(BaseModel):
    """Complete reply of the selection model."""

    segments: List[ProposedSegment] = Field(..., min_length=1)
    story_summary: Optional[str] = None


class SelectSegmentsRequest(BaseModel):
    """Optional override of the project's target duration."""

    target_duration_sec: Optional[int] = Field(default=None, ge=5, le=180)


class SelectSegmentsResponse(BaseModel):
    """Persisted selection."""

    project_id: str
    status: str
    story_summary: Optional[str] = None
    segments: List[SegmentResponse]
    total_duration_ms: int
    target_duration_ms: int
    within_tolerance: bool
