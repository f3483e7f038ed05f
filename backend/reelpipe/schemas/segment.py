"""
Pydantic schemas for VideoSegment endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SegmentUpdate(BaseModel):
    """
    Partial update of one segment by a person.

    Timing fields are validated against the merged row, since either bound
    may be patched alone.
    """

    is_included: Optional[bool] = None
    subtitle_text: Optional[str] = Field(default=None, max_length=500)
    segment_index: Optional[int] = Field(default=None, ge=0)
    start_ms: Optional[int] = Field(default=None, ge=0)
    end_ms: Optional[int] = Field(default=None, gt=0)


class SegmentResponse(BaseModel):
    """Segment as returned to the application."""

    id: str
    project_id: str
    segment_index: int
    start_ms: int
    end_ms: int
    score: Optional[float] = None
    narrative_role: Optional[str] = None
    reason: Optional[str] = None
    transcript_text: Optional[str] = None
    subtitle_text: Optional[str] = None
    is_included: bool
    is_user_modified: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SegmentListResponse(BaseModel):
    """Segments of one project ordered by segment_index."""

    project_id: str
    segments: List[SegmentResponse]
    total: int
