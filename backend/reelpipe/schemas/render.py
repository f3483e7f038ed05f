"""
Pydantic schemas for render submission and the render service callback.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Request Schemas ---


class RenderRequest(BaseModel):
    """Optional per-render style overrides; defaults come from the project."""

    subtitle_style: Optional[str] = Field(
        None,
        pattern="^(bold_center|bottom_bar|karaoke|minimal)$",
        description="Subtitle style override",
    )
    transition_style: Optional[str] = Field(
        None,
        pattern="^(smooth|fade|zoom|cut)$",
        description="Transition style override",
    )


class RenderCallback(BaseModel):
    """
    Completion notification posted by the render service.

    Unknown fields are ignored; the service sends more than we read.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, max_length=100, description="External job id")
    status: str = Field(..., min_length=1, max_length=30)
    url: Optional[str] = Field(None, max_length=2048)
    error: Optional[str] = None


# --- Response Schemas ---


class RenderResponse(BaseModel):
    """Response when a render job is submitted (202 Accepted)."""

    project_id: str
    render_id: str
    render_job_id: str = Field(..., description="External render job id")
    status: str
    segment_count: int
    total_duration_ms: int


class RenderCallbackResponse(BaseModel):
    """Acknowledgement returned to the render service."""

    received: bool = True
    render_job_id: str
    status: str
    already_processed: bool = False


class RenderHistoryItem(BaseModel):
    """One past render of a project."""

    id: str
    external_job_id: str
    status: str
    error_message: Optional[str] = None
    output_url: Optional[str] = None
    stored_video_url: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RenderHistoryResponse(BaseModel):
    """Render history, newest first."""

    project_id: str
    renders: List[RenderHistoryItem]
    total: int

