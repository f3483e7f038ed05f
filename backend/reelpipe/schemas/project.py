"""
Pydantic schemas for VideoProject endpoints.

Includes request/response models for project CRUD and status polling.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from .segment import SegmentResponse

SubtitleStyle = Literal["bold_center", "bottom_bar", "karaoke", "minimal"]
TransitionStyle = Literal["smooth", "fade", "zoom", "cut"]
ProjectStatusValue = Literal[
    "uploaded",
    "analyzing_frames",
    "transcribing",
    "selecting_segments",
    "segments_ready",
    "rendering",
    "render_complete",
    "failed",
]


# --- Request Schemas ---

class ProjectCreate(BaseModel):
    """Schema for creating a project from an upload descriptor."""

    source_video_path: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Storage path of the uploaded source video"
    )
    source_video_url: Optional[str] = Field(
        default=None,
        max_length=2048,
        description="Fetchable https URL of the source video"
    )
    source_duration_ms: Optional[int] = Field(
        default=None,
        gt=0,
        description="Source duration in milliseconds"
    )
    source_width: Optional[int] = Field(default=None, gt=0)
    source_height: Optional[int] = Field(default=None, gt=0)
    source_file_size: Optional[int] = Field(default=None, ge=0)
    post_id: Optional[str] = Field(default=None, max_length=36)
    target_duration_sec: Optional[int] = Field(
        default=None,
        ge=5,
        le=180,
        description="Target reel duration in seconds"
    )
    subtitle_style: SubtitleStyle = "bold_center"
    transition_style: TransitionStyle = "smooth"
    background_music_url: Optional[str] = Field(default=None, max_length=2048)


class ProjectUpdate(BaseModel):
    """
    Partial update of application-settable project fields.

    A status change is routed through the project state machine.
    """

    target_duration_sec: Optional[int] = Field(default=None, ge=5, le=180)
    subtitle_style: Optional[SubtitleStyle] = None
    transition_style: Optional[TransitionStyle] = None
    background_music_url: Optional[str] = Field(default=None, max_length=2048)
    post_id: Optional[str] = Field(default=None, max_length=36)
    status: Optional[ProjectStatusValue] = None
    error_message: Optional[str] = Field(default=None, max_length=2000)


# --- Response Schemas ---

class ProjectResponse(BaseModel):
    """Full project response including its segments."""

    id: str
    post_id: Optional[str] = None
    source_video_path: str
    source_video_url: Optional[str] = None
    source_duration_ms: Optional[int] = None
    source_width: Optional[int] = None
    source_height: Optional[int] = None
    source_file_size: Optional[int] = None
    frame_analysis: List[dict[str, Any]] = []
    transcript: Optional[dict[str, Any]] = None
    target_duration_sec: int
    subtitle_style: str
    transition_style: str
    background_music_url: Optional[str] = None
    render_job_id: Optional[str] = None
    rendered_video_path: Optional[str] = None
    rendered_video_url: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    segments: List[SegmentResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectListItem(BaseModel):
    """Project item for list response."""

    id: str
    post_id: Optional[str] = None
    source_video_path: str
    status: str
    error_message: Optional[str] = None
    target_duration_sec: int
    rendered_video_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """Response for project list endpoint."""

    projects: List[ProjectListItem]
    total: int


class ProjectStatusResponse(BaseModel):
    """Lightweight status poll response."""

    project_id: str
    status: str
    error_message: Optional[str] = None
    frames_analyzed: int
    has_transcript: bool
    segment_count: int
    included_segment_count: int
    render_job_id: Optional[str] = None
    rendered_video_url: Optional[str] = None
    updated_at: Optional[datetime] = None
