"""
Pydantic schemas for frame analysis.

FrameJudgement is also the boundary model for the vision model's reply;
anything that does not validate against it is replaced by default_judgement().
"""

from typing import List, Literal

from pydantic import BaseModel, Field, field_validator

EnergyLevel = Literal["low", "medium", "high"]


class FrameInput(BaseModel):
    """One sampled frame submitted for analysis."""

    index: int = Field(..., ge=0, description="Frame index within the sample")
    timestamp_ms: int = Field(..., ge=0, description="Source timestamp in milliseconds")
    image: str = Field(
        ...,
        min_length=1,
        description="Base64 image data, a data: URI, or an https image URL"
    )


class FrameAnalysisRequest(BaseModel):
    """Batch of frames to analyze."""

    frames: List[FrameInput] = Field(..., min_length=1, max_length=200)


class FrameJudgement(BaseModel):
    """Structured per-frame judgement from the vision model."""

    score: float = Field(..., ge=0, le=10)
    description: str = Field(..., min_length=1, max_length=500)
    tags: List[str] = Field(..., min_length=0, max_length=10)
    has_face: bool
    has_text: bool
    energy_level: EnergyLevel

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip() for tag in v if tag and tag.strip()]


class FrameResult(FrameJudgement):
    """Judgement bound to its frame, as stored in VideoProject.frame_analysis."""

    frame_index: int
    timestamp_ms: int


def default_judgement() -> FrameJudgement:
    """Safe record used when a frame cannot be analyzed."""
    return FrameJudgement(
        score=0,
        description="Analysis failed",
        tags=[],
        has_face=False,
        has_text=False,
        energy_level="low",
    )


class FrameAnalysisResponse(BaseModel):
    """Result of one analysis batch."""

    project_id: str
    status: str
    analyzed: int
    failed: int
    total_frames: int
    results: List[FrameResult]
