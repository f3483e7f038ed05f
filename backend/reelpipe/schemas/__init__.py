"""
Pydantic schemas for Reelpipe API.

Request/response models and the boundary models used to validate replies
from the external model services.
"""

from .frames import (
    FrameAnalysisRequest,
    FrameAnalysisResponse,
    FrameInput,
    FrameJudgement,
    FrameResult,
    default_judgement,
)
from .project import (
    ProjectCreate,
    ProjectListItem,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatusResponse,
    ProjectUpdate,
)
from .render import (
    RenderCallback,
    RenderCallbackResponse,
    RenderHistoryItem,
    RenderHistoryResponse,
    RenderRequest,
    RenderResponse,
)
from .segment import SegmentListResponse, SegmentResponse, SegmentUpdate
from .selection import (
    ProposedSegment,
    SelectionProposal,
    SelectSegmentsRequest,
    SelectSegmentsResponse,
)
from .transcript import (
    TranscribeRequest,
    TranscribeResponse,
    Transcript,
    TranscriptChunk,
    TranscriptWord,
)

__all__ = [
    "FrameAnalysisRequest",
    "FrameAnalysisResponse",
    "FrameInput",
    "FrameJudgement",
    "FrameResult",
    "default_judgement",
    "ProjectCreate",
    "ProjectListItem",
    "ProjectListResponse",
    "ProjectResponse",
    "ProjectStatusResponse",
    "ProjectUpdate",
    "RenderCallback",
    "RenderCallbackResponse",
    "RenderHistoryItem",
    "RenderHistoryResponse",
    "RenderRequest",
    "RenderResponse",
    "SegmentListResponse",
    "SegmentResponse",
    "SegmentUpdate",
    "ProposedSegment",
    "SelectionProposal",
    "SelectSegmentsRequest",
    "SelectSegmentsResponse",
    "TranscribeRequest",
    "TranscribeResponse",
    "Transcript",
    "TranscriptChunk",
    "TranscriptWord",
]
