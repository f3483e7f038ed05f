"""
Pipeline stage endpoints for Reelpipe.

Each endpoint runs one stage to completion within the request:
- POST /projects/{id}/analyze-frames
- POST /projects/{id}/transcribe
- POST /projects/{id}/select-segments
- POST /projects/{id}/render (completion arrives later via /render-callback)

Stage failures caused by an external service leave the project failed
(committed) and return 502.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from reelpipe.api.deps import get_current_active_user, get_db, get_project_or_404
from reelpipe.api.errors import pipeline_http_error
from reelpipe.core.config import get_settings
from reelpipe.models.status import InvalidStatusTransition
from reelpipe.models.user import User
from reelpipe.schemas.frames import FrameAnalysisRequest, FrameAnalysisResponse
from reelpipe.schemas.render import RenderRequest, RenderResponse
from reelpipe.schemas.segment import SegmentResponse
from reelpipe.schemas.selection import SelectSegmentsRequest, SelectSegmentsResponse
from reelpipe.schemas.transcript import TranscribeRequest, TranscribeResponse
from reelpipe.services.composition_builder import composition_duration_ms
from reelpipe.services.errors import PipelineError
from reelpipe.services.frame_scorer import analyze_frames
from reelpipe.services.render_orchestrator import start_render
from reelpipe.services.segment_selector import select_segments
from reelpipe.services.transcript_aligner import transcribe_project

logger = logging.getLogger(__name__)

router = APIRouter()

CALLBACK_PATH = "/api/render-callback"


def build_callback_url(request: Request) -> str:
    """Public URL the render service calls on completion."""
    base = get_settings().public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}{CALLBACK_PATH}"


@router.post(
    "/{project_id}/analyze-frames",
    response_model=FrameAnalysisResponse,
    name="analyze_frames",
    summary="Analyze frames",
    description="Score a batch of sampled frames and append them to the project.",
)
async def analyze_project_frames(
    project_id: str,
    data: FrameAnalysisRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> FrameAnalysisResponse:
    project = await get_project_or_404(project_id, db, current_user)

    try:
        results, failed = await analyze_frames(db, project, data.frames)
    except (PipelineError, InvalidStatusTransition) as e:
        raise await pipeline_http_error(db, e)

    return FrameAnalysisResponse(
        project_id=project.id,
        status=project.status,
        analyzed=len(results),
        failed=failed,
        total_frames=len(project.frame_analysis),
        results=results,
    )


@router.post(
    "/{project_id}/transcribe",
    response_model=TranscribeResponse,
    name="transcribe",
    summary="Transcribe audio",
    description=(
        "Transcribe the given audio URL, or the project's source video, "
        "and replace the stored transcript."
    ),
)
async def transcribe(
    project_id: str,
    data: Optional[TranscribeRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TranscribeResponse:
    project = await get_project_or_404(project_id, db, current_user)
    audio_url = data.audio_url if data else None

    try:
        transcript = await transcribe_project(db, project, audio_url)
    except (PipelineError, InvalidStatusTransition) as e:
        raise await pipeline_http_error(db, e)

    return TranscribeResponse(
        project_id=project.id,
        status=project.status,
        text=transcript.text,
        language=transcript.language,
        word_count=len(transcript.words),
    )


@router.post(
    "/{project_id}/select-segments",
    response_model=SelectSegmentsResponse,
    name="select_segments",
    summary="Select segments",
    description="Ask the selection model for a story-shaped segment set and replace the current one.",
)
async def select_project_segments(
    project_id: str,
    data: Optional[SelectSegmentsRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SelectSegmentsResponse:
    project = await get_project_or_404(project_id, db, current_user)
    target = data.target_duration_sec if data else None

    try:
        segments, proposal = await select_segments(db, project, target)
    except (PipelineError, InvalidStatusTransition) as e:
        raise await pipeline_http_error(db, e)

    settings = get_settings()
    total_ms = composition_duration_ms(segments)
    target_ms = project.target_duration_sec * 1000

    return SelectSegmentsResponse(
        project_id=project.id,
        status=project.status,
        story_summary=proposal.story_summary,
        segments=[SegmentResponse.model_validate(s) for s in segments],
        total_duration_ms=total_ms,
        target_duration_ms=target_ms,
        within_tolerance=abs(total_ms - target_ms) <= settings.duration_tolerance_sec * 1000,
    )


@router.post(
    "/{project_id}/render",
    response_model=RenderResponse,
    status_code=status.HTTP_202_ACCEPTED,
    name="start_render",
    summary="Start render",
    description=(
        "Build the composition from the included segments and submit it to the "
        "render service. Completion is reported later through the render callback."
    ),
)
async def render_project(
    project_id: str,
    request: Request,
    data: Optional[RenderRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> RenderResponse:
    project = await get_project_or_404(project_id, db, current_user)
    data = data or RenderRequest()

    try:
        render, segments = await start_render(
            db,
            project,
            callback_url=build_callback_url(request),
            subtitle_style=data.subtitle_style,
            transition_style=data.transition_style,
        )
    except (PipelineError, InvalidStatusTransition) as e:
        raise await pipeline_http_error(db, e)

    return RenderResponse(
        project_id=project.id,
        render_id=render.id,
        render_job_id=render.external_job_id,
        status=project.status,
        segment_count=len(segments),
        total_duration_ms=composition_duration_ms(segments),
    )
