"""
Render Orchestrator service for Reelpipe.

Builds the composition from a project's included segments, submits it to
the render service and records the job.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.status import (
    InvalidStatusTransition,
    ProjectStatus,
    RenderStatus,
    can_transition,
    transition,
)
from ..models.video_project import VideoProject
from ..models.video_render import VideoRender
from ..models.video_segment import VideoSegment
from .composition_builder import build_composition, composition_duration_ms
from .errors import PipelineValidationError, RenderSubmissionError
from .render_client import submit_render

logger = logging.getLogger(__name__)


async def get_included_segments(db: AsyncSession, project_id: str) -> list[VideoSegment]:
    """Included segments of a project in output order."""
    result = await db.execute(
        select(VideoSegment)
        .where(
            VideoSegment.project_id == project_id,
            VideoSegment.is_included.is_(True),
        )
        .order_by(VideoSegment.segment_index)
    )
    return list(result.scalars().all())


async def start_render(
    db: AsyncSession,
    project: VideoProject,
    callback_url: str,
    subtitle_style: Optional[str] = None,
    transition_style: Optional[str] = None,
) -> tuple[VideoRender, list[VideoSegment]]:
    """
    Submit a render for the project.

    On success a queued VideoRender is added and the project is stamped
    with the job id in rendering.

    Raises:
        PipelineValidationError: No source URL or no included segments;
            nothing is changed
        InvalidStatusTransition: The project cannot enter rendering
        RenderSubmissionError: Submission failed; the project is left
            failed, uncommitted
    """
    if not project.source_video_url:
        raise PipelineValidationError(
            "Project has no source video URL", field="source_video_url"
        )

    segments = await get_included_segments(db, project.id)
    if not segments:
        raise PipelineValidationError("No segments selected for rendering", field="segments")

    current = ProjectStatus(project.status)
    if not can_transition(current, ProjectStatus.RENDERING):
        raise InvalidStatusTransition(current, ProjectStatus.RENDERING)

    if subtitle_style:
        project.subtitle_style = subtitle_style
    if transition_style:
        project.transition_style = transition_style

    composition = build_composition(
        segments,
        source_video_url=project.source_video_url,
        subtitle_style=project.subtitle_style,
        transition_style=project.transition_style,
        callback_url=callback_url,
        background_music_url=project.background_music_url,
    )

    transition(project, ProjectStatus.RENDERING)
    await db.commit()

    logger.info(f"Submitting render for project {project.id} ({len(segments)} segments)")

    try:
        job_id = await submit_render(composition)
    except RenderSubmissionError as e:
        transition(project, ProjectStatus.FAILED, e.message)
        raise

    render = VideoRender(
        project_id=project.id,
        user_id=project.user_id,
        external_job_id=job_id,
        status=RenderStatus.QUEUED.value,
        composition=composition,
    )
    db.add(render)
    project.render_job_id = job_id
    await db.flush()

    logger.info(
        f"reel_render_started project={project.id} job={job_id} "
        f"segments={len(segments)} duration_ms={composition_duration_ms(segments)}"
    )
    return render, segments
