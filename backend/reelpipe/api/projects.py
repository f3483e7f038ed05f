"""
Project endpoints for Reelpipe.

Provides listing, creation, inspection and editing of video projects, plus
read access to their segments and render history. All endpoints require
authentication and verify project ownership.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reelpipe.api.deps import get_current_active_user, get_db, get_project_or_404
from reelpipe.api.errors import conflict
from reelpipe.core.config import get_settings
from reelpipe.models.status import InvalidStatusTransition, ProjectStatus, transition
from reelpipe.models.user import User
from reelpipe.models.video_project import VideoProject
from reelpipe.models.video_render import VideoRender
from reelpipe.models.video_segment import VideoSegment
from reelpipe.schemas.project import (
    ProjectCreate,
    ProjectListItem,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatusResponse,
    ProjectUpdate,
)
from reelpipe.schemas.render import RenderHistoryItem, RenderHistoryResponse
from reelpipe.schemas.segment import SegmentListResponse, SegmentResponse

router = APIRouter()

PROJECT_LIST_LIMIT = 50

# Fields that may be cleared by sending null
NULLABLE_FIELDS = {"background_music_url", "post_id"}


# =============================================================================
# Helper Functions
# =============================================================================


def project_to_response(
    project: VideoProject,
    segments: list[VideoSegment],
) -> ProjectResponse:
    """Build a ProjectResponse without touching unloaded relationships."""
    return ProjectResponse(
        id=project.id,
        post_id=project.post_id,
        source_video_path=project.source_video_path,
        source_video_url=project.source_video_url,
        source_duration_ms=project.source_duration_ms,
        source_width=project.source_width,
        source_height=project.source_height,
        source_file_size=project.source_file_size,
        frame_analysis=project.frame_analysis or [],
        transcript=project.transcript,
        target_duration_sec=project.target_duration_sec,
        subtitle_style=project.subtitle_style,
        transition_style=project.transition_style,
        background_music_url=project.background_music_url,
        render_job_id=project.render_job_id,
        rendered_video_path=project.rendered_video_path,
        rendered_video_url=project.rendered_video_url,
        status=project.status,
        error_message=project.error_message,
        segments=[
            SegmentResponse.model_validate(s)
            for s in sorted(segments, key=lambda s: s.segment_index)
        ],
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="Get the current user's most recent projects, newest first.",
)
async def list_projects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProjectListResponse:
    query = (
        select(VideoProject)
        .where(VideoProject.user_id == current_user.id)
        .order_by(VideoProject.created_at.desc())
        .limit(PROJECT_LIST_LIMIT)
    )
    result = await db.execute(query)
    projects = result.scalars().all()

    items = [ProjectListItem.model_validate(p) for p in projects]
    return ProjectListResponse(projects=items, total=len(items))


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Create a project from an uploaded source video descriptor.",
)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProjectResponse:
    """
    Create a new project in the uploaded state.

    The source video is already in storage; only its descriptor is recorded.
    """
    project = VideoProject(
        user_id=current_user.id,
        post_id=data.post_id,
        source_video_path=data.source_video_path,
        source_video_url=data.source_video_url,
        source_duration_ms=data.source_duration_ms,
        source_width=data.source_width,
        source_height=data.source_height,
        source_file_size=data.source_file_size,
        target_duration_sec=data.target_duration_sec or get_settings().default_target_duration_sec,
        subtitle_style=data.subtitle_style,
        transition_style=data.transition_style,
        background_music_url=data.background_music_url,
        status=ProjectStatus.UPLOADED.value,
        frame_analysis=[],
    )

    db.add(project)
    await db.flush()
    await db.refresh(project)

    return project_to_response(project, [])


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project details",
    description="Get the full project including analysis artifacts and segments.",
)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProjectResponse:
    project = await get_project_or_404(project_id, db, current_user, load_segments=True)
    return project_to_response(project, project.segments)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update project",
    description="Update editing parameters, the linked post, or status and error message.",
)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProjectResponse:
    """
    Update application-settable project fields.

    A status change must be a legal state machine edge (409 otherwise).
    An error_message alone may only be set on a failed project.
    """
    project = await get_project_or_404(project_id, db, current_user, load_segments=True)

    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)
    error_message = update_data.pop("error_message", None)

    for field, value in update_data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(project, field, value)

    if new_status is not None:
        try:
            transition(project, ProjectStatus(new_status), error=error_message)
        except InvalidStatusTransition as e:
            raise conflict(e)
    elif error_message is not None:
        if project.status != ProjectStatus.FAILED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "error": "validation_error",
                    "message": "error_message can only be set on a failed project",
                    "field": "error_message",
                },
            )
        project.error_message = error_message

    await db.flush()
    await db.refresh(project, attribute_names=["updated_at"])

    return project_to_response(project, project.segments)


@router.get(
    "/{project_id}/status",
    response_model=ProjectStatusResponse,
    summary="Get project status",
    description="Lightweight status poll for the pipeline.",
)
async def get_project_status(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProjectStatusResponse:
    project = await get_project_or_404(project_id, db, current_user)

    counts = await db.execute(
        select(
            func.count(VideoSegment.id),
            func.count(VideoSegment.id).filter(VideoSegment.is_included.is_(True)),
        ).where(VideoSegment.project_id == project.id)
    )
    segment_count, included_count = counts.one()

    return ProjectStatusResponse(
        project_id=project.id,
        status=project.status,
        error_message=project.error_message,
        frames_analyzed=len(project.frame_analysis or []),
        has_transcript=project.transcript is not None,
        segment_count=segment_count or 0,
        included_segment_count=included_count or 0,
        render_job_id=project.render_job_id,
        rendered_video_url=project.rendered_video_url,
        updated_at=project.updated_at,
    )


@router.get(
    "/{project_id}/segments",
    response_model=SegmentListResponse,
    summary="List segments",
    description="Get all segments of a project ordered by output position.",
)
async def list_segments(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SegmentListResponse:
    project = await get_project_or_404(project_id, db, current_user)

    result = await db.execute(
        select(VideoSegment)
        .where(VideoSegment.project_id == project.id)
        .order_by(VideoSegment.segment_index)
    )
    segments = [SegmentResponse.model_validate(s) for s in result.scalars().all()]

    return SegmentListResponse(project_id=project.id, segments=segments, total=len(segments))


@router.get(
    "/{project_id}/renders",
    response_model=RenderHistoryResponse,
    summary="List renders",
    description="Get the render history of a project, newest first.",
)
async def list_renders(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> RenderHistoryResponse:
    project = await get_project_or_404(project_id, db, current_user)

    result = await db.execute(
        select(VideoRender)
        .where(VideoRender.project_id == project.id)
        .order_by(VideoRender.created_at.desc())
    )
    renders = [RenderHistoryItem.model_validate(r) for r in result.scalars().all()]

    return RenderHistoryResponse(project_id=project.id, renders=renders, total=len(renders))
