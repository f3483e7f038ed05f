"""
Render Callback Handler for Reelpipe.

Applies completion notifications from the render service. Each render is
claimed with a conditional UPDATE before any side effect, so duplicate or
concurrent deliveries of the same notification do the work at most once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.storage import build_render_key, save_artifact
from ..models.status import ProjectStatus, RenderStatus, transition
from ..models.video_project import VideoProject
from ..models.video_render import VideoRender
from ..schemas.render import RenderCallback
from .errors import PipelineError
from .media_fetch import download_media

logger = logging.getLogger(__name__)

RENDER_FAILURE_MESSAGE = "Rendering failed"

# A render in one of these states is no longer open to callbacks
CLOSED_RENDER_STATES = (
    RenderStatus.DONE.value,
    RenderStatus.FAILED.value,
    RenderStatus.FINALIZING.value,
)


@dataclass
class CallbackResult:
    """Outcome of applying one callback."""

    render_job_id: str
    status: str
    already_processed: bool = False


async def _claim(db: AsyncSession, render: VideoRender, status: str) -> bool:
    """Move an open render to status; False if it is already closed."""
    result = await db.execute(
        update(VideoRender)
        .where(
            VideoRender.id == render.id,
            VideoRender.status.notin_(CLOSED_RENDER_STATES),
        )
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _tracks_render(project: Optional[VideoProject], render: VideoRender) -> bool:
    """True when the project is still waiting on this render job."""
    return (
        project is not None
        and project.render_job_id == render.external_job_id
        and project.status == ProjectStatus.RENDERING.value
    )


async def _fail_render(
    db: AsyncSession,
    render: VideoRender,
    project: Optional[VideoProject],
    message: str,
) -> None:
    render.status = RenderStatus.FAILED.value
    render.error_message = message
    render.completed_at = datetime.utcnow()
    if _tracks_render(project, render):
        transition(project, ProjectStatus.FAILED, message)
    await db.flush()
    logger.warning(f"Render {render.external_job_id} failed: {message}")


async def get_render_by_job_id(db: AsyncSession, job_id: str) -> Optional[VideoRender]:
    result = await db.execute(
        select(VideoRender).where(VideoRender.external_job_id == job_id)
    )
    return result.scalar_one_or_none()


async def handle_render_callback(
    db: AsyncSession,
    payload: RenderCallback,
) -> Optional[CallbackResult]:
    """
    Apply a render service callback.

    Returns None when no render has the job id (nothing is changed).
    A callback for a render already done or failed, or already being
    finalized by another delivery, is acknowledged without side effects.
    """
    render = await get_render_by_job_id(db, payload.id)
    if render is None:
        logger.warning(f"Callback for unknown render job {payload.id!r}")
        return None

    if render.is_terminal:
        logger.info(f"Render {payload.id} already {render.status}, ignoring callback")
        return CallbackResult(payload.id, render.status, already_processed=True)

    status = payload.status.strip().lower()
    project = await db.get(VideoProject, render.project_id)

    if status == RenderStatus.DONE.value:
        return await _complete_render(db, render, project, payload)

    if status == RenderStatus.FAILED.value:
        message = (payload.error or "").strip() or RENDER_FAILURE_MESSAGE
        if not await _claim(db, render, RenderStatus.FAILED.value):
            return CallbackResult(payload.id, render.status, already_processed=True)
        await db.refresh(render)
        await _fail_render(db, render, project, message[:2000])
        return CallbackResult(payload.id, render.status)

    # Intermediate status: mirror it on the render only. Closed states are
    # local; a notification naming one would lock the render.
    status = status[:20]
    if status in CLOSED_RENDER_STATES:
        logger.warning(f"Render {payload.id} reported reserved status {status!r}, ignoring")
        return CallbackResult(payload.id, render.status)
    if not await _claim(db, render, status):
        return CallbackResult(payload.id, render.status, already_processed=True)
    await db.refresh(render)
    logger.info(f"Render {payload.id} reported {status}")
    return CallbackResult(payload.id, render.status)


async def _complete_render(
    db: AsyncSession,
    render: VideoRender,
    project: Optional[VideoProject],
    payload: RenderCallback,
) -> CallbackResult:
    if not await _claim(db, render, RenderStatus.FINALIZING.value):
        await db.refresh(render)
        return CallbackResult(payload.id, render.status, already_processed=True)
    # Make the claim visible to other deliveries before the download
    await db.commit()
    await db.refresh(render)

    if not payload.url:
        await _fail_render(db, render, project, "Render completed without a video URL")
        return CallbackResult(payload.id, render.status)

    render.output_url = payload.url

    try:
        media = await download_media(payload.url, field="url", default_filename="render.mp4")
        artifact = await save_artifact(
            build_render_key(render.user_id, render.project_id), media.data
        )
    except PipelineError as e:
        await _fail_render(db, render, project, f"Storing rendered video failed: {e.message}")
        return CallbackResult(payload.id, render.status)
    except Exception as e:
        # Past the committed claim every failure must close the render
        logger.error(f"Storing render {payload.id} failed", exc_info=True)
        await _fail_render(db, render, project, f"Storing rendered video failed: {e}")
        return CallbackResult(payload.id, render.status)

    render.status = RenderStatus.DONE.value
    render.stored_video_path = artifact.key
    render.stored_video_url = artifact.url
    render.completed_at = datetime.utcnow()

    if _tracks_render(project, render):
        transition(project, ProjectStatus.RENDER_COMPLETE)
        project.rendered_video_path = artifact.key
        project.rendered_video_url = artifact.url
    elif project is not None:
        logger.info(
            f"Project {project.id} is no longer waiting on render {payload.id}; "
            f"stored artifact without changing the project"
        )

    await db.flush()
    logger.info(
        f"reel_render_complete project={render.project_id} job={payload.id} "
        f"bytes={media.size} url={artifact.url}"
    )
    return CallbackResult(payload.id, render.status)
