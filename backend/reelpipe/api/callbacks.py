"""
Render service callback endpoint for Reelpipe.

Unauthenticated: the render service cannot hold user credentials. The job
id must match a known render and any artifact URL must pass the outbound
fetch check before it is downloaded.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reelpipe.api.deps import get_db
from reelpipe.api.errors import not_found
from reelpipe.schemas.render import RenderCallback, RenderCallbackResponse
from reelpipe.services.callback_handler import handle_render_callback

router = APIRouter()


@router.post(
    "/render-callback",
    response_model=RenderCallbackResponse,
    name="render_callback",
    summary="Render completion callback",
    description="Receives job status notifications from the render service.",
)
async def render_callback(
    payload: RenderCallback,
    db: AsyncSession = Depends(get_db),
) -> RenderCallbackResponse:
    """
    Apply a render status notification.

    Repeated deliveries for a finished render are acknowledged with
    already_processed=true and change nothing.
    """
    result = await handle_render_callback(db, payload)
    if result is None:
        raise not_found("render", payload.id)

    return RenderCallbackResponse(
        render_job_id=result.render_job_id,
        status=result.status,
        already_processed=result.already_processed,
    )
