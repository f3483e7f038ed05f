"""
Segment endpoints for Reelpipe.

Manual edits to machine-selected segments. Every edit marks the segment
user-modified and renumbers the project's segments.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reelpipe.api.deps import get_current_active_user, get_db, get_segment_or_404
from reelpipe.api.errors import validation_error
from reelpipe.models.user import User
from reelpipe.schemas.segment import SegmentResponse, SegmentUpdate
from reelpipe.services.errors import PipelineValidationError
from reelpipe.services.segment_editor import update_segment

router = APIRouter()


@router.patch(
    "/{segment_id}",
    response_model=SegmentResponse,
    summary="Update segment",
    description=(
        "Change a segment's inclusion, subtitle text, position or timing. "
        "Included segments keep a contiguous 0..N-1 order."
    ),
)
async def patch_segment(
    segment_id: str,
    data: SegmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SegmentResponse:
    segment = await get_segment_or_404(segment_id, db, current_user)

    try:
        segment = await update_segment(db, segment, data)
    except PipelineValidationError as e:
        raise validation_error(e)

    await db.refresh(segment, attribute_names=["updated_at"])
    return SegmentResponse.model_validate(segment)
