"""
Manual segment edits for Reelpipe.

Keeps a project's segment_index values a single contiguous sequence after
a person moves, retimes, includes or excludes a segment: included segments
take 0..N-1 in output order and excluded segments follow them.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.video_segment import VideoSegment
from ..schemas.segment import SegmentUpdate
from .errors import PipelineValidationError

logger = logging.getLogger(__name__)


def renumber_segments(
    segments: list[VideoSegment],
    moved: Optional[VideoSegment] = None,
    requested_index: Optional[int] = None,
) -> list[VideoSegment]:
    """
    Reassign segment_index across segments in place.

    moved is the segment just edited. With requested_index it is inserted at
    that position (clamped to its group); without, it keeps its old slot and
    wins ties against segments that share its old index.

    Returns segments in their new order.
    """
    def sort_key(seg: VideoSegment) -> tuple:
        return (seg.segment_index, 0 if seg is moved else 1, seg.id or "")

    others = [s for s in segments if s is not moved]
    included = sorted((s for s in others if s.is_included), key=sort_key)
    excluded = sorted((s for s in others if not s.is_included), key=sort_key)

    if moved is not None:
        group = included if moved.is_included else excluded
        if requested_index is None:
            group.append(moved)
            group.sort(key=sort_key)
        else:
            offset = 0 if moved.is_included else len(included)
            position = min(max(requested_index - offset, 0), len(group))
            group.insert(position, moved)

    ordered = included + excluded
    for index, seg in enumerate(ordered):
        seg.segment_index = index
    return ordered


async def update_segment(
    db: AsyncSession,
    segment: VideoSegment,
    changes: SegmentUpdate,
) -> VideoSegment:
    """
    Apply a person's edit to one segment and renumber its project.

    Raises:
        PipelineValidationError: If the merged timing is not a valid range
    """
    data = changes.model_dump(exclude_unset=True)
    if not data:
        return segment

    start_ms = data.get("start_ms", segment.start_ms)
    end_ms = data.get("end_ms", segment.end_ms)
    if start_ms is None or end_ms is None or end_ms <= start_ms:
        raise PipelineValidationError(
            f"end_ms ({end_ms}) must be greater than start_ms ({start_ms})",
            field="end_ms",
        )

    segment.start_ms = start_ms
    segment.end_ms = end_ms
    if "subtitle_text" in data:
        segment.subtitle_text = data["subtitle_text"]
    if data.get("is_included") is not None:
        segment.is_included = data["is_included"]
    segment.is_user_modified = True

    if "segment_index" in data or "is_included" in data:
        result = await db.execute(
            select(VideoSegment).where(VideoSegment.project_id == segment.project_id)
        )
        siblings = list(result.scalars().all())
        renumber_segments(siblings, moved=segment, requested_index=data.get("segment_index"))

    await db.flush()
    logger.info(
        f"Segment {segment.id} of project {segment.project_id} edited: "
        f"{sorted(data.keys())}"
    )
    return segment
