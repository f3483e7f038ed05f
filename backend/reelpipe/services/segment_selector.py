"""
Segment Selector service for Reelpipe.

Asks the reasoning model for an ordered, story-shaped set of segments, checks
the proposal, and swaps it in as the project's new segment set.

Priorities given to the model, in order:
1. Relevance to the story told by the transcript
2. Natural speech pauses as cut points
3. Visual frame score as tie-breaker only
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models.status import ProjectStatus, transition
from ..models.video_project import VideoProject
from ..models.video_segment import VideoSegment
from ..schemas.selection import ProposedSegment, SelectionProposal
from .ai_client import extract_tool_arguments, get_openai_client
from .composition_builder import composition_duration_ms
from .errors import PipelineValidationError, SelectionRejectedError, UpstreamServiceError
from .transcript_aligner import chunk_transcript

logger = logging.getLogger(__name__)

MAX_SUBTITLE_WORDS = 12
SELECTION_TOOL_NAME = "select_reel_segments"

SELECTION_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": SELECTION_TOOL_NAME,
        "description": "Return the chosen reel segments ordered by their position in the finished reel",
        "parameters": {
            "type": "object",
            "properties": {
                "story_summary": {
                    "type": "string",
                    "description": "The story the reel tells, in 1-2 sentences",
                },
                "segments": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "segment_index": {
                                "type": "integer",
                                "description": "Position in the finished reel (0 = first clip)",
                            },
                            "start_ms": {
                                "type": "integer",
                                "description": "Start time in the source video, milliseconds",
                            },
                            "end_ms": {
                                "type": "integer",
                                "description": "End time in the source video, milliseconds",
                            },
                            "score": {
                                "type": "number",
                                "description": "Visual quality score 0-10",
                            },
                            "narrative_role": {
                                "type": "string",
                                "enum": ["hook", "context", "buildup", "climax", "cta"],
                                "description": "Role of this segment in the story",
                            },
                            "reason": {
                                "type": "string",
                                "description": "Why this segment was chosen and what it does for the story",
                            },
                            "transcript_text": {
                                "type": "string",
                                "description": "What is said during this segment",
                            },
                            "subtitle_text": {
                                "type": "string",
                                "description": "Condensed subtitle, at most 10 words",
                            },
                        },
                        "required": [
                            "segment_index",
                            "start_ms",
                            "end_ms",
                            "score",
                            "narrative_role",
                            "reason",
                            "subtitle_text",
                        ],
                    },
                },
            },
            "required": ["story_summary", "segments"],
        },
    },
}


def summarize_frames(frame_analysis: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Compact per-frame view for the selection prompt, in timestamp order."""
    summary = []
    for frame in sorted(frame_analysis, key=lambda f: f.get("timestamp_ms", 0)):
        summary.append({
            "t_sec": round(frame.get("timestamp_ms", 0) / 1000, 1),
            "score": frame.get("score", 0),
            "description": frame.get("description", ""),
            "tags": frame.get("tags", []),
            "energy": frame.get("energy_level", "low"),
            "face": bool(frame.get("has_face")),
        })
    return summary


def build_selection_messages(
    frame_analysis: list[dict[str, Any]],
    transcript: Optional[dict[str, Any]],
    target_duration_sec: int,
    tolerance_sec: int,
    source_duration_ms: Optional[int],
) -> list[dict[str, str]]:
    """Chat messages for the selection call."""
    system_prompt = (
        f"You are a professional reel editor and storyteller. Cut a "
        f"{target_duration_sec}-second vertical reel from a longer video that tells ONE "
        "coherent story, not a montage of best moments.\n\n"
        "Story shape, in output order: hook (attention-grabbing opener), context "
        "(what and why), buildup (main development), climax (key payoff), cta "
        "(closing or summary). Not every role is required, but the order must read "
        "as a story. Output order may differ from source order when it serves the story.\n\n"
        "Rules:\n"
        "- The transcript is the primary signal; visual score only breaks ties\n"
        "- Start and end every segment at a natural speech pause, never mid-sentence\n"
        "- Each segment 3-8 seconds\n"
        f"- Total duration about {target_duration_sec}s (plus or minus {tolerance_sec}s)\n"
        "- segment_index is 0-based and contiguous in output order\n"
        "- subtitle_text condenses what is said in at most 10 words\n\n"
        f"Call {SELECTION_TOOL_NAME}."
    )

    chunks = chunk_transcript(transcript) if transcript else []
    transcript_block: dict[str, Any] = {
        "text": (transcript or {}).get("text", ""),
        "chunks": [c.model_dump() for c in chunks],
    }
    source_sec = round(source_duration_ms / 1000, 1) if source_duration_ms else "unknown"

    user_prompt = (
        f"Source duration (s): {source_sec}\n"
        f"Target reel duration (s): {target_duration_sec}\n\n"
        f"TRANSCRIPT (primary):\n{json.dumps(transcript_block, ensure_ascii=False)}\n\n"
        f"FRAME ANALYSIS (secondary):\n"
        f"{json.dumps(summarize_frames(frame_analysis), ensure_ascii=False)}"
    )

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def validate_proposal(
    data: Any,
    source_duration_ms: Optional[int] = None,
) -> SelectionProposal:
    """
    Check a selection reply and return it ordered by segment_index.

    - at least one segment, each with end_ms > start_ms
    - segment_index values are exactly 0..N-1
    - subtitle_text has at most MAX_SUBTITLE_WORDS words
    - end_ms past the source duration is clamped to it

    Raises:
        SelectionRejectedError: If the reply is unusable
    """
    if isinstance(data, list):
        data = {"segments": data}
    if not isinstance(data, dict) or not data.get("segments"):
        raise SelectionRejectedError("Selection returned no segments")

    try:
        proposal = SelectionProposal.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(p) for p in first.get("loc", ()))
        raise SelectionRejectedError(
            f"Selection returned malformed segments: {location}: {first.get('msg')}"
        ) from e

    segments = sorted(proposal.segments, key=lambda s: s.segment_index)
    indices = [s.segment_index for s in segments]
    if indices != list(range(len(segments))):
        raise SelectionRejectedError(
            f"segment_index values must be contiguous from 0, got {indices}"
        )

    checked: list[ProposedSegment] = []
    for seg in segments:
        words = seg.subtitle_text.split()
        if len(words) > MAX_SUBTITLE_WORDS:
            raise SelectionRejectedError(
                f"segment {seg.segment_index}: subtitle has {len(words)} words "
                f"(max {MAX_SUBTITLE_WORDS})"
            )

        end_ms = seg.end_ms
        if source_duration_ms and end_ms > source_duration_ms:
            logger.info(
                f"Clamping segment {seg.segment_index} end {end_ms}ms to source "
                f"duration {source_duration_ms}ms"
            )
            end_ms = source_duration_ms
            if end_ms <= seg.start_ms:
                raise SelectionRejectedError(
                    f"segment {seg.segment_index} starts at or after the end of the source video"
                )
        checked.append(seg.model_copy(update={"end_ms": end_ms}))

    return SelectionProposal(segments=checked, story_summary=proposal.story_summary)


async def request_selection(
    messages: list[dict[str, str]],
    model: Optional[str] = None,
) -> dict[str, Any]:
    """
    Call the selection model and return its tool arguments.

    Raises:
        UpstreamServiceError: If the call fails or no tool call comes back
    """
    settings = get_settings()
    client = get_openai_client()
    model = model or settings.selection_model

    try:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            tools=[SELECTION_TOOL],
            tool_choice={"type": "function", "function": {"name": SELECTION_TOOL_NAME}},
            max_completion_tokens=4000,
        )
        return extract_tool_arguments(response, SELECTION_TOOL_NAME)
    except UpstreamServiceError:
        raise
    except Exception as e:
        raise UpstreamServiceError(f"Selection call failed: {e}", service="selection") from e


async def replace_segments(
    db: AsyncSession,
    project: VideoProject,
    proposal: SelectionProposal,
) -> list[VideoSegment]:
    """
    Swap the project's segment set for the proposal.

    Old rows are deleted and new rows inserted in the caller's transaction,
    so readers see either the previous set or the new one.
    """
    await db.execute(delete(VideoSegment).where(VideoSegment.project_id == project.id))

    new_segments = [
        VideoSegment(
            project_id=project.id,
            user_id=project.user_id,
            segment_index=seg.segment_index,
            start_ms=seg.start_ms,
            end_ms=seg.end_ms,
            score=seg.score,
            narrative_role=seg.narrative_role,
            reason=seg.reason,
            transcript_text=seg.transcript_text,
            subtitle_text=seg.subtitle_text,
            is_included=True,
            is_user_modified=False,
        )
        for seg in proposal.segments
    ]
    db.add_all(new_segments)
    await db.flush()
    await db.refresh(project, attribute_names=["segments"])

    return new_segments


async def select_segments(
    db: AsyncSession,
    project: VideoProject,
    target_duration_sec: Optional[int] = None,
) -> tuple[list[VideoSegment], SelectionProposal]:
    """
    Run segment selection for a project and persist the result.

    Raises:
        PipelineValidationError: The project has no frame analysis (nothing changed)
        InvalidStatusTransition: The project cannot enter selecting_segments
        UpstreamServiceError: The model call failed or its reply was rejected;
            the project is left failed, uncommitted
    """
    if not project.frame_analysis:
        raise PipelineValidationError(
            "Segment selection requires frame analysis", field="frame_analysis"
        )

    settings = get_settings()
    if target_duration_sec is not None:
        project.target_duration_sec = target_duration_sec
    target = project.target_duration_sec or settings.default_target_duration_sec

    transition(project, ProjectStatus.SELECTING_SEGMENTS)
    await db.commit()

    logger.info(
        f"Selecting segments for project {project.id} "
        f"({len(project.frame_analysis)} frames, target {target}s)"
    )

    messages = build_selection_messages(
        project.frame_analysis,
        project.transcript,
        target,
        settings.duration_tolerance_sec,
        project.source_duration_ms,
    )

    try:
        data = await request_selection(messages)
        proposal = validate_proposal(data, project.source_duration_ms)
    except UpstreamServiceError as e:
        transition(project, ProjectStatus.FAILED, e.message)
        raise

    segments = await replace_segments(db, project, proposal)
    transition(project, ProjectStatus.SEGMENTS_READY)

    total_ms = composition_duration_ms(segments)
    if abs(total_ms - target * 1000) > settings.duration_tolerance_sec * 1000:
        logger.warning(
            f"Project {project.id}: selected {total_ms}ms against target {target}s "
            f"(tolerance {settings.duration_tolerance_sec}s)"
        )
    logger.info(f"Project {project.id}: stored {len(segments)} segments ({total_ms}ms)")

    return segments, proposal
