"""
Frame Scorer service for Reelpipe.

Sends sampled frames to a vision-capable model and stores one judgement per
frame on the project. A frame whose analysis fails gets default_judgement()
instead of failing the batch.
"""

import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models.status import ProjectStatus, transition
from ..models.video_project import VideoProject
from ..schemas.frames import FrameInput, FrameJudgement, FrameResult, default_judgement
from .ai_client import get_openai_client, parse_json_content
from .errors import UpstreamServiceError

logger = logging.getLogger(__name__)

VISION_INSTRUCTION = (
    "You are judging a single frame sampled from a video that will be cut into "
    "a vertical short-form reel. Return ONLY a JSON object with these keys:\n"
    '- "score": number 0-10, how well this moment would work featured in a reel\n'
    '- "description": one sentence describing the frame\n'
    '- "tags": 3 to 5 short lowercase tags\n'
    '- "has_face": true if a human face is clearly visible\n'
    '- "has_text": true if readable on-screen text is visible\n'
    '- "energy_level": "low", "medium" or "high"'
)


def frame_image_url(image: str) -> str:
    """Image reference in the form the vision API accepts."""
    if image.startswith("data:") or image.startswith("https://"):
        return image
    return f"data:image/jpeg;base64,{image}"


async def score_frame(client: AsyncOpenAI, frame: FrameInput, model: str) -> Optional[FrameJudgement]:
    """
    Ask the vision model about one frame.

    Returns None when the call fails or the reply does not validate.
    """
    try:
        response = await client.chat.completions.create(
            model=model,
            response_format={"type": "json_object"},
            max_tokens=300,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_INSTRUCTION},
                        {
                            "type": "image_url",
                            "image_url": {"url": frame_image_url(frame.image), "detail": "low"},
                        },
                    ],
                }
            ],
        )
        data = parse_json_content(response.choices[0].message.content)
        return FrameJudgement.model_validate(data)
    except Exception as e:
        logger.warning(f"Frame {frame.index} analysis failed, using default: {e}")
        return None


async def score_frames(
    frames: list[FrameInput],
    client: AsyncOpenAI,
    model: Optional[str] = None,
    delay_ms: Optional[int] = None,
    concurrency: Optional[int] = None,
) -> tuple[list[FrameResult], int]:
    """
    Score frames with bounded concurrency and a pause after each call.

    Returns (results in input order, number of frames that fell back to
    the default judgement).
    """
    settings = get_settings()
    model = model or settings.vision_model
    delay = (settings.frame_analysis_delay_ms if delay_ms is None else delay_ms) / 1000
    semaphore = asyncio.Semaphore(concurrency or settings.frame_analysis_concurrency)

    async def run(frame: FrameInput) -> tuple[FrameResult, bool]:
        async with semaphore:
            judgement = await score_frame(client, frame, model)
            if delay > 0:
                await asyncio.sleep(delay)

        failed = judgement is None
        if failed:
            judgement = default_judgement()
        result = FrameResult(
            frame_index=frame.index,
            timestamp_ms=frame.timestamp_ms,
            **judgement.model_dump(),
        )
        return result, failed

    outcomes = await asyncio.gather(*(run(frame) for frame in frames))
    results = [result for result, _ in outcomes]
    failed_count = sum(1 for _, failed in outcomes if failed)
    return results, failed_count


async def analyze_frames(
    db: AsyncSession,
    project: VideoProject,
    frames: list[FrameInput],
) -> tuple[list[FrameResult], int]:
    """
    Analyze a batch of frames and append the results to the project.

    The project is committed in analyzing_frames before the model calls and
    stays there afterwards; further batches may follow.

    Raises:
        InvalidStatusTransition: If the project cannot enter analyzing_frames
        UpstreamServiceError: If the vision service cannot be used at all
            (the project is left failed, uncommitted)
    """
    transition(project, ProjectStatus.ANALYZING_FRAMES)
    await db.commit()

    logger.info(f"Analyzing {len(frames)} frames for project {project.id}")

    try:
        client = get_openai_client()
    except UpstreamServiceError as e:
        transition(project, ProjectStatus.FAILED, f"Frame analysis failed: {e.message}")
        raise

    results, failed_count = await score_frames(frames, client)

    # Reassign so the JSON column is flagged dirty
    project.frame_analysis = list(project.frame_analysis or []) + [
        r.model_dump() for r in results
    ]

    if failed_count:
        logger.warning(
            f"Project {project.id}: {failed_count}/{len(frames)} frames used the default judgement"
        )
    logger.info(
        f"Project {project.id}: stored {len(results)} frame results "
        f"({len(project.frame_analysis)} total)"
    )
    return results, failed_count
