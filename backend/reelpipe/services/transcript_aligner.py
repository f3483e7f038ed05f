"""
Transcript Aligner service for Reelpipe.

Downloads the project's audio (or source video), sends it to the speech-to-text
service for word-level timestamps, and stores the normalized transcript.
"""

import logging
from typing import Any, Optional, Union

from openai import OpenAIError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models.status import ProjectStatus, transition
from ..models.video_project import VideoProject
from ..schemas.transcript import Transcript, TranscriptChunk, TranscriptWord
from .ai_client import get_openai_client
from .errors import PipelineValidationError, UpstreamServiceError
from .media_fetch import download_media, require_safe_url

logger = logging.getLogger(__name__)

CHUNK_SECONDS = 5.0


def _as_dict(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if hasattr(raw, "model_dump"):
        return raw.model_dump()
    raise ValueError(f"unexpected transcription payload: {type(raw).__name__}")


def normalize_transcription(raw: Any) -> Transcript:
    """
    Convert a verbose_json transcription reply into a Transcript.

    Words with missing or inverted timestamps are dropped. Word text is
    stripped of surrounding whitespace.
    """
    data = _as_dict(raw)

    words: list[TranscriptWord] = []
    for item in data.get("words") or []:
        if not isinstance(item, dict):
            item = _as_dict(item)
        text = str(item.get("word") or "").strip()
        if not text:
            continue
        try:
            words.append(TranscriptWord(word=text, start=item.get("start"), end=item.get("end")))
        except ValidationError:
            logger.debug(f"Dropping malformed transcript word: {item!r}")

    words.sort(key=lambda w: w.start)

    return Transcript(
        text=str(data.get("text") or "").strip(),
        words=words,
        language=data.get("language") or None,
    )


def chunk_transcript(
    transcript: Union[Transcript, dict[str, Any], None],
    chunk_seconds: float = CHUNK_SECONDS,
) -> list[TranscriptChunk]:
    """
    Coalesce words into spans of about chunk_seconds of speech.

    A chunk starts at a word and closes at the first word whose end is at
    least chunk_seconds after the chunk start, or at the last word.

    Example:
        >>> t = Transcript(words=[TranscriptWord(word="hi", start=0, end=0.4)])
        >>> chunk_transcript(t)[0].text
        'hi'
    """
    if transcript is None:
        return []
    if isinstance(transcript, dict):
        transcript = Transcript.model_validate(transcript)

    chunks: list[TranscriptChunk] = []
    words = transcript.words
    current: list[TranscriptWord] = []
    chunk_start = 0.0

    for i, word in enumerate(words):
        if not current:
            chunk_start = word.start
        current.append(word)
        if word.end - chunk_start >= chunk_seconds or i == len(words) - 1:
            chunks.append(
                TranscriptChunk(
                    start=round(chunk_start, 2),
                    end=round(word.end, 2),
                    text=" ".join(w.word for w in current),
                )
            )
            current = []

    return chunks


async def transcribe_project(
    db: AsyncSession,
    project: VideoProject,
    audio_url: Optional[str] = None,
) -> Transcript:
    """
    Transcribe the project's audio and replace its transcript.

    Status moves to transcribing and stays there on success.

    Raises:
        PipelineValidationError: No usable media reference (nothing changed)
        UnsafeURLError: The reference fails the fetch check (nothing changed)
        InvalidStatusTransition: The project cannot enter transcribing
        UpstreamServiceError: Download or transcription failed; the project
            is left failed, uncommitted
    """
    url = audio_url or project.source_video_url
    field = "audio_url" if audio_url else "source_video_url"
    if not url:
        raise PipelineValidationError(
            "No audio_url given and the project has no source_video_url",
            field="audio_url",
        )
    require_safe_url(url, field=field)

    transition(project, ProjectStatus.TRANSCRIBING)
    await db.commit()

    settings = get_settings()
    logger.info(f"Transcribing project {project.id} from {field}")

    try:
        media = await download_media(url, field=field, default_filename="audio.mp4")
        client = get_openai_client(timeout=settings.transcription_timeout_seconds)

        options: dict[str, Any] = {}
        if settings.transcription_language:
            options["language"] = settings.transcription_language

        raw = await client.audio.transcriptions.create(
            model=settings.transcription_model,
            file=(media.filename, media.data),
            response_format="verbose_json",
            timestamp_granularities=["word"],
            **options,
        )
        transcript = normalize_transcription(raw)
    except UpstreamServiceError as e:
        transition(project, ProjectStatus.FAILED, f"Transcription failed: {e.message}")
        raise
    except (OpenAIError, ValueError) as e:
        message = f"Transcription failed: {e}"
        transition(project, ProjectStatus.FAILED, message)
        raise UpstreamServiceError(message, service="transcription") from e

    project.transcript = transcript.model_dump()

    logger.info(
        f"video_transcribed project={project.id} words={len(transcript.words)} "
        f"language={transcript.language}"
    )
    return transcript
