"""
Pydantic schemas for transcription.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class TranscriptWord(BaseModel):
    """One spoken word with times in seconds."""

    word: str
    start: float = Field(..., ge=0)
    end: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "TranscriptWord":
        if self.end < self.start:
            raise ValueError("word end must not precede start")
        return self


class Transcript(BaseModel):
    """Normalized transcript as stored in VideoProject.transcript."""

    text: str = ""
    words: List[TranscriptWord] = []
    language: Optional[str] = None


class TranscriptChunk(BaseModel):
    """Coalesced span of roughly five seconds of speech."""

    start: float
    end: float
    text: str


class TranscribeRequest(BaseModel):
    """Optional direct audio reference; defaults to the project's source video."""

    audio_url: Optional[str] = Field(default=None, max_length=2048)


class TranscribeResponse(BaseModel):
    """Result of a transcription call."""

    project_id: str
    status: str
    text: str
    language: Optional[str] = None
    word_count: int
