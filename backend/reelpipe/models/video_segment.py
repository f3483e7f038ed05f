"""
VideoSegment model for Reelpipe.

One row per selected sub-clip of a project's source video.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelpipe.core.database import Base

if TYPE_CHECKING:
    from .video_project import VideoProject


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class VideoSegment(Base):
    """
    A time range [start_ms, end_ms) of the source video placed at
    segment_index in the output reel.

    segment_index is the position in the output timeline, not source order.
    Source ranges of different segments may overlap.
    """

    __tablename__ = "video_segments"
    __table_args__ = (
        CheckConstraint("end_ms > start_ms", name="ck_video_segments_time_range"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        doc="UUID primary key"
    )
    project_id: Mapped[str] = mapped_column(
        ForeignKey("video_projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Foreign key to parent project"
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Foreign key to owning user"
    )

    segment_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="0-based position in the output timeline"
    )
    start_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    end_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    # Selection output
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    narrative_role: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Advisory story role: hook, context, buildup, climax, cta"
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transcript_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    subtitle_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Flags
    is_included: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Soft exclusion from the rendered reel"
    )
    is_user_modified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Set once a person edits a machine-selected segment"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True,
    )

    # Relationships
    project: Mapped["VideoProject"] = relationship(
        "VideoProject",
        back_populates="segments"
    )

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def __repr__(self) -> str:
        return (
            f"<VideoSegment(id={self.id!r}, index={self.segment_index}, "
            f"range={self.start_ms}-{self.end_ms}, included={self.is_included})>"
        )
