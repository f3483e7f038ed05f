"""
VideoProject model for Reelpipe.

One row per uploaded source video. Carries the derived analysis artifacts,
the editing parameters chosen for the reel, and the pipeline status.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Optional
import uuid

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelpipe.core.database import Base

from .status import ProjectStatus

if TYPE_CHECKING:
    from .user import User
    from .video_render import VideoRender
    from .video_segment import VideoSegment


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class VideoProject(Base):
    """
    VideoProject model representing one reel being cut from a source video.

    frame_analysis only ever grows (each analysis batch appends) and
    transcript is replaced wholesale; neither is merged field by field.
    """

    __tablename__ = "video_projects"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        doc="UUID primary key"
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Foreign key to owning user"
    )
    post_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        doc="Linked content post in the surrounding application"
    )

    # Source video
    source_video_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        doc="Storage path of the uploaded source video"
    )
    source_video_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Fetchable URL of the source video"
    )
    source_duration_ms: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Source duration in milliseconds"
    )
    source_width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    source_height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    source_file_size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Derived artifacts
    frame_analysis: Mapped[List[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Ordered per-frame judgements (append-only)"
    )
    transcript: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
        doc="Full text, word timestamps and detected language"
    )

    # Editing parameters
    target_duration_sec: Mapped[int] = mapped_column(
        Integer,
        default=30,
        nullable=False,
        doc="Target reel duration in seconds"
    )
    subtitle_style: Mapped[str] = mapped_column(
        String(20),
        default="bold_center",
        nullable=False,
        doc="Subtitle style: bold_center, bottom_bar, karaoke, minimal"
    )
    transition_style: Mapped[str] = mapped_column(
        String(20),
        default="smooth",
        nullable=False,
        doc="Transition style: smooth, fade, zoom, cut"
    )
    background_music_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Render linkage and output
    render_job_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="External id of the most recent render job"
    )
    rendered_video_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    rendered_video_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(30),
        default=ProjectStatus.UPLOADED.value,
        nullable=False,
        index=True,
        doc="Pipeline status, see models.status.ProjectStatus"
    )
    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="What went wrong; set whenever status is failed"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
        doc="Project creation timestamp"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True,
        doc="Last update timestamp"
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="video_projects"
    )
    segments: Mapped[List["VideoSegment"]] = relationship(
        "VideoSegment",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="VideoSegment.segment_index"
    )
    renders: Mapped[List["VideoRender"]] = relationship(
        "VideoRender",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="VideoRender.created_at.desc()"
    )

    def __repr__(self) -> str:
        return f"<VideoProject(id={self.id!r}, status={self.status!r})>"
