"""
VideoRender model for Reelpipe.

Tracks one submission to the external render service and the artifact it
produced.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional
import uuid

from sqlalchemy import DateTime, ForeignKey, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelpipe.core.database import Base

from .status import RENDER_TERMINAL_STATES, RenderStatus

if TYPE_CHECKING:
    from .video_project import VideoProject


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class VideoRender(Base):
    """
    VideoRender model representing one external render job.

    Captures the exact composition submitted, for auditing. Once status is
    done or failed the row is never changed again.
    """

    __tablename__ = "video_renders"

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
    external_job_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        doc="Render service job id"
    )

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(20),
        default=RenderStatus.QUEUED.value,
        nullable=False,
        index=True,
        doc="Mirror of the render service status"
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Input snapshot
    composition: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        doc="Composition submitted to the render service"
    )

    # Output
    output_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Ephemeral artifact URL reported by the render service"
    )
    stored_video_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    stored_video_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
        doc="Submission timestamp"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        doc="When the job reached done or failed"
    )

    # Relationships
    project: Mapped["VideoProject"] = relationship(
        "VideoProject",
        back_populates="renders"
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in RENDER_TERMINAL_STATES

    def __repr__(self) -> str:
        return f"<VideoRender(id={self.id!r}, job={self.external_job_id!r}, status={self.status!r})>"
