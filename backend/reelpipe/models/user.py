"""
User model for Reelpipe.

Users are provisioned by the surrounding application; the pipeline only needs
them as owners of projects, segments and renders.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List
import uuid

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reelpipe.core.database import Base

if TYPE_CHECKING:
    from .video_project import VideoProject


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


class User(Base):
    """User model representing project owners."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        doc="UUID primary key"
    )
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        doc="Unique username"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        doc="Account creation timestamp"
    )

    # Relationships
    video_projects: Mapped[List["VideoProject"]] = relationship(
        "VideoProject",
        back_populates="owner",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, username={self.username!r})>"
