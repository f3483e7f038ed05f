"""
SQLAlchemy models for Reelpipe.

This module exports all database models for convenient importing:

    from reelpipe.models import User, VideoProject, VideoSegment, VideoRender

All models use UUID strings as primary keys for SQLite compatibility.
"""

from .status import (
    ALLOWED_TRANSITIONS,
    InvalidStatusTransition,
    ProjectStatus,
    RenderStatus,
    transition,
)
from .user import User
from .video_project import VideoProject
from .video_render import VideoRender
from .video_segment import VideoSegment

__all__ = [
    "ALLOWED_TRANSITIONS",
    "InvalidStatusTransition",
    "ProjectStatus",
    "RenderStatus",
    "transition",
    "User",
    "VideoProject",
    "VideoRender",
    "VideoSegment",
]
