"""
Common dependencies for Reelpipe API endpoints.

Provides reusable FastAPI dependencies for database sessions,
authentication, and ownership-checked lookups.
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from reelpipe.api.errors import not_found
from reelpipe.core.database import get_async_session
from reelpipe.core.security import get_current_user
from reelpipe.models.user import User
from reelpipe.models.video_project import VideoProject
from reelpipe.models.video_segment import VideoSegment


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Provides an async database session for route handlers.
    The session is automatically committed on success or
    rolled back on exception.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in get_async_session():
        yield session


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Get the current authenticated user.

    Raises:
        HTTPException 401: If token is invalid, expired, or user not found
    """
    return current_user


async def get_project_or_404(
    project_id: str,
    db: AsyncSession,
    user: User,
    load_segments: bool = False,
) -> VideoProject:
    """
    Get a project by ID, verifying ownership.

    Raises:
        HTTPException 404: If project not found or not owned by user
    """
    query = select(VideoProject).where(VideoProject.id == project_id)
    if load_segments:
        query = query.options(selectinload(VideoProject.segments))

    result = await db.execute(query)
    project = result.scalar_one_or_none()

    if project is None or project.user_id != user.id:
        raise not_found("project", project_id)

    return project


async def get_segment_or_404(
    segment_id: str,
    db: AsyncSession,
    user: User,
) -> VideoSegment:
    """
    Get a segment by ID, verifying ownership.

    Raises:
        HTTPException 404: If segment not found or not owned by user
    """
    result = await db.execute(select(VideoSegment).where(VideoSegment.id == segment_id))
    segment = result.scalar_one_or_none()

    if segment is None or segment.user_id != user.id:
        raise not_found("segment", segment_id)

    return segment


__all__ = [
    "get_db",
    "get_current_active_user",
    "get_current_user",
    "get_project_or_404",
    "get_segment_or_404",
]
