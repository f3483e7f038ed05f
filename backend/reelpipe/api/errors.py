"""
HTTP error helpers shared by the Reelpipe routers.

All errors use the detail shape {"error": ..., "message": ...}.
"""

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from reelpipe.models.status import InvalidStatusTransition
from reelpipe.services.errors import (
    PipelineError,
    PipelineValidationError,
    UpstreamServiceError,
)


def not_found(resource_type: str, resource_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "not_found",
            "message": f"{resource_type.capitalize()} not found",
            "resource_type": resource_type,
            "resource_id": resource_id,
        },
    )


def conflict(exc: InvalidStatusTransition) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "error": "conflict",
            "message": str(exc),
            "current_status": exc.current.value,
            "requested_status": exc.target.value,
        },
    )


def validation_error(exc: PipelineValidationError) -> HTTPException:
    detail = {"error": "validation_error", "message": exc.message}
    if exc.field:
        detail["field"] = exc.field
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def upstream_error(exc: UpstreamServiceError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={
            "error": "upstream_error",
            "message": exc.message,
            "service": exc.service,
        },
    )


async def pipeline_http_error(db: AsyncSession, exc: Exception) -> HTTPException:
    """
    Map a stage exception to an HTTPException.

    Upstream failures have already moved the project to failed; that state
    is committed here so the request's rollback does not undo it.
    """
    if isinstance(exc, InvalidStatusTransition):
        return conflict(exc)
    if isinstance(exc, PipelineValidationError):
        return validation_error(exc)
    if isinstance(exc, UpstreamServiceError):
        await db.commit()
        return upstream_error(exc)
    if isinstance(exc, PipelineError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "pipeline_error", "message": exc.message},
        )
    raise exc
