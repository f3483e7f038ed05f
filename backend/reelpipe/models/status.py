"""
Status enumerations and the VideoProject state machine.

A project moves through a fixed, linear set of pipeline stages. The legal
edges are listed in ALLOWED_TRANSITIONS; transition() is the only code path
that changes VideoProject.status.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .video_project import VideoProject


class ProjectStatus(str, Enum):
    """Lifecycle states of a VideoProject."""

    UPLOADED = "uploaded"
    ANALYZING_FRAMES = "analyzing_frames"
    TRANSCRIBING = "transcribing"
    SELECTING_SEGMENTS = "selecting_segments"
    SEGMENTS_READY = "segments_ready"
    RENDERING = "rendering"
    RENDER_COMPLETE = "render_complete"
    FAILED = "failed"


class RenderStatus(str, Enum):
    """Mirror of the external render job status."""

    QUEUED = "queued"
    FETCHING = "fetching"
    RENDERING = "rendering"
    SAVING = "saving"
    # Set locally once a done callback has been claimed for processing
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


PROJECT_TERMINAL_STATES = frozenset({ProjectStatus.RENDER_COMPLETE, ProjectStatus.FAILED})
RENDER_TERMINAL_STATES = frozenset({RenderStatus.DONE.value, RenderStatus.FAILED.value})

# States a caller may (re-)enter by invoking a stage after a failure
_STAGE_ENTRY_STATES = frozenset({
    ProjectStatus.ANALYZING_FRAMES,
    ProjectStatus.TRANSCRIBING,
    ProjectStatus.SELECTING_SEGMENTS,
    ProjectStatus.RENDERING,
})

ALLOWED_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.UPLOADED: frozenset({
        ProjectStatus.ANALYZING_FRAMES,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.ANALYZING_FRAMES: frozenset({
        ProjectStatus.ANALYZING_FRAMES,  # further frame batches
        ProjectStatus.TRANSCRIBING,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.TRANSCRIBING: frozenset({
        ProjectStatus.TRANSCRIBING,
        ProjectStatus.SELECTING_SEGMENTS,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.SELECTING_SEGMENTS: frozenset({
        ProjectStatus.SEGMENTS_READY,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.SEGMENTS_READY: frozenset({
        ProjectStatus.SELECTING_SEGMENTS,
        ProjectStatus.RENDERING,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.RENDERING: frozenset({
        ProjectStatus.RENDER_COMPLETE,
        ProjectStatus.FAILED,
    }),
    ProjectStatus.RENDER_COMPLETE: frozenset({
        ProjectStatus.RENDERING,
        ProjectStatus.SELECTING_SEGMENTS,
    }),
    ProjectStatus.FAILED: _STAGE_ENTRY_STATES,
}

DEFAULT_FAILURE_MESSAGE = "Processing failed"


class InvalidStatusTransition(Exception):
    """Raised when code attempts an edge that is not in ALLOWED_TRANSITIONS."""

    def __init__(self, current: ProjectStatus, target: ProjectStatus):
        self.current = current
        self.target = target
        super().__init__(
            f"Illegal project status transition: {current.value} -> {target.value}"
        )


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    """Return True when current -> target is a legal edge."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(
    project: "VideoProject",
    target: ProjectStatus,
    error: Optional[str] = None,
) -> None:
    """
    Move project to target, enforcing the transition table.

    Entering FAILED always records an error message; entering any other
    state clears the previous one.

    Raises:
        InvalidStatusTransition: If the edge is not allowed
    """
    current = ProjectStatus(project.status)
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)

    project.status = target.value
    if target is ProjectStatus.FAILED:
        project.error_message = (error or DEFAULT_FAILURE_MESSAGE)[:2000]
    else:
        project.error_message = None
