"""
Reelpipe services package.

Pipeline stages and the adapters they use to reach external services.
"""

from .callback_handler import handle_render_callback
from .composition_builder import build_composition
from .frame_scorer import analyze_frames
from .render_orchestrator import start_render
from .segment_editor import update_segment
from .segment_selector import select_segments
from .transcript_aligner import transcribe_project

__all__ = [
    "analyze_frames",
    "build_composition",
    "handle_render_callback",
    "select_segments",
    "start_render",
    "transcribe_project",
    "update_segment",
]
