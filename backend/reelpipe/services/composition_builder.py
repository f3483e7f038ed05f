"""
Composition Builder for Reelpipe.

Pure conversion of an ordered segment list into a render-service edit:
- one video clip per segment, back to back on the output timeline
- one HTML subtitle clip per segment with subtitle text, on the same times
- fixed 9:16 1080p 30fps mp4 output and a completion callback

No I/O happens here.
"""

import html
from typing import TYPE_CHECKING, Any, Iterable, Optional

if TYPE_CHECKING:
    from ..models.video_segment import VideoSegment

OUTPUT_SETTINGS: dict[str, Any] = {
    "format": "mp4",
    "resolution": "1080",
    "aspectRatio": "9:16",
    "fps": 30,
    "quality": "high",
}

SUBTITLE_BOX_WIDTH = 1080
SUBTITLE_BOX_HEIGHT = 400
SUBTITLE_OFFSET_Y = 0.08

# None means a hard cut
TRANSITIONS: dict[str, Optional[dict[str, str]]] = {
    "smooth": {"in": "fade", "out": "fade"},
    "fade": {"in": "fade"},
    "zoom": {"in": "zoom"},
    "cut": None,
}

SUBTITLE_STYLES: dict[str, str] = {
    "bold_center": (
        "font-family:'Montserrat',sans-serif;font-size:48px;font-weight:800;"
        "color:white;text-align:center;text-shadow:2px 2px 8px rgba(0,0,0,0.8);"
        "padding:10px 20px;line-height:1.2;max-width:900px;"
    ),
    "bottom_bar": (
        "background:rgba(0,0,0,0.7);padding:12px 24px;border-radius:8px;"
        "font-family:'Inter',sans-serif;font-size:36px;font-weight:600;"
        "color:white;text-align:center;max-width:900px;"
    ),
    "karaoke": (
        "font-family:'Montserrat',sans-serif;font-size:44px;font-weight:800;"
        "color:#FFD700;text-align:center;text-shadow:2px 2px 6px rgba(0,0,0,0.9);"
        "padding:10px 20px;line-height:1.2;max-width:900px;"
    ),
    "minimal": (
        "font-family:'Inter',sans-serif;font-size:28px;font-weight:500;"
        "color:rgba(255,255,255,0.9);text-align:left;"
        "text-shadow:1px 1px 4px rgba(0,0,0,0.6);padding:8px 16px;max-width:900px;"
    ),
}


def included_segments(segments: Iterable[Any]) -> list[Any]:
    """Included segments in output order."""
    return sorted(
        (s for s in segments if getattr(s, "is_included", True)),
        key=lambda s: s.segment_index,
    )


def subtitle_html(text: str, style: str) -> str:
    """HTML document for one subtitle overlay; text is escaped."""
    css = SUBTITLE_STYLES[style]
    return (
        '<html><body style="margin:0;display:flex;align-items:flex-end;'
        'justify-content:center;height:100%;">'
        f'<div style="{css}">{html.escape(text, quote=True)}</div>'
        "</body></html>"
    )


def build_composition(
    segments: list["VideoSegment"],
    source_video_url: str,
    subtitle_style: str,
    transition_style: str,
    callback_url: str,
    background_music_url: Optional[str] = None,
) -> dict[str, Any]:
    """
    Build the render edit for segments, taken in the given order.

    Clip starts are the running sum of previous segment durations, so the
    output timeline has no gaps or overlaps. Times are seconds, computed
    from integer milliseconds.

    Raises:
        ValueError: If segments is empty or a style is unknown
    """
    if not segments:
        raise ValueError("at least one segment is required")
    if subtitle_style not in SUBTITLE_STYLES:
        raise ValueError(f"unknown subtitle style: {subtitle_style}")
    if transition_style not in TRANSITIONS:
        raise ValueError(f"unknown transition style: {transition_style}")

    transition = TRANSITIONS[transition_style]
    video_clips: list[dict[str, Any]] = []
    subtitle_clips: list[dict[str, Any]] = []
    cursor_ms = 0

    for seg in segments:
        duration_ms = seg.end_ms - seg.start_ms
        if duration_ms <= 0:
            raise ValueError(f"segment {seg.segment_index} has no duration")
        start = cursor_ms / 1000
        length = duration_ms / 1000

        clip: dict[str, Any] = {
            "asset": {
                "type": "video",
                "src": source_video_url,
                "trim": seg.start_ms / 1000,
                "volume": 1,
            },
            "start": start,
            "length": length,
            "fit": "cover",
        }
        if transition is not None:
            clip["transition"] = dict(transition)
        video_clips.append(clip)

        text = (seg.subtitle_text or "").strip()
        if text:
            subtitle_clips.append({
                "asset": {
                    "type": "html",
                    "html": subtitle_html(text, subtitle_style),
                    "width": SUBTITLE_BOX_WIDTH,
                    "height": SUBTITLE_BOX_HEIGHT,
                },
                "start": start,
                "length": length,
                "position": "bottom",
                "offset": {"y": SUBTITLE_OFFSET_Y},
            })

        cursor_ms += duration_ms

    # First track is drawn on top; the video track is always last
    tracks = [{"clips": subtitle_clips}] if subtitle_clips else []
    tracks.append({"clips": video_clips})

    timeline: dict[str, Any] = {
        "background": "#000000",
        "tracks": tracks,
    }
    if background_music_url:
        timeline["soundtrack"] = {"src": background_music_url, "effect": "fadeOut"}

    return {
        "timeline": timeline,
        "output": dict(OUTPUT_SETTINGS),
        "callback": callback_url,
    }


def composition_duration_ms(segments: Iterable["VideoSegment"]) -> int:
    """Output length of the segments when placed back to back."""
    return sum(s.end_ms - s.start_ms for s in segments)
