"""
Unit tests for segment selection.

Tests:
- Proposal validation (contiguous indices, ranges, subtitle length, clamping)
- Prompt construction
- Model call handling
"""

import json
from unittest.mock import patch

import pytest

from reelpipe.services.errors import SelectionRejectedError, UpstreamServiceError
from reelpipe.services.segment_selector import (
    MAX_SUBTITLE_WORDS,
    SELECTION_TOOL_NAME,
    build_selection_messages,
    request_selection,
    summarize_frames,
    validate_proposal,
)
from tests.conftest import (
    make_chat_response,
    make_openai_client,
    sample_frame_analysis,
    sample_transcription,
)


def proposed(index: int, start_ms: int, end_ms: int, subtitle: str = "A short line", **extra) -> dict:
    data = {
        "segment_index": index,
        "start_ms": start_ms,
        "end_ms": end_ms,
        "score": 6,
        "narrative_role": "context",
        "reason": "moves the story",
        "subtitle_text": subtitle,
    }
    data.update(extra)
    return data


class TestValidateProposal:
    """Tests for validate_proposal."""

    def test_orders_by_segment_index(self):
        data = {
            "story_summary": "A day at the beach.",
            "segments": [
                proposed(2, 30000, 36000),
                proposed(0, 10000, 15000, narrative_role="hook"),
                proposed(1, 2000, 7000),
            ],
        }

        proposal = validate_proposal(data, source_duration_ms=60000)

        assert [s.segment_index for s in proposal.segments] == [0, 1, 2]
        assert proposal.segments[0].narrative_role == "hook"
        assert proposal.story_summary == "A day at the beach."

    def test_bare_list_accepted(self):
        proposal = validate_proposal([proposed(0, 0, 4000)])

        assert len(proposal.segments) == 1

    @pytest.mark.parametrize("data", [None, {}, {"segments": []}, [], "segments"])
    def test_empty_rejected(self, data):
        with pytest.raises(SelectionRejectedError):
            validate_proposal(data)

    def test_gap_in_indices_rejected(self):
        with pytest.raises(SelectionRejectedError, match="contiguous"):
            validate_proposal({"segments": [proposed(0, 0, 4000), proposed(2, 5000, 9000)]})

    def test_duplicate_indices_rejected(self):
        with pytest.raises(SelectionRejectedError):
            validate_proposal({"segments": [proposed(0, 0, 4000), proposed(0, 5000, 9000)]})

    def test_not_starting_at_zero_rejected(self):
        with pytest.raises(SelectionRejectedError):
            validate_proposal({"segments": [proposed(1, 0, 4000)]})

    def test_inverted_range_rejected(self):
        with pytest.raises(SelectionRejectedError, match="malformed"):
            validate_proposal({"segments": [proposed(0, 5000, 4000)]})

    def test_missing_subtitle_rejected(self):
        segment = proposed(0, 0, 4000)
        del segment["subtitle_text"]

        with pytest.raises(SelectionRejectedError):
            validate_proposal({"segments": [segment]})

    def test_unknown_role_rejected(self):
        with pytest.raises(SelectionRejectedError):
            validate_proposal({"segments": [proposed(0, 0, 4000, narrative_role="outro")]})

    def test_subtitle_word_limit(self):
        ok = " ".join(["word"] * MAX_SUBTITLE_WORDS)
        too_long = " ".join(["word"] * (MAX_SUBTITLE_WORDS + 1))

        assert validate_proposal([proposed(0, 0, 4000, subtitle=ok)])
        with pytest.raises(SelectionRejectedError, match="words"):
            validate_proposal([proposed(0, 0, 4000, subtitle=too_long)])

    def test_end_past_source_is_clamped(self):
        proposal = validate_proposal([proposed(0, 55000, 62000)], source_duration_ms=60000)

        assert proposal.segments[0].end_ms == 60000
        assert proposal.segments[0].start_ms == 55000

    def test_start_past_source_rejected(self):
        with pytest.raises(SelectionRejectedError):
            validate_proposal([proposed(0, 61000, 65000)], source_duration_ms=60000)

    def test_unknown_source_duration_skips_clamp(self):
        proposal = validate_proposal([proposed(0, 55000, 62000)], source_duration_ms=None)

        assert proposal.segments[0].end_ms == 62000


class TestPrompt:
    """Tests for prompt construction."""

    def test_frames_summarized_in_timestamp_order(self):
        frames = sample_frame_analysis([2, 9, 4])
        frames.reverse()

        summary = summarize_frames(frames)

        assert [f["score"] for f in summary] == [2, 9, 4]
        assert summary[1]["t_sec"] == 4.0

    def test_messages_carry_target_and_transcript(self):
        messages = build_selection_messages(
            sample_frame_analysis([5, 6]),
            sample_transcription(duration_sec=12),
            target_duration_sec=30,
            tolerance_sec=3,
            source_duration_ms=40000,
        )

        assert messages[0]["role"] == "system"
        assert "30-second" in messages[0]["content"]
        assert SELECTION_TOOL_NAME in messages[0]["content"]
        assert "Source duration (s): 40.0" in messages[1]["content"]
        assert "word0" in messages[1]["content"]
        assert "FRAME ANALYSIS" in messages[1]["content"]

    def test_messages_without_transcript(self):
        messages = build_selection_messages(
            sample_frame_analysis([5]),
            None,
            target_duration_sec=15,
            tolerance_sec=3,
            source_duration_ms=None,
        )

        assert "Source duration (s): unknown" in messages[1]["content"]


class TestRequestSelection:
    """Tests for the model call."""

    @pytest.mark.asyncio
    async def test_returns_tool_arguments(self):
        arguments = {"story_summary": "s", "segments": [proposed(0, 0, 4000)]}
        client = make_openai_client(
            chat_create=[make_chat_response(tool_name=SELECTION_TOOL_NAME, tool_arguments=arguments)]
        )

        with patch("reelpipe.services.segment_selector.get_openai_client", return_value=client):
            data = await request_selection([{"role": "user", "content": "hi"}], model="gpt-4o")

        assert data == arguments
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["tool_choice"]["function"]["name"] == SELECTION_TOOL_NAME
        assert kwargs["tools"][0]["function"]["name"] == SELECTION_TOOL_NAME

    @pytest.mark.asyncio
    async def test_missing_tool_call_is_upstream_error(self):
        client = make_openai_client(chat_create=[make_chat_response(content="I can't do that")])

        with patch("reelpipe.services.segment_selector.get_openai_client", return_value=client):
            with pytest.raises(UpstreamServiceError):
                await request_selection([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_bad_arguments_json_is_upstream_error(self):
        client = make_openai_client(
            chat_create=[make_chat_response(tool_name=SELECTION_TOOL_NAME, tool_arguments="{not json")]
        )

        with patch("reelpipe.services.segment_selector.get_openai_client", return_value=client):
            with pytest.raises(UpstreamServiceError):
                await request_selection([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_call_failure_is_upstream_error(self):
        client = make_openai_client(chat_create=RuntimeError("timeout"))

        with patch("reelpipe.services.segment_selector.get_openai_client", return_value=client):
            with pytest.raises(UpstreamServiceError, match="Selection call failed"):
                await request_selection([{"role": "user", "content": "hi"}])
