"""
Unit tests for the frame scorer.

Tests:
- Valid replies become frame results in input order
- Failed or malformed replies fall back to the default judgement
- Image references are passed in a form the vision API accepts
"""

import json

import pytest

from reelpipe.schemas.frames import FrameInput, default_judgement
from reelpipe.services.frame_scorer import frame_image_url, score_frame, score_frames
from tests.conftest import make_chat_response, make_openai_client


def judgement(score: float, **overrides) -> str:
    data = {
        "score": score,
        "description": f"A frame scored {score}",
        "tags": ["people", " outdoor ", "day"],
        "has_face": True,
        "has_text": False,
        "energy_level": "medium",
    }
    data.update(overrides)
    return json.dumps(data)


def frames(count: int) -> list[FrameInput]:
    return [FrameInput(index=i, timestamp_ms=i * 2000, image=f"frame-{i}") for i in range(count)]


def frame_index_of(kwargs: dict) -> int:
    url = kwargs["messages"][0]["content"][1]["image_url"]["url"]
    return int(url.rsplit("-", 1)[-1])


class TestScoreFrame:
    """Tests for a single vision call."""

    @pytest.mark.asyncio
    async def test_valid_reply(self):
        client = make_openai_client(chat_create=[make_chat_response(content=judgement(7.5))])

        result = await score_frame(client, frames(1)[0], "gpt-4o")

        assert result.score == 7.5
        assert result.tags == ["people", "outdoor", "day"]
        assert result.energy_level == "medium"

    @pytest.mark.asyncio
    async def test_reply_in_code_fence(self):
        content = f"```json\n{judgement(4)}\n```"
        client = make_openai_client(chat_create=[make_chat_response(content=content)])

        result = await score_frame(client, frames(1)[0], "gpt-4o")

        assert result.score == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            json.dumps({"score": 7}),
            judgement(11),
            judgement(5, energy_level="extreme"),
            "",
        ],
    )
    async def test_unusable_reply_returns_none(self, content: str):
        client = make_openai_client(chat_create=[make_chat_response(content=content)])

        assert await score_frame(client, frames(1)[0], "gpt-4o") is None

    @pytest.mark.asyncio
    async def test_call_error_returns_none(self):
        client = make_openai_client(chat_create=RuntimeError("rate limited"))

        assert await score_frame(client, frames(1)[0], "gpt-4o") is None


class TestScoreFrames:
    """Tests for batch scoring."""

    @pytest.mark.asyncio
    async def test_results_in_input_order(self):
        def reply(**kwargs):
            return make_chat_response(content=judgement(frame_index_of(kwargs)))

        client = make_openai_client(chat_create=reply)

        results, failed = await score_frames(frames(5), client, model="gpt-4o", delay_ms=0, concurrency=3)

        assert failed == 0
        assert [r.frame_index for r in results] == [0, 1, 2, 3, 4]
        assert [r.timestamp_ms for r in results] == [0, 2000, 4000, 6000, 8000]
        assert [r.score for r in results] == [0, 1, 2, 3, 4]
        assert client.chat.completions.create.await_count == 5

    @pytest.mark.asyncio
    async def test_failed_frame_gets_default(self):
        def reply(**kwargs):
            if frame_index_of(kwargs) == 1:
                raise RuntimeError("vision service error")
            return make_chat_response(content=judgement(8))

        client = make_openai_client(chat_create=reply)

        results, failed = await score_frames(frames(3), client, model="gpt-4o", delay_ms=0)

        assert failed == 1
        assert len(results) == 3
        default = default_judgement()
        assert results[1].score == default.score == 0
        assert results[1].description == "Analysis failed"
        assert results[1].tags == []
        assert results[1].energy_level == "low"
        assert results[1].frame_index == 1
        assert results[0].score == 8
        assert results[2].score == 8

    @pytest.mark.asyncio
    async def test_scores_stay_in_range(self):
        client = make_openai_client(chat_create=lambda **kwargs: make_chat_response(content=judgement(-2)))

        results, failed = await score_frames(frames(2), client, model="gpt-4o", delay_ms=0)

        assert failed == 2
        assert all(0 <= r.score <= 10 for r in results)


class TestFrameImageUrl:
    """Tests for image reference handling."""

    def test_raw_base64_wrapped(self):
        assert frame_image_url("abc123") == "data:image/jpeg;base64,abc123"

    def test_data_uri_passed_through(self):
        assert frame_image_url("data:image/png;base64,abc") == "data:image/png;base64,abc"

    def test_https_url_passed_through(self):
        assert frame_image_url("https://cdn.example.com/f.jpg") == "https://cdn.example.com/f.jpg"
