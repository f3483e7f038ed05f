"""
Unit tests for outbound HTTP: media downloads and render submission.

httpx.AsyncClient is replaced by one bound to an httpx.MockTransport, so
no network is used.
"""

from contextlib import contextmanager
from typing import Callable
from unittest.mock import patch

import httpx
import pytest

from reelpipe.services.errors import MediaDownloadError, RenderSubmissionError, UnsafeURLError
from reelpipe.services.media_fetch import download_media, require_safe_url
from reelpipe.services.render_client import submit_render

_RealAsyncClient = httpx.AsyncClient


@contextmanager
def mock_transport(handler: Callable[[httpx.Request], httpx.Response]):
    """Route every httpx.AsyncClient through handler; yields the seen requests."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def factory(*args, **kwargs):
        return _RealAsyncClient(*args, transport=httpx.MockTransport(record), **kwargs)

    with patch.object(httpx, "AsyncClient", side_effect=factory):
        yield seen


class TestDownloadMedia:
    """Tests for download_media."""

    @pytest.mark.asyncio
    async def test_downloads_body(self):
        with mock_transport(lambda r: httpx.Response(200, content=b"video-bytes", headers={"content-type": "video/mp4"})) as seen:
            media = await download_media("https://cdn.example.com/out/render.mp4")

        assert media.data == b"video-bytes"
        assert media.size == 11
        assert media.content_type == "video/mp4"
        assert media.filename == "render.mp4"
        assert str(seen[0].url) == "https://cdn.example.com/out/render.mp4"

    @pytest.mark.asyncio
    async def test_default_filename(self):
        with mock_transport(lambda r: httpx.Response(200, content=b"x")):
            media = await download_media("https://cdn.example.com/", default_filename="audio.mp4")

        assert media.filename == "audio.mp4"

    @pytest.mark.asyncio
    async def test_unsafe_url_never_requested(self):
        with mock_transport(lambda r: httpx.Response(200, content=b"x")) as seen:
            with pytest.raises(UnsafeURLError):
                await download_media("https://169.254.169.254/latest/meta-data", field="url")

        assert seen == []

    @pytest.mark.asyncio
    async def test_redirect_refused(self):
        redirect = httpx.Response(302, headers={"location": "https://127.0.0.1/secret"})

        with mock_transport(lambda r: redirect) as seen:
            with pytest.raises(MediaDownloadError, match="redirect"):
                await download_media("https://cdn.example.com/render.mp4")

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_http_error(self):
        with mock_transport(lambda r: httpx.Response(404)):
            with pytest.raises(MediaDownloadError, match="404"):
                await download_media("https://cdn.example.com/missing.mp4")

    @pytest.mark.asyncio
    async def test_oversize_body(self):
        with mock_transport(lambda r: httpx.Response(200, content=b"x" * 100)):
            with pytest.raises(MediaDownloadError, match="too large"):
                await download_media("https://cdn.example.com/big.mp4", max_bytes=10)

    @pytest.mark.asyncio
    async def test_empty_body(self):
        with mock_transport(lambda r: httpx.Response(200, content=b"")):
            with pytest.raises(MediaDownloadError, match="empty"):
                await download_media("https://cdn.example.com/empty.mp4")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with mock_transport(handler):
            with pytest.raises(MediaDownloadError, match="timed out"):
                await download_media("https://cdn.example.com/slow.mp4", timeout=1)

    @pytest.mark.asyncio
    async def test_invalid_url_from_client(self):
        def handler(request):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        with mock_transport(handler):
            with pytest.raises(MediaDownloadError, match="non-printable"):
                await download_media("https://cdn.example.com/render.mp4")

    @pytest.mark.asyncio
    async def test_unexpected_client_error(self):
        def handler(request):
            raise RuntimeError("transport exploded")

        with mock_transport(handler):
            with pytest.raises(MediaDownloadError, match="transport exploded"):
                await download_media("https://cdn.example.com/render.mp4")

    def test_require_safe_url_reports_field(self):
        with pytest.raises(UnsafeURLError) as exc_info:
            require_safe_url("http://cdn.example.com/a.mp3", field="audio_url")

        assert exc_info.value.field == "audio_url"


class TestSubmitRender:
    """Tests for submit_render."""

    @pytest.mark.asyncio
    async def test_returns_job_id(self):
        body = {"success": True, "message": "Created", "response": {"id": "job-abc", "message": "Render Successfully Queued"}}

        with mock_transport(lambda r: httpx.Response(201, json=body)) as seen:
            job_id = await submit_render({"timeline": {}, "output": {}})

        assert job_id == "job-abc"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path.endswith("/render")
        assert request.headers["x-api-key"] == "test-render-key"

    @pytest.mark.asyncio
    async def test_http_error(self):
        with mock_transport(lambda r: httpx.Response(400, text="Bad edit")):
            with pytest.raises(RenderSubmissionError, match="HTTP 400"):
                await submit_render({})

    @pytest.mark.asyncio
    async def test_missing_job_id(self):
        with mock_transport(lambda r: httpx.Response(200, json={"response": {}})):
            with pytest.raises(RenderSubmissionError, match="no job id"):
                await submit_render({})

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with mock_transport(lambda r: httpx.Response(200, text="<html>")):
            with pytest.raises(RenderSubmissionError, match="invalid JSON"):
                await submit_render({})

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with mock_transport(handler):
            with pytest.raises(RenderSubmissionError, match="failed"):
                await submit_render({})
