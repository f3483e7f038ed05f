"""
Client for the external render service (Shotstack-compatible edit API).
"""

import logging
from typing import Any

import httpx

from ..core.config import get_settings
from .errors import RenderSubmissionError

logger = logging.getLogger(__name__)


async def submit_render(composition: dict[str, Any]) -> str:
    """
    POST a composition to {render_api_url}/render and return the job id.

    Raises:
        RenderSubmissionError: If the service is not configured, the call
            fails or times out, or the reply carries no job id
    """
    settings = get_settings()
    if not settings.render_api_key:
        raise RenderSubmissionError("Render service API key is not configured")

    url = f"{settings.render_api_url.rstrip('/')}/render"
    headers = {
        "x-api-key": settings.render_api_key,
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=settings.external_call_timeout_seconds) as client:
            response = await client.post(url, headers=headers, json=composition)
    except httpx.TimeoutException as e:
        raise RenderSubmissionError("Render submission timed out") from e
    except httpx.HTTPError as e:
        raise RenderSubmissionError(f"Render submission failed: {e}") from e

    if response.status_code >= 400:
        logger.error(f"Render service error {response.status_code}: {response.text[:500]}")
        raise RenderSubmissionError(
            f"Render service returned HTTP {response.status_code}: {response.text[:300]}"
        )

    try:
        body = response.json()
    except ValueError as e:
        raise RenderSubmissionError("Render service returned invalid JSON") from e

    # Shotstack nests the job under "response"
    job = body.get("response") if isinstance(body, dict) else None
    job_id = job.get("id") if isinstance(job, dict) else None
    if not job_id or not isinstance(job_id, str):
        raise RenderSubmissionError(
            f"Render service returned no job id: {str(body)[:300]}"
        )

    return job_id
