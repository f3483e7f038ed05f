"""
OpenAI client helpers shared by the frame scorer, transcript aligner and
segment selector.
"""

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from ..core.config import get_settings
from .errors import UpstreamServiceError

logger = logging.getLogger(__name__)


def get_openai_client(timeout: Optional[float] = None) -> AsyncOpenAI:
    """
    Build an AsyncOpenAI client from settings.

    Raises:
        UpstreamServiceError: If no API key is configured
    """
    settings = get_settings()
    api_key = settings.openai_api_key.strip()
    if not api_key:
        raise UpstreamServiceError("OpenAI API key is not configured", service="openai")

    return AsyncOpenAI(
        api_key=api_key,
        timeout=timeout or settings.external_call_timeout_seconds,
        max_retries=1,
    )


def parse_json_content(content: Optional[str]) -> dict[str, Any]:
    """
    Parse a JSON object from a chat completion message.

    Tolerates a markdown code fence around the object.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    if not content:
        raise ValueError("empty model response")

    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("model response is not a JSON object")
    return data


def extract_tool_arguments(response: Any, tool_name: str) -> dict[str, Any]:
    """
    Return the parsed arguments of the first call to tool_name.

    Raises:
        ValueError: If the model did not call the tool or sent bad JSON
    """
    if not response.choices:
        raise ValueError("model returned no choices")

    message = response.choices[0].message
    for call in message.tool_calls or []:
        if call.function.name == tool_name:
            return parse_json_content(call.function.arguments)

    raise ValueError(f"model did not call {tool_name}")
