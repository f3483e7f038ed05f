"""
Bounded media downloads for URLs supplied by callers or the render service.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import httpx

from ..core.config import get_settings
from ..core.url_safety import is_safe_url
from .errors import MediaDownloadError, UnsafeURLError

logger = logging.getLogger(__name__)


@dataclass
class DownloadedMedia:
    """Bytes fetched from a URL plus what we learned about them."""

    data: bytes
    content_type: Optional[str]
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


def require_safe_url(url: str, field: str = "url") -> str:
    """
    Raise UnsafeURLError unless url passes the outbound fetch check.
    """
    if not is_safe_url(url):
        logger.warning(f"Rejected unsafe {field}: {url[:200]!r}")
        raise UnsafeURLError(url, field=field)
    return url


def _filename_from_url(url: str, default: str) -> str:
    name = urlsplit(url).path.rsplit("/", 1)[-1]
    return name or default


async def download_media(
    url: str,
    field: str = "url",
    timeout: Optional[float] = None,
    max_bytes: Optional[int] = None,
    default_filename: str = "media.mp4",
) -> DownloadedMedia:
    """
    Download url into memory.

    Redirects are not followed, since the target was never checked by
    is_safe_url. The body is streamed and abandoned once it exceeds max_bytes.

    Raises:
        UnsafeURLError: If url fails the safety check
        MediaDownloadError: On HTTP error, redirect, oversize body or timeout
    """
    require_safe_url(url, field=field)

    settings = get_settings()
    timeout = timeout or settings.download_timeout_seconds
    max_bytes = max_bytes or settings.max_media_download_size

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=False) as client:
            async with client.stream("GET", url) as response:
                if response.is_redirect:
                    raise MediaDownloadError(
                        f"Download refused redirect (HTTP {response.status_code})"
                    )
                if response.status_code >= 400:
                    raise MediaDownloadError(
                        f"Download failed with HTTP {response.status_code}"
                    )

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > max_bytes:
                    raise MediaDownloadError(
                        f"Media too large: {declared} bytes (limit {max_bytes})"
                    )

                chunks = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > max_bytes:
                        raise MediaDownloadError(
                            f"Media too large: exceeded {max_bytes} bytes"
                        )
                    chunks.append(chunk)

                content_type = response.headers.get("content-type")
    except MediaDownloadError:
        raise
    except httpx.TimeoutException as e:
        raise MediaDownloadError(f"Download timed out after {timeout}s") from e
    except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
        raise MediaDownloadError(f"Download failed: {e}") from e
    except Exception as e:
        logger.error(f"Unexpected error downloading {field}", exc_info=True)
        raise MediaDownloadError(f"Download failed: {e}") from e

    data = b"".join(chunks)
    if not data:
        raise MediaDownloadError("Downloaded media is empty")

    logger.info(f"Downloaded {len(data)} bytes from {field}")
    return DownloadedMedia(
        data=data,
        content_type=content_type,
        filename=_filename_from_url(url, default_filename),
    )
