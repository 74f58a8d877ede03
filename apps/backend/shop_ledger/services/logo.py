"""Shop logo download for report headers."""

from __future__ import annotations

import httpx

from shop_ledger.config import settings
from shop_ledger.logger import get_logger, log_external_api

logger = get_logger(__name__)


class LogoTooLargeError(Exception):
    """Raised when a logo exceeds the configured size cap."""


@log_external_api("logo")
async def _download(client: httpx.AsyncClient, url: str, max_bytes: int) -> bytes:
    async with client.stream("GET", url) as response:
        response.raise_for_status()
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise LogoTooLargeError(f"Logo is {declared} bytes, limit is {max_bytes}")

        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_bytes:
                raise LogoTooLargeError(f"Logo exceeds {max_bytes} bytes")
            chunks.append(chunk)
    return b"".join(chunks)


async def fetch_logo(url: str | None, client: httpx.AsyncClient | None = None) -> bytes | None:
    """Download the logo at ``url``.

    Returns None when there is no URL or the download fails for any reason;
    reports fall back to a text header in that case.
    """
    if not url or not url.lower().startswith(("http://", "https://")):
        return None

    timeout = httpx.Timeout(settings.logo_fetch_timeout_seconds)
    try:
        if client is not None:
            return await _download(client, url, settings.logo_max_bytes)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
            return await _download(owned, url, settings.logo_max_bytes)
    except (httpx.HTTPError, httpx.InvalidURL, LogoTooLargeError) as exc:
        logger.warning("Logo fetch failed, rendering without logo", url=url, error=str(exc))
        return None
