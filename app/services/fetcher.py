"""Outbound HTTP for recipe pages and recipe images."""

from __future__ import annotations

import logging
import random
from typing import Optional, Tuple

import httpx

from app.config import settings
from app.utils.exceptions import InvalidRequest, SourceUnreachable
from app.utils.validators import validate_url

logger = logging.getLogger(__name__)

BROWSER_UAS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36",
]

_PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
_IMAGE_ACCEPT = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"


def _sec_ch_for_ua(ua: str) -> Tuple[str, str]:
    """Return sec-ch-ua and sec-ch-ua-platform headers matching ``ua``."""
    lowered = ua.lower()
    if "safari" in lowered and "chrome" not in lowered:
        return '"Not/A)Brand";v="8", "Safari";v="17"', '"macOS"'
    if "linux" in lowered:
        return '"Not/A)Brand";v="8", "Chromium";v="127", "Google Chrome";v="127"', '"Linux"'
    return '"Not/A)Brand";v="8", "Chromium";v="127", "Google Chrome";v="127"', '"Windows"'


def browser_headers(accept: str = _PAGE_ACCEPT, *, document: bool = True) -> dict:
    """Headers of a regular desktop browser; many recipe sites reject anything else."""
    ua = random.choice(BROWSER_UAS)
    sec_ch, sec_platform = _sec_ch_for_ua(ua)
    headers = {
        "User-Agent": ua,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "DNT": "1",
        "Connection": "keep-alive",
        "Cache-Control": "max-age=0",
        "sec-ch-ua": sec_ch,
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": sec_platform,
    }
    if document:
        headers.update(
            {
                "Upgrade-Insecure-Requests": "1",
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "none",
                "Sec-Fetch-User": "?1",
            }
        )
    else:
        headers.update(
            {
                "Sec-Fetch-Dest": "image",
                "Sec-Fetch-Mode": "no-cors",
                "Sec-Fetch-Site": "cross-site",
            }
        )
    return headers


class RemoteFetcher:
    """Page and image fetcher over a shared ``httpx.AsyncClient``.

    No retries: a failed fetch raises ``SourceUnreachable`` and the caller
    decides what to do with it. Redirects are followed here, not by httpx,
    so every hop passes ``validate_url``. Bodies are streamed and cut off at
    a byte limit.
    """

    MAX_REDIRECTS = 5

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=False)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_page(self, url: str, timeout: Optional[float] = None) -> str:
        """GET a recipe page and return its markup."""
        response, content = await self._get(
            url,
            headers=browser_headers(),
            timeout=timeout if timeout is not None else settings.http_timeout,
            max_bytes=settings.max_page_bytes,
        )
        logger.info(
            "Fetched page",
            extra={"url": url[:200], "status_code": response.status_code, "bytes": len(content)},
        )
        return content.decode(response.encoding or "utf-8", errors="replace")

    async def fetch_image(self, url: str, timeout: Optional[float] = None) -> bytes:
        """GET an image and return its bytes."""
        response, content = await self._get(
            url,
            headers=browser_headers(_IMAGE_ACCEPT, document=False),
            timeout=timeout if timeout is not None else settings.image_fetch_timeout,
            max_bytes=settings.max_image_bytes,
        )

        content_type = response.headers.get("content-type", "").lower()
        if not content:
            raise SourceUnreachable(f"Image at {url} is empty")
        if content_type.startswith("text/"):
            raise SourceUnreachable(f"Image at {url} has non-image content-type {content_type}")

        logger.info("Fetched image", extra={"url": url[:200], "bytes": len(content)})
        return content

    async def _get(
        self, url: str, *, headers: dict, timeout: float, max_bytes: int
    ) -> Tuple[httpx.Response, bytes]:
        validate_url(url)
        current = url
        try:
            for _ in range(self.MAX_REDIRECTS + 1):
                async with self.client.stream(
                    "GET", current, headers=headers, timeout=timeout, follow_redirects=False
                ) as response:
                    if response.next_request is not None:
                        current = self._redirect_target(url, response.next_request)
                        continue
                    if not response.is_success:
                        raise SourceUnreachable(f"Fetching {url} returned HTTP {response.status_code}")
                    return response, await self._read_limited(url, response, max_bytes)
        except httpx.TimeoutException as e:
            raise SourceUnreachable(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise SourceUnreachable(f"Failed to fetch {url}: {e}") from e

        raise SourceUnreachable(f"Too many redirects fetching {url}")

    @staticmethod
    def _redirect_target(url: str, next_request: httpx.Request) -> str:
        target = str(next_request.url)
        try:
            validate_url(target)
        except InvalidRequest as e:
            logger.warning("Blocked redirect", extra={"url": url[:200], "location": target[:200]})
            raise SourceUnreachable(f"Fetching {url} redirected to a blocked address: {e}") from e
        return target

    @staticmethod
    async def _read_limited(url: str, response: httpx.Response, max_bytes: int) -> bytes:
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_bytes:
            raise SourceUnreachable(f"Response from {url} is too large ({declared} bytes, max {max_bytes})")

        chunks = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_bytes:
                raise SourceUnreachable(f"Response from {url} exceeded {max_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)
