"""
Bible API Client

Async HTTP client for bible-api.com style chapter endpoints. Several URL forms
are tried in turn because the API is inconsistent about book names with spaces.
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional
from urllib.parse import quote

import aiohttp

from sonhub.errors import BibleApiError

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://bible-api.com"


class BibleApiClient:
    """
    Fetches chapter payloads ({"verses": [{"verse": n, "text": ...}, ...]}).

    Example:
        client = BibleApiClient()
        payload = await client.fetch_chapter("Genesis", 1, "kjv")
        await client.close()
    """

    def __init__(self, base_url: str = DEFAULT_API_BASE, timeout_seconds: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "BibleApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def build_endpoints(self, book: str, chapter: int, version: str) -> List[str]:
        """Candidate URLs for a chapter, in the order they are tried."""
        query = f"?translation={quote(version)}"
        return [
            f"{self.base_url}/{book}+{chapter}{query}",
            f"{self.base_url}/{book}{chapter}{query}",
            f"{self.base_url}/{quote(book)}+{chapter}{query}",
        ]

    async def _get_json(self, url: str) -> Dict[str, Any]:
        session = await self._get_session()
        try:
            async with session.get(url) as resp:
                if resp.status >= 400:
                    raise BibleApiError(f"HTTP {resp.status}: {resp.reason}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BibleApiError(f"Bible API request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("verses"):
            raise BibleApiError("No verses found in response")
        return data

    async def fetch_chapter(self, book: str, chapter: int, version: str) -> Dict[str, Any]:
        """
        Download a chapter payload, trying each endpoint form until one succeeds.

        Args:
            book: Canonical book name
            chapter: Chapter number
            version: Translation identifier (e.g. "kjv")

        Returns:
            Response body with a non-empty "verses" array

        Raises:
            BibleApiError: If every endpoint fails; the last failure is chained
        """
        logger.info(f"Downloading chapter {book} {chapter} ({version})")
        last_error: Optional[Exception] = None

        for endpoint in self.build_endpoints(book, chapter, version):
            try:
                return await self._get_json(endpoint)
            except (BibleApiError, ValueError) as e:
                logger.warning(f"Endpoint {endpoint} failed: {e}")
                last_error = e

        raise BibleApiError(
            f"Failed to download {book} {chapter}. Please check your internet connection and try again."
        ) from last_error
