"""Site-scoped web search through the Yandex Search API (async operations)."""

import asyncio
import base64
import logging
import re
from typing import Awaitable, Callable, Optional

import httpx

from config import SearchConfig

logger = logging.getLogger(__name__)

SEARCH_URL = "https://searchapi.api.cloud.yandex.net/v2/web/searchAsync"
OPERATION_URL = "https://operation.api.cloud.yandex.net/operations/"

_VIDEO_URL_RES = (
    re.compile(r'https?://(?:www\.)?(?:vk\.com|vkvideo\.ru)/video-?\d+_\d+'),
    re.compile(r'https?://(?:www\.)?rutube\.ru/video/[a-f0-9]{32}'),
)


def extract_video_urls(page: str, limit: int = 6) -> list[str]:
    """VK and Rutube watch URLs found in a results page, first-seen order."""
    found: list[str] = []
    for pattern in _VIDEO_URL_RES:
        for match in pattern.findall(page):
            if match not in found:
                found.append(match)
    return found[:limit]


class YandexWebSearch:
    """Starts an async search operation, polls it, and scrapes result URLs."""

    def __init__(self, client: httpx.AsyncClient, api_key: str, folder_id: str,
                 poll_attempts: int = 10, poll_interval: float = 1.0,
                 timeout: float = 10.0, max_urls: int = 6,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.api_key = api_key
        self.folder_id = folder_id
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_urls = max_urls
        self._sleep = sleep

    @classmethod
    def from_config(cls, client: httpx.AsyncClient, config: SearchConfig,
                    timeout: float = 10.0) -> Optional["YandexWebSearch"]:
        """None when the credentials are not configured."""
        if not config.has_web_search:
            return None
        return cls(client, config.yandex_api_key, config.yandex_folder_id,
                   poll_attempts=config.poll_attempts, poll_interval=config.poll_interval,
                   timeout=timeout)

    @property
    def _auth(self) -> dict:
        return {"Authorization": f"Api-Key {self.api_key}"}

    async def search(self, query: str) -> list[str]:
        resp = await self.client.post(
            SEARCH_URL,
            headers=self._auth,
            json={
                "query": {"searchType": "SEARCH_TYPE_RU", "queryText": query},
                "folderId": self.folder_id,
                "responseFormat": "FORMAT_HTML",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        operation_id = (resp.json() or {}).get("id")
        if not operation_id:
            logger.warning(f"Yandex search returned no operation id for '{query}'")
            return []

        for _ in range(self.poll_attempts):
            await self._sleep(self.poll_interval)
            try:
                poll = await self.client.get(f"{OPERATION_URL}{operation_id}",
                                             headers=self._auth, timeout=self.timeout)
                poll.raise_for_status()
                result = poll.json() or {}
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Yandex poll failed for {operation_id}: {e}")
                continue
            if not result.get("done"):
                continue
            raw = (result.get("response") or {}).get("rawData")
            if not raw:
                return []
            page = base64.b64decode(raw).decode("utf-8", errors="replace")
            return extract_video_urls(page, self.max_urls)

        logger.warning(f"Yandex search timed out for '{query}'")
        return []
