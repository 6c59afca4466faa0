"""VK video metadata.

VK blocks naive access aggressively, so this is the longest chain:
official API (only with a service token), the page as seen by a search
crawler, the page as seen by a desktop browser, then the stub.
"""

import json
import logging
import re
from typing import Optional

from platforms.base import (
    BROWSER_HEADERS,
    CRAWLER_HEADERS,
    Metadata,
    PlatformSource,
    SearchStrategy,
    Strategy,
    clean_text,
    extract_meta,
    fetch_page,
    positive_int,
)
from platforms.parser import VK, canonical_url, split_vk_id

logger = logging.getLogger(__name__)

API_URL = "https://api.vk.com/method"

_JSON_LD_RE = re.compile(
    r'<script[^>]+type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.IGNORECASE | re.DOTALL,
)


class VKAPIError(Exception):
    """Error object returned in a VK API response body."""


def _largest_image(images) -> Optional[str]:
    best, best_width = None, -1
    for image in images or []:
        if not isinstance(image, dict) or not image.get("url"):
            continue
        width = image.get("width") or 0
        if width > best_width:
            best, best_width = image["url"], width
    return best


def _owner_name(owner_id: int, response: dict) -> Optional[str]:
    """Group or profile display name for a video owner from an extended response."""
    if owner_id < 0:
        for group in response.get("groups") or []:
            if group.get("id") == -owner_id:
                return clean_text(group.get("name"))
    else:
        for profile in response.get("profiles") or []:
            if profile.get("id") == owner_id:
                name = f"{profile.get('first_name', '')} {profile.get('last_name', '')}"
                return clean_text(name)
    return None


def _json_ld_author(page: str) -> Optional[str]:
    for block in _JSON_LD_RE.findall(page):
        try:
            data = json.loads(block)
        except ValueError:
            continue
        for item in data if isinstance(data, list) else [data]:
            if not isinstance(item, dict):
                continue
            author = item.get("author")
            if isinstance(author, list) and author:
                author = author[0]
            if isinstance(author, dict):
                author = author.get("name")
            name = clean_text(author)
            if name:
                return name
    return None


def parse_video_page(page: str) -> Optional[Metadata]:
    """Open Graph metadata from a decoded VK video page."""
    title = extract_meta(page, "og:title")
    if not title:
        return None
    return Metadata(
        title=title,
        channel_name=_json_ld_author(page),
        thumbnail_url=extract_meta(page, "og:image"),
        duration=positive_int(extract_meta(page, "og:video:duration")
                              or extract_meta(page, "video:duration")),
    )


class VKSource(PlatformSource):
    platform = VK
    search_site = "vk.com/video"

    def strategies(self) -> list[Strategy]:
        chain: list[Strategy] = []
        if self.config.vk.has_token:
            chain.append(("api", self.fetch_api))
        chain.append(("html_crawler", self.fetch_page_as_crawler))
        chain.append(("html_browser", self.fetch_page_as_browser))
        return chain

    async def _call_api(self, method: str, **params) -> dict:
        params.update(access_token=self.config.vk.service_token, v=self.config.vk.api_version)
        data = await self._get_json(f"{API_URL}/{method}", params=params)
        if "error" in data:
            err = data["error"] or {}
            raise VKAPIError(f"{method}: {err.get('error_code')} {err.get('error_msg')}")
        return data.get("response") or {}

    async def fetch_api(self, external_id: str) -> Optional[Metadata]:
        response = await self._call_api("video.get", videos=external_id, extended=1)
        items = response.get("items") or []
        if not items:
            return None
        item = items[0]
        title = clean_text(item.get("title"))
        if not title:
            return None
        owner_id = int(item.get("owner_id") or split_vk_id(external_id)[0])
        return Metadata(
            title=title,
            channel_name=_owner_name(owner_id, response) or self.label,
            thumbnail_url=_largest_image(item.get("image")),
            duration=positive_int(item.get("duration")),
            source="api",
        )

    async def _fetch_page(self, external_id: str, headers: dict, source: str) -> Optional[Metadata]:
        page = await fetch_page(self.client, canonical_url(VK, external_id), headers,
                                self.config.resolver.html_timeout)
        metadata = parse_video_page(page)
        if metadata is None:
            return None
        metadata.channel_name = metadata.channel_name or self.label
        metadata.source = source
        return metadata

    async def fetch_page_as_crawler(self, external_id: str) -> Optional[Metadata]:
        return await self._fetch_page(external_id, CRAWLER_HEADERS, "html_crawler")

    async def fetch_page_as_browser(self, external_id: str) -> Optional[Metadata]:
        return await self._fetch_page(external_id, BROWSER_HEADERS, "html_browser")

    def search_strategies(self) -> list[SearchStrategy]:
        if self.config.vk.has_token:
            return [("video_search", self.search_api)]
        return []

    async def search_api(self, query: str) -> list[str]:
        response = await self._call_api("video.search", q=query, count=10, adult=0)
        urls = []
        for item in response.get("items") or []:
            owner_id, video_id = item.get("owner_id"), item.get("id")
            if owner_id is not None and video_id is not None:
                urls.append(canonical_url(VK, f"{owner_id}_{video_id}"))
        logger.debug(f"VK search '{query}': {len(urls)} result(s)")
        return urls
