import logging
import re
from typing import Optional

from platforms.base import Metadata, PlatformSource, SearchStrategy, Strategy, clean_text, positive_int
from platforms.parser import RUTUBE, canonical_url

logger = logging.getLogger(__name__)

OEMBED_URL = "https://rutube.ru/api/oembed/"
SEARCH_URL = "https://rutube.ru/api/search/video/"

_ID_RE = re.compile(r'^[a-f0-9]{32}$')


class RutubeSource(PlatformSource):
    """Rutube oEmbed metadata and public search API."""

    platform = RUTUBE
    search_site = "rutube.ru/video"

    def strategies(self) -> list[Strategy]:
        return [("oembed", self.fetch_oembed)]

    def stub_thumbnail(self, external_id: str) -> Optional[str]:
        return f"https://rutube.ru/api/video/{external_id}/thumbnail/?redirect=1"

    async def fetch_oembed(self, video_id: str) -> Optional[Metadata]:
        data = await self._get_json(
            OEMBED_URL,
            params={"url": canonical_url(RUTUBE, video_id), "format": "json"},
        )
        title = clean_text(data.get("title"))
        if not title:
            return None
        return Metadata(
            title=title,
            channel_name=clean_text(data.get("author_name")) or self.label,
            thumbnail_url=data.get("thumbnail_url") or self.stub_thumbnail(video_id),
            duration=positive_int(data.get("duration")),
            source="oembed",
        )

    def search_strategies(self) -> list[SearchStrategy]:
        return [("search_api", self.search_api)]

    async def search_api(self, query: str) -> list[str]:
        """Watch URLs from Rutube's public search."""
        data = await self._get_json(SEARCH_URL, params={"query": query, "is_official": "false"})
        urls = []
        for item in (data or {}).get("results") or []:
            video_id = str(item.get("id") or "")
            if _ID_RE.match(video_id):
                urls.append(canonical_url(RUTUBE, video_id))
        logger.debug(f"Rutube search '{query}': {len(urls)} result(s)")
        return urls
