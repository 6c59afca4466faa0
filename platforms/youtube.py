from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Protocol, runtime_checkable

import yt_dlp

from data.ttl_cache import CacheProtocol, NullCache
from platforms.base import Metadata, PlatformSource, Strategy, clean_text, positive_int
from platforms.parser import YOUTUBE, canonical_url

logger = logging.getLogger(__name__)

OEMBED_URL = "https://www.youtube.com/oembed"

_VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')


def thumbnail_url(video_id: str) -> str:
    """Deterministic thumbnail; hqdefault exists for every public video."""
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


class YouTubeSource(PlatformSource):
    """oEmbed metadata with duration from Invidious mirrors."""

    platform = YOUTUBE

    def strategies(self) -> list[Strategy]:
        return [("oembed", self.fetch_oembed)]

    def stub_thumbnail(self, external_id: str) -> Optional[str]:
        return thumbnail_url(external_id)

    async def fetch_oembed(self, video_id: str) -> Optional[Metadata]:
        data = await self._get_json(
            OEMBED_URL,
            params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
        )
        title = clean_text(data.get("title"))
        if not title:
            return None
        return Metadata(
            title=title,
            channel_name=clean_text(data.get("author_name")) or self.label,
            thumbnail_url=thumbnail_url(video_id),
            source="oembed",
        )

    async def enrich(self, external_id: str, metadata: Metadata) -> Metadata:
        if metadata.duration is None:
            metadata.duration = await self.fetch_mirror_duration(external_id)
        return metadata

    async def fetch_mirror_duration(self, video_id: str) -> Optional[int]:
        """First positive lengthSeconds from the configured Invidious mirrors."""
        for instance in self.config.resolver.invidious_instances:
            url = f"{instance.rstrip('/')}/api/v1/videos/{video_id}"
            try:
                data = await self._get_json(url, timeout=self.config.resolver.mirror_timeout)
            except Exception as e:
                logger.debug(f"Invidious {instance} failed for {video_id}: {e}")
                continue
            duration = positive_int(data.get("lengthSeconds")) if isinstance(data, dict) else None
            if duration:
                return duration
        return None


# ---------------------------------------------------------------------------
# Direct stream URLs (yt-dlp)
# ---------------------------------------------------------------------------

def _ydl_opts(timeout: int, proxy: Optional[str] = None) -> dict:
    """yt-dlp options: no download, progressive mp4 preferred."""
    opts = {
        'quiet': True,
        'no_warnings': True,
        'skip_download': True,
        'noplaylist': True,
        'socket_timeout': timeout,
        'format': 'best[ext=mp4][acodec!=none][vcodec!=none]/best[acodec!=none][vcodec!=none]/best',
    }
    if proxy:
        opts['proxy'] = proxy
    return opts


async def resolve_stream_url(video_id: str, timeout: int = 30,
                             proxy: Optional[str] = None) -> Optional[str]:
    """Resolve a playable direct URL for a YouTube video, or None."""
    if not _VIDEO_ID_RE.match(video_id or ""):
        return None

    def _extract():
        try:
            with yt_dlp.YoutubeDL(_ydl_opts(timeout, proxy)) as ydl:
                info = ydl.extract_info(canonical_url(YOUTUBE, video_id), download=False)
                if not info:
                    return None
                if info.get('url'):
                    return info['url']
                for fmt in reversed(info.get('requested_formats') or info.get('formats') or []):
                    if fmt.get('url') and fmt.get('acodec') != 'none' and fmt.get('vcodec') != 'none':
                        return fmt['url']
                return None
        except Exception as e:
            logger.error(f"Stream URL extraction failed for {video_id}: {e}")
            return None
    try:
        return await asyncio.wait_for(asyncio.to_thread(_extract), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Stream URL extraction timed out for {video_id}")
        return None


@runtime_checkable
class StreamResolverProtocol(Protocol):
    async def get_stream_url(self, video_id: str) -> Optional[str]: ...


class YouTubeStreamResolver:
    """Caches resolved stream URLs; they expire upstream after a few hours."""

    def __init__(self, cache: Optional[CacheProtocol] = None, timeout: int = 30,
                 proxy: Optional[str] = None):
        self.cache = cache if cache is not None else NullCache()
        self.timeout = timeout
        self.proxy = proxy

    async def get_stream_url(self, video_id: str) -> Optional[str]:
        cached = self.cache.get(video_id)
        if cached:
            return cached
        url = await resolve_stream_url(video_id, timeout=self.timeout, proxy=self.proxy)
        if url:
            self.cache.set(video_id, url)
        return url
