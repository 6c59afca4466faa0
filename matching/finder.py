"""Find mirrors of a video on the other platforms and link them to it."""

import asyncio
import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Optional

from config import Config
from data.video_store import VideoStore
from matching.scoring import MatchScore, score_candidate
from matching.web_search import YandexWebSearch
from platforms.base import Metadata, SearchStrategy
from platforms.parser import RUTUBE, VK, ParsedVideo, parse_video_url
from platforms.resolver import MetadataResolver, is_acceptable

logger = logging.getLogger(__name__)

MIRROR_PLATFORMS = (RUTUBE, VK)

_CLAUSE_SPLIT_RE = re.compile(r'[?|.!]')


def search_queries(title: str) -> list[str]:
    """Full title, then its first substantial clause as a retry query."""
    full = " ".join(title.split())
    queries = [full] if full else []
    clauses = [c.strip() for c in _CLAUSE_SPLIT_RE.split(title) if len(c.strip()) > 5]
    if clauses:
        first = " ".join(clauses[0].split())
        if first not in queries:
            queries.append(first)
    return queries


@dataclass
class Candidate:
    parsed: ParsedVideo
    metadata: Metadata
    score: MatchScore


class AlternativeFinder:
    def __init__(self, store: VideoStore, resolver: MetadataResolver, config: Config,
                 web_search: Optional[YandexWebSearch] = None):
        self.store = store
        self.resolver = resolver
        self.config = config
        self.web_search = web_search

    def search_chain(self, platform: str) -> list[SearchStrategy]:
        source = self.resolver.source(platform)
        chain = list(source.search_strategies())
        if self.web_search is not None and source.search_site:
            web_search, site = self.web_search, source.search_site

            async def site_search(query: str) -> list[str]:
                return await web_search.search(f"{query} site:{site}")

            chain.append(("web_search", site_search))
        return chain

    async def _search_urls(self, platform: str, query: str) -> list[ParsedVideo]:
        """First search strategy that yields links on `platform` wins."""
        limit = self.config.search.max_candidates
        for name, strategy in self.search_chain(platform):
            try:
                urls = await strategy(query)
            except Exception as e:
                logger.warning(f"{platform} search {name} failed for '{query}': {e}")
                continue
            found: list[ParsedVideo] = []
            for url in urls:
                parsed = parse_video_url(url)
                if parsed is None or parsed.platform != platform:
                    continue
                if any(p.external_id == parsed.external_id for p in found):
                    continue
                found.append(parsed)
                if len(found) >= limit:
                    break
            if found:
                logger.debug(f"{platform} search {name} found {len(found)} for '{query}'")
                return found
        return []

    async def search_platform(self, platform: str, title: str) -> list[ParsedVideo]:
        for query in search_queries(title):
            found = await self._search_urls(platform, query)
            if found:
                return found
        return []

    async def _candidates_for(self, platform: str, title: str,
                              channel: Optional[str]) -> list[Candidate]:
        parsed_list = await self.search_platform(platform, title)
        if not parsed_list:
            return []
        candidates = []
        for parsed in parsed_list:
            metadata = await self.resolver.resolve(parsed.platform, parsed.external_id)
            if metadata.is_stub or not is_acceptable(metadata):
                continue
            score = score_candidate(title, channel, metadata.title, metadata.channel_name,
                                    self.config.matching)
            logger.debug(
                f"Candidate {parsed.platform}:{parsed.external_id} {metadata.title!r} "
                f"channel={score.channel:.2f} title={score.title:.2f} accepted={score.accepted}"
            )
            candidates.append(Candidate(parsed, metadata, score))
        return candidates

    async def find_alternatives(self, title: str, channel: Optional[str],
                                owner_id: int, root_video_id: int) -> list[dict]:
        """Search, score and persist mirrors. Returns the newly stored rows."""
        results = await asyncio.gather(
            *(self._candidates_for(p, title, channel) for p in MIRROR_PLATFORMS),
            return_exceptions=True,
        )
        candidates: list[Candidate] = []
        for platform, result in zip(MIRROR_PLATFORMS, results):
            if isinstance(result, BaseException):
                logger.warning(f"Alternative search on {platform} failed for '{title}': {result}")
                continue
            candidates.extend(c for c in result if c.score.accepted)

        candidates.sort(key=lambda c: c.score.weighted, reverse=True)
        stored = []
        if candidates and self.store.get_video(root_video_id, user_id=owner_id) is None:
            logger.info(f"Video {root_video_id} was removed before its alternatives were found, skipping")
            return stored
        for c in candidates:
            if self.store.video_exists(owner_id, c.parsed.platform, c.parsed.external_id):
                continue
            try:
                row = self.store.add_video(
                    user_id=owner_id,
                    platform=c.parsed.platform,
                    external_id=c.parsed.external_id,
                    url=c.parsed.url,
                    title=c.metadata.title,
                    channel_name=c.metadata.channel_name,
                    thumbnail_url=c.metadata.thumbnail_url,
                    duration=c.metadata.duration,
                    parent_id=root_video_id,
                )
            except sqlite3.IntegrityError:
                logger.info(f"Video {root_video_id} was removed while storing alternatives, stopping")
                break
            stored.append(row)

        logger.info(f"Alternatives for '{title}': {len(candidates)} accepted, {len(stored)} stored")
        return stored
