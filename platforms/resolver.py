from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional, Protocol, runtime_checkable

import httpx

from config import Config
from data.ttl_cache import CacheProtocol, NullCache
from platforms.base import STUB_SOURCE, Metadata, PlatformSource, is_generic_title
from platforms.parser import RUTUBE, VK, YOUTUBE
from platforms.rutube import RutubeSource
from platforms.vk import VKSource
from platforms.youtube import YouTubeSource

logger = logging.getLogger(__name__)


def is_acceptable(metadata: Optional[Metadata]) -> bool:
    """A strategy result counts only with a real, non-placeholder title."""
    return metadata is not None and not is_generic_title(metadata.title)


def build_http_client(config: Config) -> httpx.AsyncClient:
    """Shared client for every platform request, routed through the configured proxy."""
    return httpx.AsyncClient(
        proxy=config.resolver.proxy,
        timeout=config.resolver.request_timeout,
        headers={"Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7"},
    )


@runtime_checkable
class MetadataResolverProtocol(Protocol):
    """Protocol for metadata resolution, for type hints and test doubles."""

    async def resolve(self, platform: str, external_id: str) -> Metadata: ...


class MetadataResolver:
    """Walks each platform's ranked strategies; always returns Metadata.

    The first acceptable result wins and is then enriched by its source.
    Failures of any kind fall through to the next strategy and, at the end
    of the chain or after the aggregate timeout, to the platform stub.
    """

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None,
                 cache: Optional[CacheProtocol] = None):
        self.config = config
        self._owns_client = client is None
        self.client = client if client is not None else build_http_client(config)
        self.cache = cache if cache is not None else NullCache()
        self.sources: dict[str, PlatformSource] = {
            YOUTUBE: YouTubeSource(self.client, config),
            RUTUBE: RutubeSource(self.client, config),
            VK: VKSource(self.client, config),
        }

    def source(self, platform: str) -> PlatformSource:
        try:
            return self.sources[platform]
        except KeyError:
            raise ValueError(f"Unknown platform: {platform!r}") from None

    async def resolve(self, platform: str, external_id: str) -> Metadata:
        if platform not in self.sources:
            logger.error(f"No metadata source for platform {platform!r} ({external_id})")
            return Metadata(title="Video", source=STUB_SOURCE)
        source = self.sources[platform]
        key = (platform, external_id)
        cached = self.cache.get(key)
        if cached is not None:
            return dataclasses.replace(cached)

        try:
            metadata = await asyncio.wait_for(
                self._run_chain(source, external_id),
                timeout=self.config.resolver.chain_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Metadata chain timed out for {platform}:{external_id}")
            metadata = None

        if metadata is None:
            logger.info(f"Using stub metadata for {platform}:{external_id}")
            return source.stub(external_id)

        self.cache.set(key, dataclasses.replace(metadata))
        return metadata

    async def _run_chain(self, source: PlatformSource, external_id: str) -> Optional[Metadata]:
        for name, strategy in source.strategies():
            try:
                result = await strategy(external_id)
            except Exception as e:
                logger.warning(f"{source.platform}:{external_id} strategy {name} failed: {e}")
                continue
            if not is_acceptable(result):
                title = result.title if result else None
                logger.info(f"{source.platform}:{external_id} strategy {name} rejected (title={title!r})")
                continue
            result.source = name
            try:
                result = await source.enrich(external_id, result)
            except Exception as e:
                logger.warning(f"{source.platform}:{external_id} enrichment failed: {e}")
            logger.debug(f"{source.platform}:{external_id} resolved by {name}: {result.title!r}")
            return result
        return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
