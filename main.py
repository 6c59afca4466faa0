#!/usr/bin/env python3
"""VidQueue - cross-platform watch queue for Telegram."""

import argparse
import asyncio
import logging
import signal

import uvicorn

from bot.telegram_bot import VidQueueBot
from config import Config, load_config
from data.ttl_cache import TTLCache
from data.video_store import VideoStore
from intake import VideoIntake
from matching.finder import AlternativeFinder
from matching.web_search import YandexWebSearch
from matching.worker import AlternativeSearchQueue
from platforms.resolver import MetadataResolver
from platforms.youtube import YouTubeStreamResolver
from web.app import app as fastapi_app
from web.middleware import InitDataAuthMiddleware, SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("vidqueue")


class VidQueue:
    """Main orchestrator - runs FastAPI + Telegram bot + alternative search workers."""

    def __init__(self, config: Config):
        self.config = config
        self.video_store = None
        self.resolver = None
        self.search_queue = None
        self.intake = None
        self.bot = None
        self.server = None
        self.running = False

    def _cache(self) -> TTLCache:
        return TTLCache(max_entries=self.config.cache.max_entries, ttl=self.config.cache.ttl)

    async def setup(self) -> None:
        """Initialize all components."""
        self.video_store = VideoStore(db_path=self.config.database.path)
        logger.info("Database initialized")

        self.resolver = MetadataResolver(self.config, cache=self._cache())
        web_search = YandexWebSearch.from_config(
            self.resolver.client, self.config.search,
            timeout=self.config.resolver.html_timeout,
        )
        finder = AlternativeFinder(self.video_store, self.resolver, self.config, web_search=web_search)
        self.search_queue = AlternativeSearchQueue(
            finder,
            workers=self.config.search.workers,
            max_size=self.config.search.queue_size,
        )
        self.intake = VideoIntake(self.video_store, self.resolver, self.search_queue)

        if self.config.telegram.bot_token:
            self.bot = VidQueueBot(
                bot_token=self.config.telegram.bot_token,
                intake=self.intake,
                video_store=self.video_store,
                config=self.config,
                thumbnail_cache=self._cache(),
            )
            logger.info("Telegram bot initialized")

        # Wire dependencies onto app.state
        state = fastapi_app.state
        state.video_store = self.video_store
        state.intake = self.intake
        state.stream_resolver = YouTubeStreamResolver(
            cache=self._cache(),
            timeout=self.config.resolver.ydl_timeout,
            proxy=self.config.resolver.proxy,
        )

        # Middleware (last added = first executed)
        fastapi_app.add_middleware(
            InitDataAuthMiddleware,
            bot_token=self.config.telegram.bot_token,
            max_age=self.config.web.init_data_max_age,
        )
        fastapi_app.add_middleware(SecurityHeadersMiddleware)

        logger.info("Web app initialized")

    async def run(self) -> None:
        """Start everything."""
        self.running = True
        await self.setup()

        self.search_queue.start()

        if self.bot:
            await self.bot.start()

        config = uvicorn.Config(
            fastapi_app,
            host=self.config.web.host,
            port=self.config.web.port,
            log_level="info",
        )
        self.server = uvicorn.Server(config)

        stats = self.video_store.get_stats()
        logger.info(
            f"VidQueue started - {stats['users']} users, {stats['videos']} videos, "
            f"{stats['mirrors']} mirrors"
        )

        try:
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("Server cancelled")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop all components."""
        if not self.running:
            return
        self.running = False
        if self.server:
            self.server.should_exit = True
        if self.bot:
            await self.bot.stop()
        if self.search_queue:
            await self.search_queue.stop()
        if self.resolver:
            await self.resolver.aclose()
        if self.video_store:
            self.video_store.close()
        logger.info("VidQueue stopped")


async def main() -> None:
    parser = argparse.ArgumentParser(description="VidQueue")
    parser.add_argument("-c", "--config", help="Path to config file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    app = VidQueue(config)

    loop = asyncio.get_running_loop()

    def signal_handler():
        if app.server:
            app.server.should_exit = True

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            signal.signal(sig, lambda s, f: signal_handler())

    try:
        await app.run()
    except KeyboardInterrupt:
        await app.stop()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
