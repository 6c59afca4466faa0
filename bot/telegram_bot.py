"""VidQueue Telegram Bot - queue videos by sending links."""

import logging
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

import aiohttp
from telegram import Update
from telegram.ext import (
    ApplicationBuilder, CommandHandler,
    ContextTypes, MessageHandler, filters,
)

from bot.helpers import MD2, _md, already_queued_text, queue_button, video_added_text
from data.ttl_cache import CacheProtocol, NullCache
from intake import AlreadyQueuedError, UnrecognizedLinkError

logger = logging.getLogger(__name__)

# Thumbnails larger than this are sent as text-only replies
_MAX_THUMB_BYTES = 5_000_000


class VidQueueBot:
    """Telegram front end: every text message is treated as a link to queue."""

    def __init__(self, bot_token: str, intake, video_store, config=None,
                 thumbnail_cache: Optional[CacheProtocol] = None):
        self.bot_token = bot_token
        self.intake = intake
        self.video_store = video_store
        self.config = config
        self.thumbnail_cache = thumbnail_cache if thumbnail_cache is not None else NullCache()
        self._app = None

    @property
    def mini_app_url(self) -> str:
        return self.config.web.mini_app_url if self.config else ""

    def _register_user(self, update: Update) -> dict:
        tg = update.effective_user
        return self.video_store.upsert_user(
            tg.id, username=tg.username, first_name=tg.first_name, last_name=tg.last_name,
        )

    async def start(self) -> None:
        """Start the bot."""
        logger.info("Starting VidQueue bot...")
        from telegram.request import HTTPXRequest
        request = HTTPXRequest(
            connect_timeout=10.0, read_timeout=15.0, write_timeout=15.0,
            connection_pool_size=10, pool_timeout=5.0,
        )
        self._app = ApplicationBuilder().token(self.bot_token).request(request).build()

        self._app.add_handler(CommandHandler("start", self._cmd_start))
        self._app.add_handler(CommandHandler("help", self._cmd_help))
        self._app.add_handler(CommandHandler("queue", self._cmd_queue))
        self._app.add_handler(MessageHandler(
            filters.TEXT & ~filters.COMMAND, self._handle_text,
        ))

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)
        logger.info("VidQueue bot started")

    async def stop(self) -> None:
        """Stop the bot."""
        if self._app:
            logger.info("Stopping VidQueue bot...")
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            logger.info("VidQueue bot stopped")

    # --- Commands ---

    async def _cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Welcome message on first /start contact."""
        self._register_user(update)
        from version import __version__
        await update.message.reply_text(
            _md(
                f"**VidQueue v{__version__}**\n\n"
                "Send me a link from YouTube, Rutube or VK and I'll add it to "
                "your watch queue. Your place in each video is remembered.\n\n"
                "Use `/help` to see all available commands."
            ),
            parse_mode=MD2,
            reply_markup=queue_button(self.mini_app_url),
        )

    async def _cmd_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await update.message.reply_text(
            _md(
                "**Commands:**\n"
                "`/start` - Welcome message\n"
                "`/queue` - Open your queue\n"
                "`/help` - Show this message\n\n"
                "**Supported links:**\n"
                "youtube.com, youtu.be, rutube.ru, vk.com, vkvideo.ru"
            ),
            parse_mode=MD2,
        )

    async def _cmd_queue(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = self._register_user(update)
        videos = self.video_store.list_videos(user["id"])
        unwatched = sum(1 for v in videos if not v["is_watched"])
        text = _md(f"**{len(videos)}** video(s) in your queue, **{unwatched}** unwatched.")
        markup = queue_button(self.mini_app_url)
        if markup is None:
            text += "\n" + _md("_The player is not configured yet._")
        await update.message.reply_text(text, parse_mode=MD2, reply_markup=markup)

    # --- Links ---

    async def _handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return
        user = self._register_user(update)
        try:
            video = await self.intake.add_link(user["id"], update.message.text)
        except UnrecognizedLinkError:
            await update.message.reply_text(
                "That doesn't look like a YouTube, Rutube or VK video link."
            )
            return
        except AlreadyQueuedError as e:
            await update.message.reply_text(
                already_queued_text(e.video), parse_mode=MD2,
                reply_markup=queue_button(self.mini_app_url),
            )
            return
        except Exception as e:
            logger.error(f"Failed to add link for user {user['id']}: {e}")
            await update.message.reply_text("Couldn't add that video. Please try again later.")
            return

        await self._reply_video(update, video)

    async def _fetch_thumbnail(self, url: str) -> Optional[bytes]:
        """Thumbnail bytes (cached), or None if unavailable."""
        cached = self.thumbnail_cache.get(url)
        if cached is not None:
            return cached
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return None
        timeout = aiohttp.ClientTimeout(total=10)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as resp:
                if resp.status != 200:
                    return None
                data = await resp.read()
        if not data or len(data) > _MAX_THUMB_BYTES:
            return None
        self.thumbnail_cache.set(url, data)
        return data

    async def _reply_video(self, update: Update, video: dict) -> None:
        caption = video_added_text(video)
        markup = queue_button(self.mini_app_url)
        thumbnail_url = video.get("thumbnail_url")
        if thumbnail_url:
            try:
                photo = await self._fetch_thumbnail(thumbnail_url)
                if photo:
                    await update.message.reply_photo(
                        photo=BytesIO(photo), caption=caption,
                        parse_mode=MD2, reply_markup=markup,
                    )
                    return
            except Exception as e:
                logger.warning(f"Failed to send thumbnail: {e}")

        # Fallback: send text message without photo
        await update.message.reply_text(caption, parse_mode=MD2, reply_markup=markup)
