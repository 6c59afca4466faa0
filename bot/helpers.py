"""Shared bot helpers: markdown formatting, reply text, Mini App button."""

from typing import Optional

import telegramify_markdown
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from platforms.parser import PLATFORM_LABELS
from utils import format_duration, truncate

MD2 = "MarkdownV2"

_TITLE_LIMIT = 200


def _md(text: str) -> str:
    """Convert markdown to Telegram MarkdownV2 format."""
    try:
        return telegramify_markdown.markdownify(text)
    except Exception:
        return text


def _escape(text: str) -> str:
    """Neutralize markdown control characters in user/platform supplied text."""
    for ch in ("\\", "*", "_", "`", "[", "]"):
        text = text.replace(ch, f"\\{ch}")
    return text


def queue_button(mini_app_url: str, label: str = "Open queue") -> Optional[InlineKeyboardMarkup]:
    """Inline button that opens the Mini App, or None when no URL is configured."""
    if not mini_app_url:
        return None
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(label, web_app=WebAppInfo(url=mini_app_url)),
    ]])


def video_added_text(video: dict) -> str:
    """Reply shown after a link was queued."""
    platform = PLATFORM_LABELS.get(video.get("platform", ""), video.get("platform", ""))
    lines = [
        "**Added to your queue**",
        "",
        f"**{_escape(truncate(video.get('title') or '', _TITLE_LIMIT))}**",
    ]
    channel = video.get("channel_name")
    if channel:
        lines.append(_escape(channel))
    details = platform
    if video.get("duration"):
        details += f" · {format_duration(video['duration'])}"
    lines.append(details)
    return _md("\n".join(lines))


def already_queued_text(video: dict) -> str:
    title = _escape(truncate(video.get("title") or "", _TITLE_LIMIT))
    return _md(f"Already in your queue: **{title}**")
