"""Shared types and helpers for per-platform metadata sources."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, Optional

import httpx

from config import Config
from platforms.parser import PLATFORM_LABELS

logger = logging.getLogger(__name__)

STUB_SOURCE = "stub"

# Titles that mean "the page didn't tell us anything"
GENERIC_TITLES = frozenset({
    "unknown", "untitled", "video", "видео", "без названия",
    "youtube", "youtube video", "rutube", "rutube video",
    "vk", "vk video", "vk видео", "вконтакте", "видео вконтакте",
})

_GENERIC_TITLE_PATTERNS = [
    re.compile(r'^(?:vk|rutube|youtube) video\s+-?\d+(?:_\d+)?$', re.IGNORECASE),
    re.compile(r'^(?:вконтакте|vk)\s*[|:\-–]', re.IGNORECASE),
    re.compile(r'^(?:вход|login|sign in|ошибка|error)(?:\s*[|:\-–].*)?$', re.IGNORECASE),
    re.compile(r'^(?:untitled|без названия)\b', re.IGNORECASE),
]

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
}

CRAWLER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "ru-RU,ru;q=0.9",
}

JSON_HEADERS = {"Accept": "application/json"}


@dataclass
class Metadata:
    """Display metadata for one video. source names the strategy that produced it."""
    title: str
    channel_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    source: str = STUB_SOURCE

    @property
    def is_stub(self) -> bool:
        return self.source == STUB_SOURCE

    def to_dict(self) -> dict:
        return asdict(self)


Strategy = tuple[str, Callable[[str], Awaitable[Optional[Metadata]]]]
SearchStrategy = tuple[str, Callable[[str], Awaitable[list[str]]]]


def is_generic_title(title: Optional[str]) -> bool:
    """True for empty titles and placeholder/brand-only titles."""
    if not title:
        return True
    clean = " ".join(title.split()).strip()
    if not clean:
        return True
    if clean.casefold() in GENERIC_TITLES:
        return True
    return any(p.search(clean) for p in _GENERIC_TITLE_PATTERNS)


def positive_int(value) -> Optional[int]:
    """Coerce a duration-like value to a positive int, else None."""
    if isinstance(value, bool):
        return None
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def clean_text(value) -> Optional[str]:
    """Strip and entity-decode a text field; blank becomes None."""
    if not isinstance(value, str):
        return None
    text = html.unescape(value).strip()
    return text or None


# --- HTML pages ---

_META_CHARSET_RE = re.compile(rb'<meta[^>]+charset\s*=\s*["\']?([\w-]+)', re.IGNORECASE)


def detect_charset(content_type: str, body: bytes) -> Optional[str]:
    """Charset from the Content-Type header, else from a <meta> tag in the first 4KB."""
    if content_type:
        m = re.search(r'charset=([\w-]+)', content_type, re.IGNORECASE)
        if m:
            return m.group(1).lower()
    m = _META_CHARSET_RE.search(body[:4096])
    if m:
        return m.group(1).decode("ascii", "ignore").lower()
    return None


def decode_html(body: bytes, content_type: str = "") -> str:
    """Decode a page body honoring its declared charset.

    Undeclared pages are tried as UTF-8 first, then windows-1251.
    """
    charset = detect_charset(content_type, body)
    if charset:
        try:
            return body.decode(charset)
        except (LookupError, UnicodeDecodeError):
            logger.debug("Declared charset %s failed, guessing", charset)
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        return body.decode("cp1251", errors="replace")


def extract_meta(page: str, prop: str) -> Optional[str]:
    """Content of a <meta property|name="prop"> tag, in either attribute order."""
    name = re.escape(prop)
    patterns = (
        rf'<meta\s+[^>]*?(?:property|name)\s*=\s*["\']{name}["\'][^>]*?content\s*=\s*"([^"]*)"',
        rf'<meta\s+[^>]*?(?:property|name)\s*=\s*["\']{name}["\'][^>]*?content\s*=\s*\'([^\']*)\'',
        rf'<meta\s+[^>]*?content\s*=\s*"([^"]*)"[^>]*?(?:property|name)\s*=\s*["\']{name}["\']',
        rf'<meta\s+[^>]*?content\s*=\s*\'([^\']*)\'[^>]*?(?:property|name)\s*=\s*["\']{name}["\']',
    )
    for pattern in patterns:
        m = re.search(pattern, page, re.IGNORECASE)
        if m:
            return clean_text(m.group(1))
    return None


async def fetch_page(client: httpx.AsyncClient, url: str, headers: dict,
                     timeout: float) -> str:
    """GET an HTML page and return its decoded text. Raises on HTTP errors."""
    resp = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
    resp.raise_for_status()
    return decode_html(resp.content, resp.headers.get("content-type", ""))


# --- Platform source base ---

class PlatformSource:
    """One platform's ranked metadata strategies, stub and search chain.

    Subclasses set `platform` and implement `strategies()`. Strategies take
    an external id and return Metadata or None; they may raise, the resolver
    treats that as a failed strategy.
    """

    platform: str = ""

    def __init__(self, client: httpx.AsyncClient, config: Config):
        self.client = client
        self.config = config

    @property
    def label(self) -> str:
        return PLATFORM_LABELS[self.platform]

    @property
    def timeout(self) -> float:
        return self.config.resolver.request_timeout

    def strategies(self) -> list[Strategy]:
        raise NotImplementedError

    async def enrich(self, external_id: str, metadata: Metadata) -> Metadata:
        """Post-process an accepted result. Default: unchanged."""
        return metadata

    def stub_thumbnail(self, external_id: str) -> Optional[str]:
        return None

    def stub(self, external_id: str) -> Metadata:
        return Metadata(
            title=f"{self.label} Video",
            channel_name=self.label,
            thumbnail_url=self.stub_thumbnail(external_id),
            duration=None,
            source=STUB_SOURCE,
        )

    # Search: each strategy maps a query to candidate watch URLs
    search_site: str = ""

    def search_strategies(self) -> list[SearchStrategy]:
        return []

    async def _get_json(self, url: str, params: Optional[dict] = None,
                        headers: Optional[dict] = None, timeout: Optional[float] = None):
        resp = await self.client.get(
            url, params=params, headers=headers or JSON_HEADERS,
            timeout=timeout or self.timeout, follow_redirects=True,
        )
        resp.raise_for_status()
        return resp.json()
