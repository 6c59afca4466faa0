"""Recognize supported video links in free text.

Patterns are tried per platform in a fixed order (YouTube, Rutube, VK);
the first structural match wins. Anything else is simply not a video link.
"""

import re
from dataclasses import dataclass
from typing import Optional

YOUTUBE = "youtube"
RUTUBE = "rutube"
VK = "vk"

PLATFORM_LABELS = {
    YOUTUBE: "YouTube",
    RUTUBE: "Rutube",
    VK: "VK",
}

_YOUTUBE_PATTERNS = [
    re.compile(
        r'(?:https?://)?(?:www\.|m\.|music\.)?'
        r'(?:youtube\.com/(?:watch\?(?:[^\s#]*&)?v=|embed/|shorts/|live/)|youtu\.be/)'
        r'([a-zA-Z0-9_-]{11})'
    ),
]

_RUTUBE_PATTERNS = [
    re.compile(r'rutube\.ru/video/([a-f0-9]{32})'),
    re.compile(r'rutube\.ru/play/embed/([a-f0-9]{32})'),
]

_VK_PATTERNS = [
    re.compile(r'vk\.com/video(-?\d+)_(\d+)'),
    re.compile(r'vk\.com/video_ext\.php\?oid=(-?\d+)&(?:amp;)?id=(\d+)'),
    re.compile(r'vkvideo\.ru/video(-?\d+)_(\d+)'),
]

_VK_ID_RE = re.compile(r'^(-?\d+)_(\d+)$')


@dataclass(frozen=True)
class ParsedVideo:
    """A recognized link: platform, platform-native id and normalized URL."""
    platform: str
    external_id: str
    url: str


def canonical_url(platform: str, external_id: str) -> str:
    """Normalized watch URL for a platform id."""
    if platform == YOUTUBE:
        return f"https://youtube.com/watch?v={external_id}"
    if platform == RUTUBE:
        return f"https://rutube.ru/video/{external_id}/"
    if platform == VK:
        return f"https://vk.com/video{external_id}"
    raise ValueError(f"Unknown platform: {platform!r}")


def embed_url(platform: str, external_id: str) -> str:
    """Player URL the Mini App embeds for a platform id."""
    if platform == YOUTUBE:
        return f"https://www.youtube-nocookie.com/embed/{external_id}"
    if platform == RUTUBE:
        return f"https://rutube.ru/play/embed/{external_id}"
    if platform == VK:
        owner_id, video_id = split_vk_id(external_id)
        return f"https://vk.com/video_ext.php?oid={owner_id}&id={video_id}&hd=2"
    raise ValueError(f"Unknown platform: {platform!r}")


def split_vk_id(external_id: str) -> tuple[str, str]:
    """Split a VK "<owner>_<id>" external id into its two parts."""
    m = _VK_ID_RE.match(external_id or "")
    if not m:
        raise ValueError(f"Malformed VK video id: {external_id!r}")
    return m.group(1), m.group(2)


def parse_youtube_url(text: str) -> Optional[ParsedVideo]:
    for pattern in _YOUTUBE_PATTERNS:
        m = pattern.search(text)
        if m:
            video_id = m.group(1)
            return ParsedVideo(YOUTUBE, video_id, canonical_url(YOUTUBE, video_id))
    return None


def parse_rutube_url(text: str) -> Optional[ParsedVideo]:
    for pattern in _RUTUBE_PATTERNS:
        m = pattern.search(text)
        if m:
            video_id = m.group(1)
            return ParsedVideo(RUTUBE, video_id, canonical_url(RUTUBE, video_id))
    return None


def parse_vk_url(text: str) -> Optional[ParsedVideo]:
    for pattern in _VK_PATTERNS:
        m = pattern.search(text)
        if m:
            external_id = f"{m.group(1)}_{m.group(2)}"
            return ParsedVideo(VK, external_id, canonical_url(VK, external_id))
    return None


_PARSERS = (parse_youtube_url, parse_rutube_url, parse_vk_url)


def parse_video_url(raw_text: str) -> Optional[ParsedVideo]:
    """Find the first supported video link in raw_text, or None."""
    if not raw_text:
        return None
    text = raw_text.strip()
    for parser in _PARSERS:
        parsed = parser(text)
        if parsed:
            return parsed
    return None
