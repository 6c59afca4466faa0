"""Tests for platforms/parser.py — link recognition and URL normalization."""

import pytest

from platforms.parser import (
    ParsedVideo, canonical_url, embed_url, parse_video_url, split_vk_id,
)

YT_ID = "dQw4w9WgXcQ"
RT_ID = "0123456789abcdef0123456789abcdef"


class TestYouTube:
    @pytest.mark.parametrize("text", [
        f"https://www.youtube.com/watch?v={YT_ID}",
        f"https://youtube.com/watch?v={YT_ID}&t=42s",
        f"https://www.youtube.com/watch?feature=share&v={YT_ID}",
        f"https://m.youtube.com/watch?v={YT_ID}",
        f"https://music.youtube.com/watch?v={YT_ID}&list=RD",
        f"https://youtu.be/{YT_ID}?si=abc",
        f"https://www.youtube.com/embed/{YT_ID}",
        f"https://youtube.com/shorts/{YT_ID}",
        f"https://www.youtube.com/live/{YT_ID}",
        f"look at this youtu.be/{YT_ID} lol",
    ])
    def test_forms_normalize_to_watch_url(self, text):
        assert parse_video_url(text) == ParsedVideo(
            "youtube", YT_ID, f"https://youtube.com/watch?v={YT_ID}",
        )

    def test_short_id_not_matched(self):
        assert parse_video_url("https://youtu.be/short") is None


class TestRutube:
    @pytest.mark.parametrize("text", [
        f"https://rutube.ru/video/{RT_ID}/",
        f"https://rutube.ru/video/{RT_ID}/?r=wd",
        f"https://rutube.ru/play/embed/{RT_ID}",
    ])
    def test_forms(self, text):
        parsed = parse_video_url(text)
        assert parsed.platform == "rutube"
        assert parsed.external_id == RT_ID
        assert parsed.url == f"https://rutube.ru/video/{RT_ID}/"

    def test_uppercase_hex_not_matched(self):
        assert parse_video_url(f"https://rutube.ru/video/{RT_ID.upper()}/") is None


class TestVK:
    @pytest.mark.parametrize("text,external_id", [
        ("https://vk.com/video-12345_456239017", "-12345_456239017"),
        ("https://vk.com/video12345_67", "12345_67"),
        ("https://vk.com/video_ext.php?oid=-12345&id=456239017&hd=2", "-12345_456239017"),
        ("https://vkvideo.ru/video-220754053_456243085", "-220754053_456243085"),
        ("https://m.vk.com/video-1_2?list=x", "-1_2"),
    ])
    def test_forms(self, text, external_id):
        parsed = parse_video_url(text)
        assert parsed.platform == "vk"
        assert parsed.external_id == external_id
        assert parsed.url == f"https://vk.com/video{external_id}"

    def test_split_vk_id(self):
        assert split_vk_id("-12345_67") == ("-12345", "67")
        with pytest.raises(ValueError):
            split_vk_id("12345")


class TestNoMatch:
    @pytest.mark.parametrize("text", [
        "", "hello", "https://example.com/video/1", "https://vimeo.com/12345",
        "https://vk.com/wall-1_2",
    ])
    def test_returns_none(self, text):
        assert parse_video_url(text) is None

    def test_none_input(self):
        assert parse_video_url(None) is None


class TestPriority:
    def test_first_platform_wins(self):
        text = f"https://rutube.ru/video/{RT_ID}/ and https://youtu.be/{YT_ID}"
        assert parse_video_url(text).platform == "youtube"


class TestUrls:
    def test_canonical_urls(self):
        assert canonical_url("youtube", YT_ID) == f"https://youtube.com/watch?v={YT_ID}"
        assert canonical_url("rutube", RT_ID) == f"https://rutube.ru/video/{RT_ID}/"
        assert canonical_url("vk", "-1_2") == "https://vk.com/video-1_2"

    def test_embed_urls(self):
        assert embed_url("youtube", YT_ID) == f"https://www.youtube-nocookie.com/embed/{YT_ID}"
        assert embed_url("rutube", RT_ID) == f"https://rutube.ru/play/embed/{RT_ID}"
        assert embed_url("vk", "-1_2") == "https://vk.com/video_ext.php?oid=-1&id=2&hd=2"

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            canonical_url("vimeo", "1")
