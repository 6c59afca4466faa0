"""Configuration management for VidQueue."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in strings, dicts, and lists.

    Supports both ${VAR} and $VAR patterns.
    """
    if isinstance(value, str):
        # Expand ${VAR} pattern
        pattern = re.compile(r'\$\{([^}]+)\}')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), value)
        # Expand $VAR pattern
        pattern = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), result)
        return result
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    else:
        return value


def _optional(value: Optional[str]) -> Optional[str]:
    """Normalize an optional credential: blank or whitespace-only means absent."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "")
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_INVIDIOUS_INSTANCES = [
    "https://invidious.privacydev.net",
    "https://yt.cdaut.de",
    "https://invidious.nerdvpn.de",
    "https://iv.ergy.fr",
    "https://invidious.fdn.fr",
]


@dataclass
class WebConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    mini_app_url: str = ""  # Telegram Mini App URL, shown as a button in bot replies
    init_data_max_age: int = 86400  # seconds; 0 = accept any auth_date

    def __post_init__(self):
        if not self.mini_app_url:
            self.mini_app_url = os.environ.get("VQ_MINI_APP_URL", "")


@dataclass
class TelegramConfig:
    """Telegram bot configuration. The bot token is also the init-data signing key."""
    bot_token: str = ""


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "db/videos.db"


@dataclass
class ResolverConfig:
    """Metadata resolution: timeouts, proxy, duration mirrors."""
    request_timeout: float = 8.0  # seconds per API/oEmbed request
    html_timeout: float = 10.0  # seconds per scraped page
    mirror_timeout: float = 5.0  # seconds per Invidious instance
    chain_timeout: float = 45.0  # seconds for a whole resolution, then stub
    proxy: Optional[str] = None  # outbound proxy for platform requests and yt-dlp
    ydl_timeout: int = 30  # seconds for stream URL lookups
    invidious_instances: list[str] = field(default_factory=lambda: list(DEFAULT_INVIDIOUS_INSTANCES))

    def __post_init__(self):
        self.proxy = _optional(self.proxy)


@dataclass
class VKConfig:
    """VK API access. Without a service token the API strategies are skipped."""
    service_token: Optional[str] = None
    api_version: str = "5.199"

    def __post_init__(self):
        self.service_token = _optional(self.service_token)

    @property
    def has_token(self) -> bool:
        return self.service_token is not None


@dataclass
class SearchConfig:
    """Alternative-video search: web search credentials and worker sizing."""
    yandex_api_key: Optional[str] = None
    yandex_folder_id: Optional[str] = None
    max_candidates: int = 3  # per platform, per search
    poll_attempts: int = 10
    poll_interval: float = 1.0  # seconds between Yandex operation polls
    workers: int = 2
    queue_size: int = 100

    def __post_init__(self):
        self.yandex_api_key = _optional(self.yandex_api_key)
        self.yandex_folder_id = _optional(self.yandex_folder_id)

    @property
    def has_web_search(self) -> bool:
        return self.yandex_api_key is not None and self.yandex_folder_id is not None


@dataclass
class MatchingConfig:
    """Fuzzy-match thresholds for cross-platform mirrors. Tuned empirically."""
    channel_threshold: float = 0.45
    title_threshold: float = 0.4
    channel_weight: float = 0.4
    title_weight: float = 0.6
    near_match_ratio: float = 0.8  # edit-distance ratio for a near-identical title word
    containment_score: float = 0.85  # channel name contained in the other
    min_token_length: int = 3  # title words shorter than this are ignored


@dataclass
class CacheConfig:
    """In-memory caches (metadata, thumbnails, stream URLs)."""
    ttl: int = 3600  # seconds
    max_entries: int = 500


@dataclass
class Config:
    """Main configuration container."""
    web: WebConfig = field(default_factory=WebConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    vk: VKConfig = field(default_factory=VKConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from YAML file with environment variable expansion."""
        path = Path(path)
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        # Expand environment variables
        expanded = expand_env_vars(raw_config)

        return cls(
            web=WebConfig(**(expanded.get("web") or {})),
            telegram=TelegramConfig(**(expanded.get("telegram") or {})),
            database=DatabaseConfig(**(expanded.get("database") or {})),
            resolver=ResolverConfig(**(expanded.get("resolver") or {})),
            vk=VKConfig(**(expanded.get("vk") or {})),
            search=SearchConfig(**(expanded.get("search") or {})),
            matching=MatchingConfig(**(expanded.get("matching") or {})),
            cache=CacheConfig(**(expanded.get("cache") or {})),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration directly from environment variables."""
        return cls(
            web=WebConfig(
                host=os.environ.get("VQ_WEB_HOST", "0.0.0.0"),
                port=int(os.environ.get("VQ_WEB_PORT", "8080")),
                mini_app_url=os.environ.get("VQ_MINI_APP_URL", ""),
                init_data_max_age=int(os.environ.get("VQ_INIT_DATA_MAX_AGE", "86400")),
            ),
            telegram=TelegramConfig(
                bot_token=os.environ.get("VQ_BOT_TOKEN", ""),
            ),
            database=DatabaseConfig(
                path=os.environ.get("VQ_DB_PATH", "db/videos.db"),
            ),
            resolver=ResolverConfig(
                request_timeout=float(os.environ.get("VQ_REQUEST_TIMEOUT", "8")),
                html_timeout=float(os.environ.get("VQ_HTML_TIMEOUT", "10")),
                mirror_timeout=float(os.environ.get("VQ_MIRROR_TIMEOUT", "5")),
                chain_timeout=float(os.environ.get("VQ_CHAIN_TIMEOUT", "45")),
                proxy=os.environ.get("VQ_PROXY"),
                ydl_timeout=int(os.environ.get("VQ_YDL_TIMEOUT", "30")),
                invidious_instances=_env_list("VQ_INVIDIOUS_INSTANCES", DEFAULT_INVIDIOUS_INSTANCES),
            ),
            vk=VKConfig(
                service_token=os.environ.get("VQ_VK_SERVICE_TOKEN"),
                api_version=os.environ.get("VQ_VK_API_VERSION", "5.199"),
            ),
            search=SearchConfig(
                yandex_api_key=os.environ.get("VQ_YANDEX_API_KEY"),
                yandex_folder_id=os.environ.get("VQ_YANDEX_FOLDER_ID"),
                max_candidates=int(os.environ.get("VQ_SEARCH_MAX_CANDIDATES", "3")),
                workers=int(os.environ.get("VQ_SEARCH_WORKERS", "2")),
                queue_size=int(os.environ.get("VQ_SEARCH_QUEUE_SIZE", "100")),
            ),
            matching=MatchingConfig(
                channel_threshold=float(os.environ.get("VQ_CHANNEL_THRESHOLD", "0.45")),
                title_threshold=float(os.environ.get("VQ_TITLE_THRESHOLD", "0.4")),
            ),
            cache=CacheConfig(
                ttl=int(os.environ.get("VQ_CACHE_TTL", "3600")),
                max_entries=int(os.environ.get("VQ_CACHE_MAX_ENTRIES", "500")),
            ),
        )


def load_config(config_path: str | None = None) -> Config:
    """Load configuration from file or environment.

    Tries in order:
    1. Provided config_path
    2. Default paths: config.yaml, config.yml
    3. Environment variables (fallback)
    """
    config: Config | None = None

    if config_path:
        path = Path(config_path)
        if path.exists():
            config = Config.from_yaml(path)
        else:
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        # Try default paths
        for default_path in ["config.yaml", "config.yml"]:
            path = Path(default_path)
            if path.exists():
                config = Config.from_yaml(path)
                break

    if config is None:
        # Fallback to environment variables
        config = Config.from_env()

    if not config.telegram.bot_token:
        logger.warning("telegram.bot_token is empty; bot disabled and every API request will be rejected")
    if not config.vk.has_token:
        logger.info("vk.service_token not set, VK API strategies will be skipped")
    if not config.search.has_web_search:
        logger.info("Yandex search credentials not set, web search fallback disabled")

    m = config.matching
    for name in ("channel_threshold", "title_threshold", "near_match_ratio"):
        value = getattr(m, name)
        if not 0.0 <= value <= 1.0:
            logger.warning("matching.%s=%r outside [0, 1], resetting to default", name, value)
            setattr(m, name, getattr(MatchingConfig(), name))

    return config
