"""Shared pytest fixtures for VidQueue tests."""

import json

import httpx
import pytest

from config import Config, WebConfig, TelegramConfig, DatabaseConfig, ResolverConfig, SearchConfig
from data.video_store import VideoStore

BOT_TOKEN = "123456:TEST-token"


@pytest.fixture
def video_store(tmp_path):
    """VideoStore backed by a temp-dir SQLite file (not :memory: due to Path.mkdir in __init__)."""
    db = tmp_path / "test.db"
    store = VideoStore(db_path=str(db))
    yield store
    store.close()


@pytest.fixture
def user(video_store):
    """A registered user row."""
    return video_store.upsert_user(1001, username="alice", first_name="Alice")


@pytest.fixture
def sample_config(tmp_path):
    """Minimal Config with safe defaults for testing."""
    return Config(
        web=WebConfig(host="127.0.0.1", port=9999, mini_app_url="https://example.org/app"),
        telegram=TelegramConfig(bot_token=BOT_TOKEN),
        database=DatabaseConfig(path=str(tmp_path / "test.db")),
        resolver=ResolverConfig(
            request_timeout=1.0, html_timeout=1.0, mirror_timeout=1.0, chain_timeout=5.0,
            invidious_instances=["https://inv.example"],
        ),
        search=SearchConfig(max_candidates=3),
    )


@pytest.fixture
def config_yaml(tmp_path):
    """Write a minimal config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text("""\
web:
  host: 0.0.0.0
  port: 8080
  mini_app_url: "https://example.org/app"
telegram:
  bot_token: "fake:token123"
database:
  path: "{db_path}"
resolver:
  request_timeout: 6
  proxy: ""
vk:
  service_token: "  "
search:
  yandex_api_key: "key"
  yandex_folder_id: "folder"
  workers: 3
matching:
  title_threshold: 0.5
cache:
  ttl: 60
""".format(db_path=str(tmp_path / "cfg_test.db")))
    return cfg


def json_response(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode(),
                          headers={"content-type": "application/json"})


def mock_client(routes: dict) -> httpx.AsyncClient:
    """AsyncClient answering from {(host, path): handler-or-response}.

    Unknown routes get a 404. A handler may be a callable taking the request.
    Every request is recorded on client.calls.
    """
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        route = routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client.calls = calls
    return client
