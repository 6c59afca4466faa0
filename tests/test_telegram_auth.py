"""Tests for web/telegram_auth.py — Mini App init-data verification."""

import json
from urllib.parse import urlencode

import pytest

from conftest import BOT_TOKEN
from web.telegram_auth import TelegramUser, parse_user, sign, verify_init_data

NOW = 1_700_000_000


def signed_init_data(user=None, auth_date=NOW, token=BOT_TOKEN, **extra) -> str:
    params = {"auth_date": str(auth_date), "query_id": "AAH", **extra}
    if user is not None:
        params["user"] = json.dumps(user)
    params["hash"] = sign(params, token)
    return urlencode(params)


ALICE = {"id": 1001, "first_name": "Alice", "username": "alice"}


class TestVerifyInitData:
    def test_valid(self):
        result = verify_init_data(signed_init_data(ALICE), BOT_TOKEN)
        assert result.valid
        assert result.user == TelegramUser(id=1001, username="alice", first_name="Alice")
        assert result.error is None

    def test_valid_without_user(self):
        result = verify_init_data(signed_init_data(), BOT_TOKEN)
        assert result.valid
        assert result.user is None

    def test_tampered_field(self):
        data = signed_init_data(ALICE).replace("1001", "1002")
        result = verify_init_data(data, BOT_TOKEN)
        assert not result.valid
        assert result.error == "invalid signature"

    def test_signed_with_other_token(self):
        result = verify_init_data(signed_init_data(ALICE, token="999:other"), BOT_TOKEN)
        assert result.error == "invalid signature"

    @pytest.mark.parametrize("init_data, token, error", [
        (None, BOT_TOKEN, "missing init data"),
        ("", BOT_TOKEN, "missing init data"),
        ("auth_date=1", "", "bot token not configured"),
        ("auth_date=1&user=%7B%7D", BOT_TOKEN, "missing hash"),
    ])
    def test_rejections(self, init_data, token, error):
        result = verify_init_data(init_data, token)
        assert not result.valid
        assert result.error == error

    def test_max_age(self):
        data = signed_init_data(ALICE, auth_date=NOW - 100)
        assert verify_init_data(data, BOT_TOKEN, max_age=200, now=NOW).valid
        expired = verify_init_data(data, BOT_TOKEN, max_age=50, now=NOW)
        assert expired.error == "init data expired"

    def test_max_age_without_auth_date(self):
        params = {"user": json.dumps(ALICE)}
        params["hash"] = sign(params, BOT_TOKEN)
        result = verify_init_data(urlencode(params), BOT_TOKEN, max_age=60, now=NOW)
        assert result.error == "missing auth_date"

    def test_max_age_disabled(self):
        data = signed_init_data(ALICE, auth_date=1)
        assert verify_init_data(data, BOT_TOKEN, max_age=0, now=NOW).valid


class TestParseUser:
    @pytest.mark.parametrize("raw", [
        None, "", "not json", "[1, 2]", '{"id": "1001"}', '{"id": true}', '{"name": "x"}',
    ])
    def test_malformed(self, raw):
        assert parse_user(raw) is None

    def test_non_string_names_dropped(self):
        user = parse_user('{"id": 5, "username": 42, "first_name": "Bo", "last_name": null}')
        assert user == TelegramUser(id=5, first_name="Bo")
