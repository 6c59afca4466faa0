"""Verification of Telegram Mini App init data.

The Mini App sends the raw `initData` query string in the
X-Telegram-Init-Data header. It is signed by Telegram with a key derived
from the bot token, so only the bot's own server can verify it.
"""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl

logger = logging.getLogger(__name__)

INIT_DATA_HEADER = "X-Telegram-Init-Data"


@dataclass(frozen=True)
class TelegramUser:
    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True)
class InitDataResult:
    valid: bool
    user: Optional[TelegramUser] = None
    error: Optional[str] = None


def data_check_string(params: dict) -> str:
    """key=value lines sorted by key, excluding `hash`."""
    return "\n".join(f"{k}={v}" for k, v in sorted(params.items()) if k != "hash")


def sign(params: dict, bot_token: str) -> str:
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(secret, data_check_string(params).encode(), hashlib.sha256).hexdigest()


def _str_or_none(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_user(raw: Optional[str]) -> Optional[TelegramUser]:
    """The `user` JSON field; anything malformed yields no user."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("id")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None
    return TelegramUser(
        id=user_id,
        username=_str_or_none(data.get("username")),
        first_name=_str_or_none(data.get("first_name")),
        last_name=_str_or_none(data.get("last_name")),
    )


def verify_init_data(init_data: Optional[str], bot_token: str, max_age: int = 0,
                     now: Optional[float] = None) -> InitDataResult:
    """Check the init-data signature and extract the user.

    max_age > 0 additionally rejects payloads whose auth_date is older than
    max_age seconds.
    """
    if not init_data:
        return InitDataResult(False, error="missing init data")
    if not bot_token:
        return InitDataResult(False, error="bot token not configured")

    params = dict(parse_qsl(init_data, keep_blank_values=True))
    received = params.get("hash")
    if not received:
        return InitDataResult(False, error="missing hash")

    expected = sign(params, bot_token)
    if not hmac.compare_digest(expected, received):
        return InitDataResult(False, error="invalid signature")

    if max_age:
        try:
            auth_date = int(params.get("auth_date", ""))
        except ValueError:
            return InitDataResult(False, error="missing auth_date")
        current = time.time() if now is None else now
        if current - auth_date > max_age:
            return InitDataResult(False, error="init data expired")

    return InitDataResult(True, user=parse_user(params.get("user")))
