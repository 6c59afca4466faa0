"""Tests for web/deps.py — dependency injection from app.state / request.state."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from web.deps import (
    get_current_user,
    get_intake,
    get_owner_store,
    get_stream_resolver,
    get_video_store,
)


def _make_request(state_attrs=None, user=None):
    """Build a fake Request with app.state and request.state."""
    state = SimpleNamespace(**(state_attrs or {}))
    app = SimpleNamespace(state=state)
    req_state = SimpleNamespace(user=user) if user is not None else SimpleNamespace()
    return SimpleNamespace(app=app, state=req_state)


class TestAppState:
    @pytest.mark.parametrize("attr, dep", [
        ("video_store", get_video_store),
        ("intake", get_intake),
        ("stream_resolver", get_stream_resolver),
    ])
    def test_returns_object_from_state(self, attr, dep):
        obj = MagicMock()
        assert dep(_make_request({attr: obj})) is obj


class TestCurrentUser:
    def test_user_from_request_state(self):
        user = {"id": 7, "telegram_id": 1001}
        assert get_current_user(_make_request(user=user)) is user

    def test_missing_user_is_401(self):
        with pytest.raises(HTTPException) as exc:
            get_current_user(_make_request())
        assert exc.value.status_code == 401

    def test_owner_store_scoped_to_user(self):
        store = MagicMock()
        owner = get_owner_store(_make_request({"video_store": store}, user={"id": 7}))
        assert owner.user_id == 7
        owner.list_videos()
        store.list_videos.assert_called_once_with(7)
