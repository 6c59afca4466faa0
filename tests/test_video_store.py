"""Tests for data/video_store.py — users, queue CRUD, families, canonical progress."""

import sqlite3

import pytest

from data.owner_store import OwnerStore
from data.video_store import MAX_POSITION_SECONDS

YT_ID = "dQw4w9WgXcQ"
RT_ID = "a" * 32


def _add(store, user_id, platform="youtube", external_id=YT_ID, **kw):
    kw.setdefault("title", f"Video {external_id}")
    return store.add_video(user_id, platform, external_id,
                           url=f"https://example.org/{external_id}", **kw)


class TestUsers:
    def test_upsert_creates_then_refreshes(self, video_store):
        u1 = video_store.upsert_user(42, username="old", first_name="A")
        u2 = video_store.upsert_user(42, username="new", first_name="B", last_name="C")
        assert u1["id"] == u2["id"]
        assert u2["username"] == "new"
        assert u2["last_name"] == "C"
        assert video_store.get_user_by_telegram_id(42)["username"] == "new"

    def test_unknown_user(self, video_store):
        assert video_store.get_user_by_telegram_id(999) is None


class TestVideoCRUD:
    def test_add_and_list(self, video_store, user):
        v = _add(video_store, user["id"], duration=212, channel_name="Ch")
        assert v["platform"] == "youtube"
        assert v["is_watched"] == 0
        assert v["parent_id"] is None
        assert video_store.list_videos(user["id"])[0]["id"] == v["id"]

    def test_add_duplicate_returns_existing(self, video_store, user):
        v1 = _add(video_store, user["id"], title="Original")
        v2 = _add(video_store, user["id"], title="Different")
        assert v1["id"] == v2["id"]
        assert v2["title"] == "Original"
        assert len(video_store.list_videos(user["id"])) == 1

    def test_same_video_for_two_users(self, video_store, user):
        other = video_store.upsert_user(2002)
        _add(video_store, user["id"])
        _add(video_store, other["id"])
        assert len(video_store.list_videos(user["id"])) == 1
        assert len(video_store.list_videos(other["id"])) == 1

    def test_unknown_platform_rejected(self, video_store, user):
        with pytest.raises(ValueError):
            _add(video_store, user["id"], platform="dailymotion")

    def test_list_newest_first(self, video_store, user):
        a = _add(video_store, user["id"], external_id="aaaaaaaaaaa")
        b = _add(video_store, user["id"], external_id="bbbbbbbbbbb")
        ids = [v["id"] for v in video_store.list_videos(user["id"])]
        assert ids == [b["id"], a["id"]]

    def test_set_watched_toggle_and_explicit(self, video_store, user):
        v = _add(video_store, user["id"])
        assert video_store.set_watched(v["id"], user["id"])["is_watched"] == 1
        assert video_store.set_watched(v["id"], user["id"])["is_watched"] == 0
        assert video_store.set_watched(v["id"], user["id"], True)["is_watched"] == 1
        assert video_store.set_watched(v["id"], user["id"], True)["is_watched"] == 1

    def test_set_watched_other_user(self, video_store, user):
        other = video_store.upsert_user(2002)
        v = _add(video_store, user["id"])
        assert video_store.set_watched(v["id"], other["id"]) is None

    def test_delete_only_own(self, video_store, user):
        other = video_store.upsert_user(2002)
        v = _add(video_store, user["id"])
        assert video_store.delete_video(v["id"], other["id"]) is False
        assert video_store.delete_video(v["id"], user["id"]) is True
        assert video_store.get_video(v["id"]) is None

    def test_insert_reports_whether_created(self, video_store, user):
        row, created = video_store.insert_video(user["id"], "youtube", YT_ID, "u", "First")
        assert created
        again, created = video_store.insert_video(user["id"], "youtube", YT_ID, "u", "Second")
        assert not created
        assert again["id"] == row["id"]
        assert again["title"] == "First"


class TestFamilies:
    def test_delete_root_keeps_children(self, video_store, user):
        root = _add(video_store, user["id"])
        child = _add(video_store, user["id"], platform="rutube", external_id=RT_ID,
                     parent_id=root["id"])
        video_store.delete_video(root["id"], user["id"])
        survivor = video_store.get_video(child["id"])
        assert survivor is not None
        assert survivor["parent_id"] is None

    def test_children_listed(self, video_store, user):
        root = _add(video_store, user["id"])
        child = _add(video_store, user["id"], platform="rutube", external_id=RT_ID,
                     parent_id=root["id"])
        assert [c["id"] for c in video_store.get_children(root["id"])] == [child["id"]]

    def test_foreign_keys_enforced(self, video_store, user):
        with pytest.raises(sqlite3.IntegrityError):
            _add(video_store, user["id"], parent_id=9999)


class TestCanonicalProgress:
    @pytest.fixture
    def family(self, video_store, user):
        root = _add(video_store, user["id"])
        child = _add(video_store, user["id"], platform="rutube", external_id=RT_ID,
                     parent_id=root["id"])
        return root, child

    def test_canonical_id(self, video_store, family):
        root, child = family
        assert video_store.canonical_id(root["id"]) == root["id"]
        assert video_store.canonical_id(child["id"]) == root["id"]

    def test_canonical_id_unknown_video(self, video_store):
        assert video_store.canonical_id(12345) == 12345

    def test_progress_shared_across_family(self, video_store, user, family):
        root, child = family
        video_store.save_progress(user["id"], child["id"], 120)
        assert video_store.get_progress(user["id"], root["id"])["position_seconds"] == 120
        video_store.save_progress(user["id"], root["id"], 300.7)
        assert video_store.get_progress(user["id"], child["id"])["position_seconds"] == 300

    def test_progress_stored_under_root(self, video_store, user, family):
        root, child = family
        row = video_store.save_progress(user["id"], child["id"], 10)
        assert row["video_id"] == root["id"]

    def test_child_becomes_own_root_after_parent_deleted(self, video_store, user, family):
        root, child = family
        video_store.save_progress(user["id"], root["id"], 50)
        video_store.delete_video(root["id"], user["id"])
        assert video_store.canonical_id(child["id"]) == child["id"]
        # the family's progress row was removed with the root
        assert video_store.get_progress(user["id"], child["id"]) is None
        video_store.save_progress(user["id"], child["id"], 7)
        assert video_store.get_progress(user["id"], child["id"])["position_seconds"] == 7

    def test_save_progress_requires_ownership(self, video_store, user, family):
        other = video_store.upsert_user(2002)
        root, _ = family
        assert video_store.save_progress(other["id"], root["id"], 10) is None
        assert video_store.get_progress(other["id"], root["id"]) is None
        assert video_store.get_progress(user["id"], root["id"]) is None

    def test_negative_position_rejected(self, video_store, user, family):
        root, _ = family
        with pytest.raises(ValueError):
            video_store.save_progress(user["id"], root["id"], -1)

    @pytest.mark.parametrize("position", [
        float("nan"), float("inf"), float("-inf"), 1e300, MAX_POSITION_SECONDS + 1,
    ])
    def test_unstorable_positions_rejected(self, video_store, user, family, position):
        root, _ = family
        with pytest.raises(ValueError):
            video_store.save_progress(user["id"], root["id"], position)
        assert video_store.get_progress(user["id"], root["id"]) is None

    def test_max_position_accepted(self, video_store, user, family):
        root, _ = family
        row = video_store.save_progress(user["id"], root["id"], MAX_POSITION_SECONDS)
        assert row["position_seconds"] == MAX_POSITION_SECONDS

    def test_upsert_overwrites(self, video_store, user, family):
        root, _ = family
        video_store.save_progress(user["id"], root["id"], 10)
        video_store.save_progress(user["id"], root["id"], 20)
        count = video_store.conn.execute("SELECT COUNT(*) FROM video_progress").fetchone()[0]
        assert count == 1
        assert video_store.get_progress(user["id"], root["id"])["position_seconds"] == 20


class TestOwnerStore:
    def test_scoped_operations(self, video_store, user):
        owner = OwnerStore(video_store, user["id"])
        v = owner.add_video("youtube", YT_ID, "https://youtube.com/watch?v=" + YT_ID, "T")
        assert owner.video_exists("youtube", YT_ID)
        assert owner.get_video(v["id"])["id"] == v["id"]
        assert owner.save_progress(v["id"], 5)["position_seconds"] == 5

        stranger = OwnerStore(video_store, video_store.upsert_user(3003)["id"])
        assert stranger.get_video(v["id"]) is None
        assert stranger.delete_video(v["id"]) is False
        assert stranger.list_videos() == []


class TestStats:
    def test_counts(self, video_store, user):
        root = _add(video_store, user["id"])
        _add(video_store, user["id"], platform="rutube", external_id=RT_ID, parent_id=root["id"])
        assert video_store.get_stats() == {"users": 1, "videos": 1, "mirrors": 1}
