"""
Per-user scoped view over VideoStore.
Curries user_id into every owner-scoped operation.
"""

from typing import Optional


class OwnerStore:
    """Wraps VideoStore with a fixed user_id so handlers can't cross users."""

    def __init__(self, store, user_id: int):
        self._store = store
        self.user_id = user_id

    def add_video(self, platform, external_id, url, title, **kw):
        return self._store.add_video(self.user_id, platform, external_id, url, title, **kw)

    def find_video(self, platform, external_id):
        return self._store.find_video(self.user_id, platform, external_id)

    def video_exists(self, platform, external_id) -> bool:
        return self._store.video_exists(self.user_id, platform, external_id)

    def get_video(self, video_id):
        return self._store.get_video(video_id, user_id=self.user_id)

    def list_videos(self):
        return self._store.list_videos(self.user_id)

    def set_watched(self, video_id, is_watched: Optional[bool] = None):
        return self._store.set_watched(video_id, self.user_id, is_watched)

    def delete_video(self, video_id) -> bool:
        return self._store.delete_video(video_id, self.user_id)

    def get_progress(self, video_id):
        return self._store.get_progress(self.user_id, video_id)

    def save_progress(self, video_id, position_seconds):
        return self._store.save_progress(self.user_id, video_id, position_seconds)
