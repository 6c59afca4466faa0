"""
SQLite-backed storage for VidQueue.
Tracks users, their queued videos (with cross-platform families) and
per-family playback progress.
"""

import logging
import math
import sqlite3
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PLATFORMS = ("youtube", "rutube", "vk")

# 30 days; anything longer is not a playback position
MAX_POSITION_SECONDS = 30 * 24 * 3600


class VideoStore:
    """SQLite database for the per-user video queue and watch progress."""

    def __init__(self, db_path: str = "db/videos.db"):
        """Initialize database connection and create schema."""
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self.conn = sqlite3.connect(db_file, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        # SQLite disables foreign keys per connection by default
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()

    def _create_tables(self) -> None:
        """Create all tables if they don't exist."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                telegram_id INTEGER NOT NULL UNIQUE,
                username TEXT,
                first_name TEXT,
                last_name TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS videos (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL REFERENCES users(id),
                platform TEXT NOT NULL,
                external_id TEXT NOT NULL,
                url TEXT NOT NULL,
                title TEXT NOT NULL,
                channel_name TEXT,
                thumbnail_url TEXT,
                duration INTEGER,
                is_watched INTEGER NOT NULL DEFAULT 0,
                parent_id INTEGER REFERENCES videos(id) ON DELETE SET NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(user_id, platform, external_id)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS video_progress (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL REFERENCES users(id),
                video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
                position_seconds INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(user_id, video_id)
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_videos_user ON videos(user_id)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_videos_created ON videos(created_at)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_videos_parent ON videos(parent_id)")
        self.conn.commit()

    # --- Users ---

    def upsert_user(self, telegram_id: int, username: Optional[str] = None,
                    first_name: Optional[str] = None, last_name: Optional[str] = None) -> dict:
        """Create the user on first contact, refresh display fields afterwards."""
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO users (telegram_id, username, first_name, last_name)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(telegram_id) DO UPDATE SET
                    username = excluded.username,
                    first_name = excluded.first_name,
                    last_name = excluded.last_name
                """,
                (telegram_id, username, first_name, last_name),
            )
            self.conn.commit()
            cursor = self.conn.execute("SELECT * FROM users WHERE telegram_id = ?", (telegram_id,))
            return dict(cursor.fetchone())

    def get_user_by_telegram_id(self, telegram_id: int) -> Optional[dict]:
        with self._lock:
            cursor = self.conn.execute("SELECT * FROM users WHERE telegram_id = ?", (telegram_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    # --- Videos ---

    def insert_video(
        self,
        user_id: int,
        platform: str,
        external_id: str,
        url: str,
        title: str,
        channel_name: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        duration: Optional[int] = None,
        parent_id: Optional[int] = None,
    ) -> tuple[dict, bool]:
        """
        Add a video to a user's queue. Returns (row, created); when
        (user, platform, external_id) already exists the existing row is
        returned unchanged with created=False.
        """
        if platform not in PLATFORMS:
            raise ValueError(f"Unknown platform: {platform!r}")
        with self._lock:
            cursor = self.conn.execute(
                """
                INSERT OR IGNORE INTO videos
                (user_id, platform, external_id, url, title, channel_name,
                 thumbnail_url, duration, parent_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, platform, external_id, url, title, channel_name,
                 thumbnail_url, duration, parent_id),
            )
            self.conn.commit()
            created = cursor.rowcount > 0
            return self._find_video_unlocked(user_id, platform, external_id), created

    def add_video(self, user_id: int, platform: str, external_id: str, url: str, title: str,
                  **kw) -> dict:
        """Idempotent add; returns the new or existing row."""
        row, _ = self.insert_video(user_id, platform, external_id, url, title, **kw)
        return row

    def _find_video_unlocked(self, user_id: int, platform: str, external_id: str) -> Optional[dict]:
        """Get video by its natural key (caller must hold _lock)."""
        cursor = self.conn.execute(
            "SELECT * FROM videos WHERE user_id = ? AND platform = ? AND external_id = ?",
            (user_id, platform, external_id),
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def find_video(self, user_id: int, platform: str, external_id: str) -> Optional[dict]:
        with self._lock:
            return self._find_video_unlocked(user_id, platform, external_id)

    def video_exists(self, user_id: int, platform: str, external_id: str) -> bool:
        return self.find_video(user_id, platform, external_id) is not None

    def get_video(self, video_id: int, user_id: Optional[int] = None) -> Optional[dict]:
        """Get a video by row id, optionally restricted to its owner."""
        with self._lock:
            if user_id is None:
                cursor = self.conn.execute("SELECT * FROM videos WHERE id = ?", (video_id,))
            else:
                cursor = self.conn.execute(
                    "SELECT * FROM videos WHERE id = ? AND user_id = ?", (video_id, user_id),
                )
            row = cursor.fetchone()
            return dict(row) if row else None

    def list_videos(self, user_id: int) -> list[dict]:
        """All videos of a user, newest first."""
        with self._lock:
            cursor = self.conn.execute(
                "SELECT * FROM videos WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_children(self, parent_id: int) -> list[dict]:
        """Mirrors linked to a family root."""
        with self._lock:
            cursor = self.conn.execute(
                "SELECT * FROM videos WHERE parent_id = ? ORDER BY id", (parent_id,),
            )
            return [dict(row) for row in cursor.fetchall()]

    def set_watched(self, video_id: int, user_id: int, is_watched: Optional[bool] = None) -> Optional[dict]:
        """Set the watched flag, or toggle it when is_watched is None. Returns the updated row."""
        with self._lock:
            if is_watched is None:
                cursor = self.conn.execute(
                    "UPDATE videos SET is_watched = 1 - is_watched WHERE id = ? AND user_id = ?",
                    (video_id, user_id),
                )
            else:
                cursor = self.conn.execute(
                    "UPDATE videos SET is_watched = ? WHERE id = ? AND user_id = ?",
                    (int(is_watched), video_id, user_id),
                )
            self.conn.commit()
            if cursor.rowcount == 0:
                return None
            row = self.conn.execute("SELECT * FROM videos WHERE id = ?", (video_id,)).fetchone()
            return dict(row) if row else None

    def delete_video(self, video_id: int, user_id: int) -> bool:
        """Delete exactly one owned row. Children survive with parent_id cleared."""
        with self._lock:
            cursor = self.conn.execute(
                "DELETE FROM videos WHERE id = ? AND user_id = ?", (video_id, user_id),
            )
            self.conn.commit()
            return cursor.rowcount > 0

    # --- Progress (stored per family) ---

    def canonical_id(self, video_id: int) -> int:
        """Return the id under which a video's family progress is stored.

        Roots map to themselves. Children map to their parent while the
        parent row still exists, otherwise to their own id.
        """
        with self._lock:
            return self._canonical_id_unlocked(video_id)

    def _canonical_id_unlocked(self, video_id: int) -> int:
        row = self.conn.execute("SELECT parent_id FROM videos WHERE id = ?", (video_id,)).fetchone()
        if not row or row["parent_id"] is None:
            return video_id
        parent = self.conn.execute("SELECT id FROM videos WHERE id = ?", (row["parent_id"],)).fetchone()
        if not parent:
            return video_id
        return row["parent_id"]

    def get_progress(self, user_id: int, video_id: int) -> Optional[dict]:
        """Read family progress for a video the user owns. None if unknown or not owned."""
        with self._lock:
            owned = self.conn.execute(
                "SELECT id FROM videos WHERE id = ? AND user_id = ?", (video_id, user_id),
            ).fetchone()
            if not owned:
                return None
            canonical = self._canonical_id_unlocked(video_id)
            row = self.conn.execute(
                "SELECT * FROM video_progress WHERE user_id = ? AND video_id = ?",
                (user_id, canonical),
            ).fetchone()
            return dict(row) if row else None

    def save_progress(self, user_id: int, video_id: int, position_seconds: float) -> Optional[dict]:
        """Upsert family progress.

        Authorization uses the caller-supplied video id; storage uses the
        canonical id. Returns None when the user does not own video_id.
        """
        if not math.isfinite(position_seconds):
            raise ValueError("position_seconds must be finite")
        position = int(position_seconds)
        if position < 0:
            raise ValueError("position_seconds must be non-negative")
        if position > MAX_POSITION_SECONDS:
            raise ValueError(f"position_seconds must be at most {MAX_POSITION_SECONDS}")
        with self._lock:
            owned = self.conn.execute(
                "SELECT id FROM videos WHERE id = ? AND user_id = ?", (video_id, user_id),
            ).fetchone()
            if not owned:
                return None
            canonical = self._canonical_id_unlocked(video_id)
            self.conn.execute(
                """
                INSERT INTO video_progress (user_id, video_id, position_seconds, updated_at)
                VALUES (?, ?, ?, datetime('now'))
                ON CONFLICT(user_id, video_id) DO UPDATE SET
                    position_seconds = excluded.position_seconds,
                    updated_at = datetime('now')
                """,
                (user_id, canonical, position),
            )
            self.conn.commit()
            row = self.conn.execute(
                "SELECT * FROM video_progress WHERE user_id = ? AND video_id = ?",
                (user_id, canonical),
            ).fetchone()
            return dict(row)

    # --- Stats ---

    def get_stats(self) -> dict:
        with self._lock:
            users = self.conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
            roots = self.conn.execute("SELECT COUNT(*) FROM videos WHERE parent_id IS NULL").fetchone()[0]
            mirrors = self.conn.execute("SELECT COUNT(*) FROM videos WHERE parent_id IS NOT NULL").fetchone()[0]
            return {"users": users, "videos": roots, "mirrors": mirrors}

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
