"""Shared request models and serializers used across web routers."""

from typing import Optional

from pydantic import BaseModel, Field

from data.video_store import MAX_POSITION_SECONDS
from platforms.parser import embed_url
from utils import format_duration


class AddVideoRequest(BaseModel):
    url: str = Field(min_length=1, max_length=2048)


class UpdateVideoRequest(BaseModel):
    is_watched: Optional[bool] = None  # omitted = toggle


class SaveProgressRequest(BaseModel):
    video_id: int
    # negatives are rejected by the route with a 400
    position_seconds: float = Field(le=MAX_POSITION_SECONDS, allow_inf_nan=False)


def serialize_video(video: dict) -> dict:
    """API shape of a videos row: booleans as booleans, plus player URL."""
    return {
        **video,
        "is_watched": bool(video.get("is_watched")),
        "embed_url": embed_url(video["platform"], video["external_id"]),
        "duration_display": format_duration(video.get("duration")),
    }


def serialize_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "telegram_id": user["telegram_id"],
        "username": user.get("username"),
        "first_name": user.get("first_name"),
        "last_name": user.get("last_name"),
    }
