"""Queue routes: list, add, mark watched, delete."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from intake import AlreadyQueuedError, UnrecognizedLinkError
from web.deps import get_current_user, get_intake, get_owner_store
from web.helpers import AddVideoRequest, UpdateVideoRequest, serialize_video
from web.shared import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/videos")
async def list_videos(request: Request):
    """All of the user's videos, newest first."""
    owner = get_owner_store(request)
    return {"videos": [serialize_video(v) for v in owner.list_videos()]}


@router.post("/api/videos")
@limiter.limit("20/minute")
async def add_video(request: Request, body: AddVideoRequest):
    user = get_current_user(request)
    intake = get_intake(request)
    try:
        video = await intake.add_link(user["id"], body.url)
    except UnrecognizedLinkError:
        return JSONResponse({"error": "unsupported url"}, status_code=400)
    except AlreadyQueuedError as e:
        return JSONResponse(
            {"error": "already in queue", "video": serialize_video(e.video)},
            status_code=409,
        )
    return JSONResponse({"video": serialize_video(video)}, status_code=201)


@router.patch("/api/videos/{video_id}")
async def update_video(request: Request, video_id: int, body: UpdateVideoRequest):
    """Set the watched flag, or toggle it when is_watched is omitted."""
    owner = get_owner_store(request)
    video = owner.set_watched(video_id, body.is_watched)
    if video is None:
        return JSONResponse({"error": "not found"}, status_code=404)
    return {"video": serialize_video(video)}


@router.delete("/api/videos/{video_id}")
async def delete_video(request: Request, video_id: int):
    owner = get_owner_store(request)
    if not owner.delete_video(video_id):
        return JSONResponse({"error": "not found"}, status_code=404)
    logger.info(f"User {owner.user_id} deleted video {video_id}")
    return {"success": True}
