"""Playback progress routes. Progress is shared by every video of a family."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from web.deps import get_owner_store
from web.helpers import SaveProgressRequest
from web.shared import limiter

router = APIRouter()


@router.get("/api/progress/{video_id}")
async def get_progress(request: Request, video_id: int):
    owner = get_owner_store(request)
    return {"progress": owner.get_progress(video_id)}


@router.post("/api/progress")
@limiter.limit("60/minute")
async def save_progress(request: Request, body: SaveProgressRequest):
    if body.position_seconds < 0:
        return JSONResponse({"error": "position_seconds must be non-negative"}, status_code=400)
    owner = get_owner_store(request)
    try:
        progress = owner.save_progress(body.video_id, body.position_seconds)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    if progress is None:
        return JSONResponse({"error": "not found"}, status_code=404)
    return {"progress": progress}
