"""Direct stream URLs for YouTube videos (for players that can't embed)."""

import re

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from web.deps import get_stream_resolver
from web.shared import limiter

VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')

router = APIRouter()


@router.get("/api/youtube/stream-url/{video_id}")
@limiter.limit("30/minute")
async def stream_url(request: Request, video_id: str):
    if not VIDEO_ID_RE.match(video_id):
        return JSONResponse({"error": "invalid video id"}, status_code=400)
    url = await get_stream_resolver(request).get_stream_url(video_id)
    if not url:
        return JSONResponse({"error": "stream unavailable"}, status_code=502)
    return {"url": url}
