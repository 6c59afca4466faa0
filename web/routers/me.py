"""Identity and liveness routes."""

from fastapi import APIRouter, Request

from web.deps import get_current_user
from web.helpers import serialize_user

router = APIRouter()


@router.get("/api/health")
async def health():
    return {"status": "ok"}


@router.get("/api/me")
async def me(request: Request):
    """The user behind the init data on this request."""
    return {"user": serialize_user(get_current_user(request))}
