"""FastAPI dependency providers. Read from app.state / request.state, set by main.py and middleware."""

from fastapi import HTTPException, Request

from data.owner_store import OwnerStore
from platforms.youtube import StreamResolverProtocol


def get_video_store(request: Request):
    """VideoStore instance."""
    return request.app.state.video_store


def get_current_user(request: Request) -> dict:
    """users row attached by InitDataAuthMiddleware."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="unauthorized")
    return user


def get_owner_store(request: Request) -> OwnerStore:
    """OwnerStore scoped to the authenticated user."""
    user = get_current_user(request)
    return OwnerStore(request.app.state.video_store, user["id"])


def get_intake(request: Request):
    """VideoIntake instance."""
    return request.app.state.intake


def get_stream_resolver(request: Request) -> StreamResolverProtocol:
    """YouTubeStreamResolver instance, or any stream resolver double."""
    return request.app.state.stream_resolver
