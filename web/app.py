"""FastAPI application for the VidQueue Mini App API.

Routes live in web/routers/; dependencies are attached to app.state and
middleware is added by main.py.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from version import __version__
from web.routers.me import router as me_router
from web.routers.progress import router as progress_router
from web.routers.videos import router as videos_router
from web.routers.youtube import router as youtube_router
from web.shared import limiter

logger = logging.getLogger(__name__)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse({"error": "too many requests"}, status_code=429)


def create_app() -> FastAPI:
    """Build an app with every router registered and no state or middleware."""
    application = FastAPI(title="VidQueue", version=__version__)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    application.include_router(me_router)
    application.include_router(videos_router)
    application.include_router(progress_router)
    application.include_router(youtube_router)
    return application


app = create_app()
