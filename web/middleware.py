"""HTTP middleware: security headers + Telegram init-data authentication."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from web.telegram_auth import INIT_DATA_HEADER, verify_init_data

logger = logging.getLogger(__name__)

# API paths reachable without init data
_API_AUTH_EXEMPT = ("/api/health",)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # The Mini App itself runs inside Telegram's iframe; the API never renders HTML
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


class InitDataAuthMiddleware(BaseHTTPMiddleware):
    """Require valid Mini App init data on /api/* and attach the local user.

    On success `request.state.user` holds the users row (created on first
    request, display fields refreshed afterwards).
    """

    def __init__(self, app, bot_token: str = "", max_age: int = 0):
        super().__init__(app)
        self.bot_token = bot_token
        self.max_age = max_age

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not path.startswith("/api/") or path.startswith(_API_AUTH_EXEMPT):
            return await call_next(request)
        if request.method == "OPTIONS":
            return await call_next(request)

        result = verify_init_data(
            request.headers.get(INIT_DATA_HEADER), self.bot_token, max_age=self.max_age,
        )
        if not result.valid or result.user is None:
            reason = result.error or "no user in init data"
            logger.debug(f"Rejected {request.method} {path}: {reason}")
            return JSONResponse({"error": "unauthorized", "detail": reason}, status_code=401)

        tg = result.user
        request.state.user = request.app.state.video_store.upsert_user(
            tg.id, username=tg.username, first_name=tg.first_name, last_name=tg.last_name,
        )
        return await call_next(request)
