"""Shared web infrastructure: slowapi rate limiter.

Neutral module with no imports from web.*, so every web module can import it.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def user_or_remote_address(request: Request) -> str:
    """Rate-limit key: the authenticated user when known, else the client address."""
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user['id']}"
    return get_remote_address(request)


limiter = Limiter(key_func=user_or_remote_address)
