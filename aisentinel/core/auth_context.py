from typing import Optional, Tuple

from fastapi import Request

from aisentinel.core.config import settings


def resolve_token(request: Request) -> Tuple[Optional[str], Optional[str]]:
    # Authorization header (API clients, header fallback)
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token, "header"

    token = request.headers.get("X-Session-Token")
    if token:
        return token, "x-session-token"

    # cookie (WEB)
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token, "cookie"

    return None, None
