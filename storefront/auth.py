"""Bearer token verification. Tokens are issued by an external identity provider."""
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from . import config
from .logs import get_logger

log = get_logger(__name__)


def decode_access_token(token: str) -> dict:
    settings = config.settings
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(None, 1)[1].strip() or None
    return None


async def authenticate(request: Request) -> Optional[dict]:
    """Dependency: verify the bearer token when authentication is switched on.

    The decoded claims (``sub``, ``email``, ``roles``) are stored on
    ``request.state.principal`` and returned.
    """
    if not config.is_auth_required():
        return None
    token = bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Access token is required")
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        log.warning("token_rejected", reason=str(e))
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("sub") is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    principal = {
        "sub": payload["sub"],
        "email": payload.get("email"),
        "roles": list(payload.get("roles") or []),
    }
    request.state.principal = principal
    return principal
