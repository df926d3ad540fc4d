"""
Per-request identity.

The identity provider issues a signed session JWT, sent either as a bearer
token or in its session cookie. A valid token's ``sub`` claim is the user
id; anything else (no token, expired, bad signature) means "anonymous".
Operations that need a user turn anonymous into a 401 themselves.
"""
import logging
from functools import lru_cache
from typing import Any, Optional

import jwt
from fastapi import Depends, Request

from blog_api.config import Settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url, cache_keys=True)


def _extract_token(request: Request, settings: Settings) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return request.cookies.get(settings.identity_session_cookie)


def decode_session_token(token: str, settings: Settings) -> Optional[dict[str, Any]]:
    """Decode and validate a session token; returns None when it is not acceptable."""
    try:
        if settings.identity_jwks_url:
            key: Any = _jwks_client(settings.identity_jwks_url).get_signing_key_from_jwt(token).key
        else:
            key = settings.identity_jwt_key
        return jwt.decode(
            token,
            key,
            algorithms=settings.identity_jwt_algorithms,
            issuer=settings.identity_jwt_issuer,
            leeway=settings.identity_jwt_leeway,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return None
    except jwt.PyJWTError as exc:
        logger.warning("Session token rejected: %s", exc)
        return None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def current_user_id(
    request: Request, settings: Settings = Depends(get_settings)
) -> Optional[str]:
    """FastAPI dependency: the verified user id, or None for anonymous requests."""
    token = _extract_token(request, settings)
    if not token:
        return None
    claims = decode_session_token(token, settings)
    if claims is None:
        return None
    return claims["sub"]

