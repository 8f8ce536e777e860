"""Session token verification for the identification endpoints.

The app sends the Supabase session access token; it is an HS256 JWT signed
with the project's JWT secret.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Header, HTTPException

from stampid.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def decode_session_token(token: str, settings: Settings) -> dict[str, Any]:
    """Verify *token* and return its claims; raises ``jwt.InvalidTokenError``."""
    audience = (settings.supabase_jwt_audience or "").strip() or None
    return jwt.decode(
        token,
        settings.supabase_jwt_secret,
        algorithms=["HS256"],
        audience=audience,
        options={"verify_aud": audience is not None, "require": ["sub", "exp"]},
    )


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> SessionUser:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(401, "Missing bearer token")

    settings = get_settings()
    if not settings.supabase_jwt_secret:
        logger.error("SUPABASE_JWT_SECRET is empty; cannot verify session tokens")
        raise HTTPException(500, "SUPABASE_JWT_SECRET is not configured")

    try:
        claims = decode_session_token(authorization[len(BEARER_PREFIX) :].strip(), settings)
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected session token: %s", exc)
        raise HTTPException(401, "Invalid token") from exc

    return SessionUser(id=str(claims["sub"]), email=claims.get("email"), role=claims.get("role"))
