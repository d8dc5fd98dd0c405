"""Bearer-token authentication for API routes.

Access tokens are minted by the auth service (after Firebase sign-in) as
HS256 JWTs whose ``sub`` claim is the user's uid. This module only verifies
them.
"""

import os
from dataclasses import dataclass

import jwt
from fastapi import HTTPException, Request, status

from even.logging_config import bind_caller, get_logger

logger = get_logger(__name__)

JWT_SECRET = os.getenv("JWT_ACCESS_SECRET", "")
if not JWT_SECRET:
    raise RuntimeError("JWT_ACCESS_SECRET environment variable is required")
JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class AuthUser:
    uid: str


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token. Raises HTTPException on failure."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("access_token_rejected", reason="expired")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("access_token_rejected", reason="invalid", error=str(e))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


async def get_current_user(request: Request) -> AuthUser:
    """
    FastAPI dependency: extract and validate the Bearer access token.

    Returns the authenticated user or raises 401.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )

    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Empty token",
        )

    payload = decode_access_token(token)
    uid = payload.get("sub")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token missing required subject",
        )
    bind_caller(str(uid))
    return AuthUser(uid=str(uid))
