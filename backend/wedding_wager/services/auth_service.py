"""Request identity: verifies tokens issued by the hosted auth provider.

Sign-in flows live with the provider; this module only checks the HS256
token it hands out and maps it onto a ledger account.
"""

import logging

import jwt
from fastapi import HTTPException, Request, status
from jwt.exceptions import InvalidTokenError as JWTError

from wedding_wager.config import settings
from wedding_wager.services import wallet_service

logger = logging.getLogger("wedding_wager.auth")

ALGORITHM = "HS256"


def decode_jwt(token: str) -> dict:
    """Decode a JWT, trying the current secret first, then the old one.

    Setting AUTH_JWT_SECRET_OLD during a rotation keeps tokens signed with the
    previous secret valid until they expire.
    """
    try:
        return jwt.decode(token, settings.AUTH_JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        if settings.AUTH_JWT_SECRET_OLD:
            return jwt.decode(token, settings.AUTH_JWT_SECRET_OLD, algorithms=[ALGORITHM])
        raise


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.cookies.get("access_token")


async def get_current_user(request: Request) -> dict:
    """FastAPI dependency: resolve the caller's account, creating it on first use."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in.",
        )

    try:
        payload = decode_jwt(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
        )

    return await wallet_service.get_or_create_user(str(user_id), payload.get("name") or "")


async def get_admin_user(request: Request) -> dict:
    """FastAPI dependency: requires an authenticated admin user."""
    user = await get_current_user(request)
    if not user.get("is_admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrators only.",
        )
    return user
