"""
FastAPI dependency injection functions.
Provides get_db, get_current_user and the session factory used by realtime sessions.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from airwaves.core.exceptions import InvalidTokenException, UnauthorizedException
from airwaves.core.security import decode_access_token
from airwaves.crud.base import as_uuid
from airwaves.crud.profile import crud_profile
from airwaves.db.session import AsyncSessionLocal, get_db
from airwaves.models.profile import Profile

# Re-export get_db so routes can import from one place
__all__ = [
    "get_db",
    "get_current_user",
    "get_session_factory",
    "resolve_token_user",
    "DBSession",
    "CurrentUser",
    "SessionFactory",
]

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives a single request (WebSocket sessions)."""
    return AsyncSessionLocal


async def resolve_token_user(db: AsyncSession, token: str) -> Profile:
    """
    Validate a JWT access token and return the matching Profile.
    Shared by the HTTP bearer dependency and the WebSocket handshake.
    """
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise InvalidTokenException("Malformed token: missing subject")

    user_id = as_uuid(user_id_str)
    if user_id is None:
        raise InvalidTokenException("Malformed token: invalid subject format")

    profile = await crud_profile.get(db, user_id)
    if profile is None:
        raise UnauthorizedException("Profile not found")
    return profile


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> Profile:
    """Authenticated Profile from the Authorization header."""
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")
    return await resolve_token_user(db, credentials.credentials)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[Profile, Depends(get_current_user)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
