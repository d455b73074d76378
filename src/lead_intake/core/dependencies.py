"""FastAPI dependency injection for database sessions, auth, and write throttling.

Provides get_async_session, get_current_user, and per-user rate limit
factories for the buyer write endpoints.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.core.config import Settings, get_settings
from lead_intake.core.database import get_session_factory
from lead_intake.core.rate_limit import SlidingWindowRateLimiter
from lead_intake.core.security import decode_token
from lead_intake.models.user import User

# The session cookie is an alternative to the header, so a missing header is not an error here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login", auto_error=False)

_write_limiters: dict[str, SlidingWindowRateLimiter] = {}


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode the session token and return the authenticated user.

    The token is read from the ``Authorization: Bearer`` header, falling
    back to the session cookie.

    Args:
        request: The incoming request (for the cookie).
        token: The bearer token, if any.
        session: The database session.
        settings: Application settings.

    Returns:
        The authenticated User model instance.

    Raises:
        HTTPException: If the token is missing or invalid, or the user no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = token or request.cookies.get(settings.session_cookie_name)
    if not token:
        raise credentials_exception
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        user_id = uuid.UUID(str(payload.get("sub")))
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise credentials_exception from exc

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exception
    return user


def get_write_limiter(action: str, limit: int) -> SlidingWindowRateLimiter:
    """Return the process-wide limiter for ``action``, creating it on first use."""
    limiter = _write_limiters.get(action)
    if limiter is None or limiter.limit != limit:
        limiter = SlidingWindowRateLimiter(limit=limit)
        _write_limiters[action] = limiter
    return limiter


def reset_write_limiters() -> None:
    """Drop all per-user write limiter state."""
    _write_limiters.clear()


def rate_limit_writes(action: str, limit_setting: str) -> Callable[..., Any]:
    """Factory that creates a dependency throttling a write action per user.

    The check runs before the endpoint body, so a rejected call never
    reaches the database.

    Args:
        action: Limiter name, also used in the per-user key (e.g. "create").
        limit_setting: Name of the Settings attribute holding calls per minute.

    Returns:
        A FastAPI dependency returning the authenticated user.
    """

    async def limiter_checker(
        current_user: Annotated[User, Depends(get_current_user)],
        settings: Annotated[Settings, Depends(get_settings)],
    ) -> User:
        limiter = get_write_limiter(action, getattr(settings, limit_setting))
        if not limiter.allow(f"{action}:{current_user.id}"):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(int(limiter.window_seconds))},
            )
        return current_user

    return limiter_checker
