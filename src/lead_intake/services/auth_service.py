"""Authentication and user service.

Demo identity: a user is identified by email alone. Logging in fetches the
user or creates it on first sight, then issues a signed session token.
"""

import uuid

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake.core.config import Settings
from lead_intake.core.security import create_access_token
from lead_intake.models.user import User
from lead_intake.schemas.auth import TokenResponse


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Get a user by ID.

    Args:
        session: The database session.
        user_id: The user's UUID.

    Returns:
        The User or None if not found.
    """
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Get a user by email, case-insensitively."""
    result = await session.execute(select(User).where(func.lower(User.email) == _normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, email: str, name: str | None = None) -> User:
    """Create a new user.

    Args:
        session: The database session.
        email: The user's email address.
        name: Optional display name.

    Returns:
        The created User.

    Raises:
        ValueError: If the email is already registered.
    """
    if await get_user_by_email(session, email) is not None:
        msg = "Email already exists"
        raise ValueError(msg)

    user = User(email=_normalize_email(email), name=name)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created user {user.id} ({user.email})")
    return user


async def get_or_create_demo_user(session: AsyncSession, email: str, name: str | None = None) -> User:
    """Fetch the user with this email, creating it on first login.

    Args:
        session: The database session.
        email: The login email.
        name: Display name used only when the user is created.

    Returns:
        The existing or newly created User.
    """
    user = await get_user_by_email(session, email)
    if user is not None:
        return user
    return await create_user(session, email, name)


def generate_token(user: User, settings: Settings) -> TokenResponse:
    """Issue a session token for a user.

    Args:
        user: The authenticated user.
        settings: Application settings.

    Returns:
        TokenResponse with the access token and its lifetime in seconds.
    """
    access_token = create_access_token(
        subject=str(user.id),
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )
