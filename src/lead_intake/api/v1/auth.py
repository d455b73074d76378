"""Authentication API endpoints.

GET /health, GET /info, POST /auth/login, POST /auth/logout, GET /auth/me.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lead_intake import __version__
from lead_intake.core.config import Settings, get_settings
from lead_intake.core.dependencies import get_async_session, get_current_user
from lead_intake.models.user import User
from lead_intake.schemas.auth import LoginRequest, TokenResponse, UserResponse
from lead_intake.services import auth_service

router = APIRouter(tags=["auth"])


@router.get("/health", status_code=200)
async def health_check() -> dict:
    """Health check endpoint (no authentication required)."""
    return {"status": "healthy"}


@router.get("/info", status_code=200)
async def info(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Return application version and environment."""
    return {
        "version": __version__,
        "environment": settings.environment,
    }


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    response: Response,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Log in by email (creating the user on first login) and start a session."""
    user = await auth_service.get_or_create_demo_user(session, request.email, request.name)
    token = auth_service.generate_token(user, settings)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token.access_token,
        max_age=token.expires_in,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return token


@router.post("/auth/logout", status_code=204)
async def logout(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Clear the session cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.get("/auth/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Return the current authenticated user."""
    return UserResponse.model_validate(current_user)
