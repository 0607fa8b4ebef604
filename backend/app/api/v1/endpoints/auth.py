"""
Auth API Endpoints.

Registration, login and logout with a JWT session cookie.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.serializers import user_public
from app.core.database import get_db
from app.core.exceptions import UnauthorizedError
from app.core.security import clear_session_cookie, get_current_user, set_session_cookie
from app.models.user import User
from app.modules.users import UserService

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(BaseModel):
    """Register new account."""

    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    bio: str | None = None


class LoginRequest(BaseModel):
    """Log in with username and password."""

    username: str
    password: str


# ==================== Session ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create account and start a session."""
    user = await UserService(db).create_user(
        username=request.username,
        password=request.password,
        bio=request.bio,
    )
    set_session_cookie(response, user.id)

    return user_public(user)


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Start a session."""
    user = await UserService(db).authenticate(request.username, request.password)

    if not user:
        raise UnauthorizedError("Invalid username or password")

    set_session_cookie(response, user.id)
    return user_public(user)


@router.post("/logout")
async def logout(response: Response) -> dict[str, Any]:
    """End the session."""
    clear_session_cookie(response)
    return {"logged_out": True}


@router.get("/user")
async def current_user(
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Get the logged-in user."""
    return user_public(user)
