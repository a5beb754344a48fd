"""
Authentication router — signup, login and the current user.

Signup and login are the only public (unauthenticated) endpoints in the
API. Everything else requires a valid JWT token.

Endpoints:
  POST /auth/signup  — Register a new member and get a token
  POST /auth/login   — Authenticate and get a token
  GET  /auth/me      — The authenticated user

Plaintext passwords exist only in memory during request processing; they
are hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.database import get_db
from unitedbank.dependencies import get_current_user
from unitedbank.models.user import User
from unitedbank.schemas.auth import (
    UserSignupRequest,
    UserLoginRequest,
    TokenResponse,
    SignupResponse,
)
from unitedbank.schemas.user import UserResponse
from unitedbank.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new member",
)
async def signup(
    request: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new bank member.

    Creates a User, a Profile and a primary checking account in one
    atomic transaction. Returns a JWT token so the user is immediately
    logged in after signup.
    """
    user, token = await auth_service.signup(
        db=db,
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        phone=request.phone,
        country_code=request.country_code,
        category=request.category,
    )

    return SignupResponse(
        user_id=user.id,
        email=user.email,
        user_type=user.user_type.value,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Include the returned token in the Authorization header:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30).
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )

    return TokenResponse(token=token)


@router.get("/me", response_model=UserResponse, summary="Get the current user")
async def me(user: User = Depends(get_current_user)):
    return user
