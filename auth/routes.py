"""
Auth API routes — register, login, current user.

Route prefix: /auth
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from api.dependencies import get_user_repository
from auth.dependencies import get_current_user_id, get_token_issuer
from auth.jwt import TokenIssuer
from database.users import UserRepository
from utils.schemas import ErrorResponse, LoginRequest, RegisterRequest, TokenResponse, UserOut

router = APIRouter(
    tags=["auth"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def register(
    req: RegisterRequest,
    users: UserRepository = Depends(get_user_repository),
) -> UserOut:
    """Register a new user."""
    user = await users.register(req.username, req.email, req.password)
    return UserOut.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
async def login(
    req: LoginRequest,
    users: UserRepository = Depends(get_user_repository),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenResponse:
    """Login with username + password and receive a bearer token."""
    user = await users.authenticate(req.username, req.password)
    return TokenResponse(
        token=issuer.issue(user.id),
        user=UserOut.model_validate(user),
    )


@router.get(
    "/me",
    response_model=UserOut,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)
async def me(
    user_id: str = Depends(get_current_user_id),
    users: UserRepository = Depends(get_user_repository),
) -> UserOut:
    """Return the account the presented token was issued for."""
    user = await users.find_by_id(user_id)
    return UserOut.model_validate(user)
