"""
Account endpoints for API v1.

Provide signup, login, token refresh and the caller's profile.  Signup
and login both return a bearer token together with the public user.
"""

from fastapi import APIRouter, Depends, status

from helpapp_api.app.api.deps import get_user_service
from helpapp_api.app.core.security import Identity, authenticate, get_token_service
from helpapp_api.app.core.tokens import TokenService
from helpapp_api.app.schemas.user import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    TokenResponse,
    UserRead,
)
from helpapp_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
) -> AuthResponse:
    """Register a new user and log them in.

    Returns 409 when the email address is already registered.
    """
    user = await users.signup(data)
    token = tokens.issue(user.id, user.email, user.role)
    return AuthResponse(message="Signup successful.", token=token, user=user)


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
) -> AuthResponse:
    """Check credentials and return a fresh token."""
    user = await users.authenticate(data)
    token = tokens.issue(user.id, user.email, user.role)
    return AuthResponse(message="Login successful.", token=token, user=user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    tokens: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """Exchange a still-valid token for one with a later expiry.

    Expired tokens cannot be refreshed; the caller must log in again.
    """
    return TokenResponse(token=tokens.refresh(data.refresh_token))


@router.get("/me", response_model=UserRead)
async def me(
    identity: Identity = Depends(authenticate),
    users: UserService = Depends(get_user_service),
) -> UserRead:
    """Return the profile of the authenticated user."""
    return users.get_profile(identity.user_id)
