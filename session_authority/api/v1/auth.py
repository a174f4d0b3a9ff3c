"""Auth: register, login, refresh, logout, me."""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import AfterValidator, BaseModel, Field

from session_authority.api.deps import get_auth_service, get_current_user
from session_authority.config import settings
from session_authority.models.user import User
from session_authority.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _access_token_expires_in() -> int:
    return settings.access_token_expire_minutes * 60


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _normalize_email(value: str) -> str:
    email = (value or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("Invalid email")
    return email


Email = Annotated[str, AfterValidator(_normalize_email)]


class RegisterBody(BaseModel):
    email: Email
    password: str = Field(min_length=8, description="At least 8 characters")


class LoginBody(BaseModel):
    email: Email
    password: str


class RefreshBody(BaseModel):
    # Missing, null or empty token reaches the service and becomes a 400, not a 422
    refresh_token: str | None = None


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserOut(BaseModel):
    id: int
    email: Email


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=201,
    summary="Register a new user",
    responses={
        409: {"description": "Email already registered"},
        422: {"description": "Invalid email or password shorter than 8 characters"},
    },
)
async def register(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    body: RegisterBody,
) -> MessageResponse:
    message = await auth.register(body.email, body.password, ip_address=_client_ip(request))
    return MessageResponse(message=message)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    responses={
        401: {"description": "Invalid email or password"},
    },
)
async def login(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    body: LoginBody,
) -> TokenResponse:
    pair = await auth.login(body.email, body.password, ip_address=_client_ip(request))
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=_access_token_expires_in(),
    )


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    summary="Exchange a refresh token for a new access token",
    responses={
        400: {"description": "Refresh token required"},
        401: {"description": "Refresh token invalid, expired, revoked or not a refresh token"},
    },
)
async def refresh_access_token(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    body: RefreshBody,
) -> AccessTokenResponse:
    """The refresh token is not rotated; it stays valid until it expires or is logged out."""
    access = await auth.refresh_access_token(body.refresh_token, ip_address=_client_ip(request))
    return AccessTokenResponse(access_token=access, expires_in=_access_token_expires_in())


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Revoke a refresh token",
    responses={
        400: {"description": "Refresh token required"},
        401: {"description": "Refresh token invalid, expired or already revoked"},
    },
)
async def logout(
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    body: RefreshBody,
) -> MessageResponse:
    message = await auth.logout(body.refresh_token, ip_address=_client_ip(request))
    return MessageResponse(message=message)


@router.get(
    "/me",
    response_model=UserOut,
    summary="Get current authenticated user",
    responses={
        401: {"description": "Not authenticated or invalid token"},
    },
)
async def me(user: Annotated[User, Depends(get_current_user)]) -> UserOut:
    return UserOut(id=user.id, email=user.email)
