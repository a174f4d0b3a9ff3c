"""FastAPI dependencies: auth service wiring and current user from an access token."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from session_authority.core.auth import REFRESH_TOKEN_TYPE, SecretHasher, TokenSigner
from session_authority.db.session import get_db
from session_authority.models.user import User
from session_authority.services.auth import AuthService
from session_authority.services.audit import SqlAuditTrail
from session_authority.services.stores import SqlAccountDirectory, SqlRefreshTokenStore


def get_hasher() -> SecretHasher:
    return SecretHasher()


def get_signer() -> TokenSigner:
    return TokenSigner()


def get_auth_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    hasher: Annotated[SecretHasher, Depends(get_hasher)],
    signer: Annotated[TokenSigner, Depends(get_signer)],
) -> AuthService:
    return AuthService(
        accounts=SqlAccountDirectory(session),
        refresh_tokens=SqlRefreshTokenStore(session),
        hasher=hasher,
        signer=signer,
        audit=SqlAuditTrail(session),
    )


async def get_current_user(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db)],
    signer: Annotated[TokenSigner, Depends(get_signer)],
) -> User:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = auth_header[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    result = signer.verify(token)
    if not result.ok:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    payload = result.claims
    # Refresh tokens are only good for /auth/refresh and /auth/logout
    if payload.get("type") == REFRESH_TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id_str = payload.get("sub")
    if not user_id_str:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        user_id = int(user_id_str)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await SqlAccountDirectory(session).find_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user
