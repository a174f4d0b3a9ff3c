"""SQLAlchemy-backed account directory and refresh-token store.

Both operate on a caller-owned AsyncSession: they flush but never commit, so
the request (or job) that owns the session decides the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from session_authority.core.errors import DuplicateIdentity
from session_authority.models.refresh_token import RefreshToken
from session_authority.models.user import User


class SqlAccountDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_email(self, email: str) -> User | None:
        r = await self.session.execute(select(User).where(User.email == email))
        return r.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> User | None:
        r = await self.session.execute(select(User).where(User.id == user_id))
        return r.scalar_one_or_none()

    async def create(self, email: str, password_hash: str) -> User:
        user = User(email=email, password_hash=password_hash)
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent register for the same email
            raise DuplicateIdentity() from e
        await self.session.refresh(user)
        return user


class SqlRefreshTokenStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            revoked=False,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_active(self, user_id: int) -> list[RefreshToken]:
        """Non-revoked records for one account, oldest first. Expired rows are included."""
        r = await self.session.execute(
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .order_by(RefreshToken.id)
        )
        return list(r.scalars().all())

    async def delete(self, token_id: int) -> None:
        """Hard delete by id. Deleting an id that is already gone is a no-op."""
        await self.session.execute(delete(RefreshToken).where(RefreshToken.id == token_id))
        await self.session.flush()

    async def delete_expired(self, now: datetime | None = None) -> int:
        cutoff = now or datetime.now(timezone.utc)
        r = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return r.rowcount or 0
