"""Register, login, token issuance, refresh and logout.

Refresh tokens are signed JWTs handed to the client; the server keeps only a
salted bcrypt hash per issued token. Because the hash is salted there is no
way to look a token up by hash value: refresh and logout list the owner's
active records and compare one by one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from session_authority.core.auth import REFRESH_TOKEN_TYPE, SecretHasher, TokenSigner
from session_authority.core.errors import (
    AccountNotFound,
    BadRequest,
    DuplicateIdentity,
    InvalidCredentials,
    InvalidToken,
    TokenExpired,
    TokenNotFound,
    WrongTokenType,
)
from session_authority.core.metrics import ACCESS_TOKENS_REFRESHED, REFRESH_TOKENS_REVOKED, TOKENS_ISSUED
from session_authority.models.refresh_token import RefreshToken
from session_authority.models.user import User

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "User registered successfully"
LOGGED_OUT_MESSAGE = "Logged out successfully"


class AccountDirectory(Protocol):
    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_id(self, user_id: int) -> User | None: ...

    async def create(self, email: str, password_hash: str) -> User: ...


class AuditTrail(Protocol):
    async def record(
        self,
        user_id: int | None,
        action: str,
        resource: str,
        resource_id: int | str | None = None,
        ip_address: str | None = None,
    ) -> None: ...


class RefreshTokenStore(Protocol):
    async def add(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken: ...

    async def list_active(self, user_id: int) -> list[RefreshToken]: ...

    async def delete(self, token_id: int) -> None: ...


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand back naive datetimes for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _subject_id(claims: dict[str, Any]) -> int:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidToken()


class AuthService:
    """Orchestrates accounts, signer, hasher and refresh-token records."""

    def __init__(
        self,
        accounts: AccountDirectory,
        refresh_tokens: RefreshTokenStore,
        hasher: SecretHasher,
        signer: TokenSigner,
        audit: AuditTrail | None = None,
    ) -> None:
        self.accounts = accounts
        self.refresh_tokens = refresh_tokens
        self.hasher = hasher
        self.signer = signer
        self.audit = audit

    async def _audit(
        self, user_id: int, action: str, resource: str, resource_id: int, ip_address: str | None
    ) -> None:
        if self.audit is not None:
            await self.audit.record(user_id, action, resource, resource_id, ip_address)

    async def register(self, email: str, password: str, ip_address: str | None = None) -> str:
        if await self.accounts.find_by_email(email) is not None:
            raise DuplicateIdentity()
        password_hash = await self.hasher.hash_password(password)
        user = await self.accounts.create(email, password_hash)
        logger.info("Registered user_id=%s", user.id)
        await self._audit(user.id, "register", "user", user.id, ip_address)
        return REGISTERED_MESSAGE

    async def authenticate(self, email: str, password: str) -> User:
        """Return the account for valid credentials; same error for unknown email and bad password."""
        user = await self.accounts.find_by_email(email)
        if user is None or not user.password_hash:
            # Unknown email costs the same bcrypt work as a wrong password
            await self.hasher.burn_password_check(password)
            raise InvalidCredentials()
        if not await self.hasher.verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user

    async def login(self, email: str, password: str, ip_address: str | None = None) -> TokenPair:
        user = await self.authenticate(email, password)
        pair = await self.issue_token_pair(user)
        logger.info("Login user_id=%s", user.id)
        await self._audit(user.id, "login", "user", user.id, ip_address)
        return pair

    async def issue_token_pair(self, user: User) -> TokenPair:
        access = self.signer.create_access_token(user.id, user.email)
        refresh = self.signer.create_refresh_token(user.id, user.email)
        expires_at = datetime.now(timezone.utc) + self.signer.refresh_ttl
        await self.refresh_tokens.add(
            user.id,
            await self.hasher.hash_token(refresh),
            expires_at,
        )
        TOKENS_ISSUED.inc()
        return TokenPair(access_token=access, refresh_token=refresh)

    def _verify(self, token: str | None) -> dict[str, Any]:
        if not token or not token.strip():
            raise BadRequest()
        result = self.signer.verify(token.strip())
        if not result.ok:
            logger.info("Refresh token rejected by signer: %s", result.status.value)
            raise InvalidToken()
        return result.claims

    async def _find_record(self, user_id: int, token: str) -> RefreshToken | None:
        # Salted hashes: compare against each of the owner's records, first match wins
        for record in await self.refresh_tokens.list_active(user_id):
            if await self.hasher.verify_token(token, record.token_hash):
                return record
        return None

    async def logout(self, refresh_token: str | None, ip_address: str | None = None) -> str:
        claims = self._verify(refresh_token)
        user_id = _subject_id(claims)
        record = await self._find_record(user_id, refresh_token.strip())
        if record is None:
            raise TokenNotFound()
        record_id = record.id
        await self.refresh_tokens.delete(record_id)
        REFRESH_TOKENS_REVOKED.inc()
        logger.info("Logout user_id=%s refresh_token_id=%s", user_id, record_id)
        await self._audit(user_id, "logout", "refresh_token", record_id, ip_address)
        return LOGGED_OUT_MESSAGE

    async def refresh_access_token(self, refresh_token: str | None, ip_address: str | None = None) -> str:
        claims = self._verify(refresh_token)
        if claims.get("type") != REFRESH_TOKEN_TYPE:
            raise WrongTokenType()
        user = await self.accounts.find_by_id(_subject_id(claims))
        if user is None:
            raise AccountNotFound()
        record = await self._find_record(user.id, refresh_token.strip())
        if record is None:
            raise TokenNotFound()
        # Stored expiry is checked on its own: it can be shortened without re-signing
        if _as_utc(record.expires_at) < datetime.now(timezone.utc):
            raise TokenExpired()
        ACCESS_TOKENS_REFRESHED.inc()
        await self._audit(user.id, "refresh", "refresh_token", record.id, ip_address)
        return self.signer.create_access_token(user.id, user.email)
