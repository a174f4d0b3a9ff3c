"""Password and refresh-token hashing, JWT creation and verification."""

from __future__ import annotations

import asyncio
import enum
import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from session_authority.config import settings

REFRESH_TOKEN_TYPE = "refresh"

# One throwaway bcrypt hash per work factor
_DUMMY_HASHES: dict[int, str] = {}


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes
    return password.encode("utf-8")[:72]


def _token_bytes(token: str) -> bytes:
    # Signed tokens share a long common prefix (header, sub, email), which would
    # collide under bcrypt's 72-byte cut-off; digest first so the whole token counts.
    return hashlib.sha256(token.encode("utf-8")).hexdigest().encode("ascii")


class SecretHasher:
    """Salted bcrypt hashing with constant-time comparison.

    The bcrypt work runs in a worker thread so callers on the event loop only
    suspend while a hash is computed.
    """

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds if rounds is not None else settings.bcrypt_rounds

    def _hash(self, data: bytes) -> str:
        return bcrypt.hashpw(data, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    @staticmethod
    def _check(data: bytes, hashed: str) -> bool:
        return bcrypt.checkpw(data, hashed.encode("utf-8"))

    async def hash_password(self, password: str) -> str:
        return await asyncio.to_thread(self._hash, _password_bytes(password))

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._check, _password_bytes(password), password_hash)

    async def burn_password_check(self, password: str) -> None:
        """Spend one password verification on a throwaway hash, for callers with no account to check."""
        dummy = _DUMMY_HASHES.get(self.rounds)
        if dummy is None:
            dummy = _DUMMY_HASHES[self.rounds] = await asyncio.to_thread(self._hash, b"unused-password")
        await self.verify_password(password, dummy)

    async def hash_token(self, token: str) -> str:
        return await asyncio.to_thread(self._hash, _token_bytes(token))

    async def verify_token(self, token: str, token_hash: str) -> bool:
        return await asyncio.to_thread(self._check, _token_bytes(token), token_hash)


class TokenStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of verifying a signed token. `claims` is empty unless VALID."""

    status: TokenStatus
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.VALID


def _get_jwt_signing_key_and_algorithm() -> tuple[str, str]:
    """Return (key, algorithm) for signing tokens."""
    if settings.use_rs256:
        return settings.jwt_private_key.strip(), "RS256"
    return settings.secret_key, settings.jwt_algorithm


def _get_jwt_verification_key_and_algorithms() -> tuple[str, list[str]]:
    """Return (key, algorithms) for verifying tokens."""
    if settings.use_rs256:
        return settings.jwt_public_key.strip(), ["RS256"]
    return settings.secret_key, [settings.jwt_algorithm]


class TokenSigner:
    """Issues and verifies signed, expiring claim sets (JWT).

    Keys are read from settings on every call so a key change (or a patched
    setting in tests) takes effect without rebuilding the signer.
    """

    def __init__(
        self,
        access_ttl: timedelta | None = None,
        refresh_ttl: timedelta | None = None,
    ) -> None:
        self.access_ttl = access_ttl or timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = refresh_ttl or timedelta(days=settings.refresh_token_expire_days)

    def sign(self, claims: dict[str, Any], ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": now + ttl,
            "jti": secrets.token_hex(16),
        }
        key, algorithm = _get_jwt_signing_key_and_algorithm()
        result = jwt.encode(payload, key, algorithm=algorithm)
        return result if isinstance(result, str) else result.decode("utf-8")

    def create_access_token(self, user_id: int, email: str) -> str:
        return self.sign({"sub": str(user_id), "email": email}, self.access_ttl)

    def create_refresh_token(self, user_id: int, email: str) -> str:
        return self.sign(
            {"sub": str(user_id), "email": email, "type": REFRESH_TOKEN_TYPE},
            self.refresh_ttl,
        )

    def verify(self, token: str) -> TokenVerification:
        key, algorithms = _get_jwt_verification_key_and_algorithms()
        try:
            claims = jwt.decode(token, key, algorithms=algorithms)
        except ExpiredSignatureError:
            return TokenVerification(TokenStatus.EXPIRED)
        except JWTError:
            return TokenVerification(TokenStatus.MALFORMED)
        return TokenVerification(TokenStatus.VALID, claims)
