"""Auth failure kinds. Each maps to one HTTP status and a stable code."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for auth failures surfaced to the caller."""

    status_code: int = 401
    code: str = "unauthorized"
    default_message: str = "Not authenticated"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateIdentity(AuthError):
    status_code = 409
    code = "duplicate_identity"
    default_message = "Email already registered"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password"


class BadRequest(AuthError):
    status_code = 400
    code = "bad_request"
    default_message = "Refresh token required"


class InvalidToken(AuthError):
    """Signature invalid, token malformed or expired per the signer."""

    code = "invalid_token"
    default_message = "Invalid or expired refresh token"


class WrongTokenType(AuthError):
    code = "wrong_token_type"
    default_message = "Token is not a refresh token"


class AccountNotFound(AuthError):
    code = "account_not_found"
    default_message = "User not found"


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Refresh token expired"


class TokenNotFound(AuthError):
    code = "token_not_found"
    default_message = "Refresh token not found or revoked"
