from session_authority.models.user import User
from session_authority.models.refresh_token import RefreshToken
from session_authority.models.audit_log import AuditLog

__all__ = [
    "User",
    "RefreshToken",
    "AuditLog",
]
