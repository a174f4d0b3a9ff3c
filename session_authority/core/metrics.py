"""Prometheus counters for the token lifecycle."""

from prometheus_client import Counter

TOKENS_ISSUED = Counter(
    "session_authority_token_pairs_issued_total",
    "Access/refresh token pairs issued on login",
)
ACCESS_TOKENS_REFRESHED = Counter(
    "session_authority_access_tokens_refreshed_total",
    "Access tokens minted from a refresh token",
)
REFRESH_TOKENS_REVOKED = Counter(
    "session_authority_refresh_tokens_revoked_total",
    "Refresh token records deleted on logout",
)
REFRESH_TOKENS_PURGED = Counter(
    "session_authority_refresh_tokens_purged_total",
    "Expired refresh token records removed by the purge job",
)
AUTH_FAILURES = Counter(
    "session_authority_auth_failures_total",
    "Auth failures by kind",
    ["code"],
)
