"""Scheduled cleanup of refresh-token records past their expiry."""

import logging
from datetime import datetime

from session_authority.core.metrics import REFRESH_TOKENS_PURGED
from session_authority.db.session import async_session_maker
from session_authority.services.stores import SqlRefreshTokenStore

logger = logging.getLogger(__name__)


async def purge_expired_refresh_tokens(now: datetime | None = None) -> int:
    """Delete every refresh-token record whose expires_at has passed. Returns rows removed."""
    async with async_session_maker() as session:
        removed = await SqlRefreshTokenStore(session).delete_expired(now)
        await session.commit()
    if removed:
        REFRESH_TOKENS_PURGED.inc(removed)
        logger.info("Purged %d expired refresh tokens", removed)
    return removed
