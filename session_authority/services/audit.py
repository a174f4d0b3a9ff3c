from sqlalchemy.ext.asyncio import AsyncSession

from session_authority.models.audit_log import AuditLog


async def log_action(
    session: AsyncSession,
    user_id: int | None,
    action: str,
    resource: str,
    resource_id: int | str | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
) -> None:
    session.add(
        AuditLog(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=details,
            ip_address=ip_address,
        )
    )
    await session.flush()


class SqlAuditTrail:
    """Audit sink bound to a request session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record(
        self,
        user_id: int | None,
        action: str,
        resource: str,
        resource_id: int | str | None = None,
        ip_address: str | None = None,
    ) -> None:
        await log_action(self.session, user_id, action, resource, resource_id, ip_address=ip_address)
