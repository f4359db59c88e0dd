from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.domain.models import AuditEntry


# Attempt types that represent a verification (as opposed to listing or revocation).
VERIFICATION_ATTEMPT_TYPES = ("routine", "emergency")


async def count_successful_verifications(
    session: AsyncSession,
    *,
    partner_id: str,
    since: datetime,
    until: datetime | None = None,
) -> int:
    # Derive usage from the audit trail so the limiter and the trail never disagree.
    stmt = (
        select(func.count())
        .select_from(AuditEntry)
        .where(
            AuditEntry.partner_id == partner_id,
            AuditEntry.success.is_(True),
            AuditEntry.attempt_type.in_(VERIFICATION_ATTEMPT_TYPES),
            AuditEntry.occurred_at >= since,
        )
    )
    if until is not None:
        stmt = stmt.where(AuditEntry.occurred_at < until)
    result = await session.execute(stmt)
    return int(result.scalar() or 0)
