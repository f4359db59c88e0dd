from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.domain.models import Partner


async def get_partner(session: AsyncSession, partner_id: str) -> Partner | None:
    result = await session.execute(select(Partner).where(Partner.id == partner_id))
    return result.scalar_one_or_none()


async def record_verification(session: AsyncSession, *, partner_id: str, accessed_at: datetime) -> None:
    # Increment in SQL so concurrent verifications never lose a count.
    await session.execute(
        update(Partner)
        .where(Partner.id == partner_id)
        .values(
            total_verifications_count=Partner.total_verifications_count + 1,
            last_dog_id_access=accessed_at,
        )
    )
