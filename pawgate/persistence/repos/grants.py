from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.domain.models import VerificationGrant


def _unexpired(now: datetime):
    return or_(VerificationGrant.expires_at.is_(None), VerificationGrant.expires_at >= now)


async def get_active_grant(
    session: AsyncSession,
    *,
    partner_id: str,
    record_id: str,
    for_update: bool = False,
) -> VerificationGrant | None:
    # Lock the active row on Postgres so concurrent refreshes serialize on it.
    stmt = select(VerificationGrant).where(
        VerificationGrant.partner_id == partner_id,
        VerificationGrant.record_id == record_id,
        VerificationGrant.is_active.is_(True),
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def refresh_grant(
    session: AsyncSession,
    *,
    grant_id: str,
    values: dict,
    accessed_at: datetime,
) -> VerificationGrant:
    # Increment in SQL rather than in Python to avoid lost updates between readers.
    await session.execute(
        update(VerificationGrant)
        .where(VerificationGrant.id == grant_id)
        .values(
            access_count=VerificationGrant.access_count + 1,
            last_accessed=accessed_at,
            updated_at=accessed_at,
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        select(VerificationGrant)
        .where(VerificationGrant.id == grant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def deactivate_grant(
    session: AsyncSession,
    *,
    grant: VerificationGrant,
    at: datetime,
    reason: str | None = None,
    revoked: bool = False,
) -> None:
    grant.is_active = False
    grant.updated_at = at
    if revoked:
        grant.revoked_at = at
        grant.revoked_reason = reason
    await session.flush()


async def get_partner_grant(
    session: AsyncSession, *, partner_id: str, grant_id: str
) -> VerificationGrant | None:
    # Scope by partner so one partner cannot probe another partner's grant ids.
    result = await session.execute(
        select(VerificationGrant).where(
            VerificationGrant.id == grant_id,
            VerificationGrant.partner_id == partner_id,
        )
    )
    return result.scalar_one_or_none()


async def list_partner_grants(
    session: AsyncSession,
    *,
    partner_id: str,
    now: datetime,
    include_expired: bool = False,
    verification_type: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[VerificationGrant], int]:
    filters = [
        VerificationGrant.partner_id == partner_id,
        VerificationGrant.is_active.is_(True),
    ]
    if not include_expired:
        filters.append(_unexpired(now))
    if verification_type:
        filters.append(VerificationGrant.verification_type == verification_type)

    total = await session.scalar(select(func.count()).select_from(VerificationGrant).where(*filters))
    result = await session.execute(
        select(VerificationGrant)
        .where(*filters)
        .order_by(VerificationGrant.last_accessed.desc(), VerificationGrant.id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), int(total or 0)
