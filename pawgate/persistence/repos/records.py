from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.domain.models import HealthRecord, HealthReminder, MedicalEntry, Medication, Owner


async def find_by_key(session: AsyncSession, record_key: str) -> HealthRecord | None:
    # Accept either the primary id or the public Dog ID; primary id wins on a tie.
    result = await session.execute(
        select(HealthRecord).where(
            or_(HealthRecord.id == record_key, HealthRecord.health_id == record_key)
        )
    )
    matches = list(result.scalars().all())
    if not matches:
        return None
    for record in matches:
        if record.id == record_key:
            return record
    return matches[0]


async def get_owner(session: AsyncSession, owner_id: str) -> Owner | None:
    result = await session.execute(select(Owner).where(Owner.id == owner_id))
    return result.scalar_one_or_none()


async def list_recent_medical_entries(
    session: AsyncSession,
    *,
    record_id: str,
    record_types: Iterable[str],
    limit: int,
) -> list[MedicalEntry]:
    result = await session.execute(
        select(MedicalEntry)
        .where(
            MedicalEntry.record_id == record_id,
            MedicalEntry.record_type.in_(list(record_types)),
        )
        .order_by(MedicalEntry.record_date.desc(), MedicalEntry.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_active_reminders(
    session: AsyncSession, *, record_id: str, now: datetime
) -> list[HealthReminder]:
    # Open-ended reminders (no end date) stay active until switched off.
    result = await session.execute(
        select(HealthReminder)
        .where(
            HealthReminder.record_id == record_id,
            HealthReminder.is_active.is_(True),
            or_(HealthReminder.end_date.is_(None), HealthReminder.end_date >= now),
        )
        .order_by(HealthReminder.next_reminder, HealthReminder.id)
    )
    return list(result.scalars().all())


async def list_active_medications(session: AsyncSession, *, record_id: str) -> list[Medication]:
    result = await session.execute(
        select(Medication)
        .where(Medication.record_id == record_id, Medication.is_active.is_(True))
        .order_by(Medication.name, Medication.id)
    )
    return list(result.scalars().all())


async def get_record(session: AsyncSession, record_id: str) -> HealthRecord | None:
    result = await session.execute(select(HealthRecord).where(HealthRecord.id == record_id))
    return result.scalar_one_or_none()
