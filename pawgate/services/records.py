from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.core.errors import RecordNotFound
from pawgate.domain.models import HealthRecord, HealthReminder, MedicalEntry, Medication, Owner
from pawgate.persistence.repos import records as records_repo


# Medical entry categories a third party may ever see.
PARTNER_VISIBLE_RECORD_TYPES = ("vaccination", "allergy", "chronic_condition", "emergency_contact")
# Subset surfaced by the emergency override.
CRITICAL_RECORD_TYPES = ("allergy", "chronic_condition", "emergency_contact")


@dataclass
class ResolvedRecord:
    record: HealthRecord
    owner: Owner | None
    medical_entries: list[MedicalEntry] = field(default_factory=list)
    reminders: list[HealthReminder] = field(default_factory=list)
    medications: list[Medication] = field(default_factory=list)

    @property
    def critical_entries(self) -> list[MedicalEntry]:
        return [entry for entry in self.medical_entries if entry.record_type in CRITICAL_RECORD_TYPES]


async def load_related(
    session: AsyncSession,
    record: HealthRecord,
    *,
    now: datetime,
    medical_entry_limit: int,
) -> ResolvedRecord:
    # Load bounded related collections explicitly; async sessions cannot lazy-load.
    owner = await records_repo.get_owner(session, record.owner_id)
    entries = await records_repo.list_recent_medical_entries(
        session,
        record_id=record.id,
        record_types=PARTNER_VISIBLE_RECORD_TYPES,
        limit=medical_entry_limit,
    )
    reminders = await records_repo.list_active_reminders(session, record_id=record.id, now=now)
    medications = await records_repo.list_active_medications(session, record_id=record.id)
    return ResolvedRecord(
        record=record,
        owner=owner,
        medical_entries=entries,
        reminders=reminders,
        medications=medications,
    )


async def resolve_record(
    session: AsyncSession,
    record_key: str,
    *,
    now: datetime,
    medical_entry_limit: int,
) -> ResolvedRecord:
    """Find a health record by primary id or public Dog ID and load its related data.

    No partner ownership check happens here; visibility is decided by the
    access tier policy.
    """
    record = await records_repo.find_by_key(session, record_key)
    if record is None:
        raise RecordNotFound(audit_reason=f"record_not_found:{record_key}")
    return await load_related(session, record, now=now, medical_entry_limit=medical_entry_limit)
