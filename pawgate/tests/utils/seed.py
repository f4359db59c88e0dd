from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import select

from pawgate.domain.models import (
    AuditEntry,
    HealthRecord,
    HealthReminder,
    MedicalEntry,
    Medication,
    Owner,
    Partner,
    VerificationGrant,
)
from pawgate.persistence.db import SessionLocal


@dataclass(frozen=True)
class SeededRecord:
    record_id: str
    health_id: str
    owner_id: str


async def create_partner(
    *,
    access_level: str = "medical",
    status: str = "approved",
    verified: bool = True,
    compliance_status: str = "compliant",
    emergency_access_enabled: bool = False,
    api_rate_limit: int | None = 5,
    partner_type: str = "veterinarian",
    name: str | None = None,
) -> str:
    partner_id = f"p-{uuid4().hex}"
    async with SessionLocal() as session:
        session.add(
            Partner(
                id=partner_id,
                name=name or f"Clinic {partner_id[-6:]}",
                partner_type=partner_type,
                email=f"{partner_id}@clinic.test",
                status=status,
                verified=verified,
                compliance_status=compliance_status,
                dog_id_access_level=access_level,
                emergency_access_enabled=emergency_access_enabled,
                api_rate_limit=api_rate_limit,
                total_verifications_count=0,
            )
        )
        await session.commit()
    return partner_id


async def create_record(
    *,
    health_id: str | None = None,
    with_allergy: bool = True,
    with_medication: bool = True,
    with_vaccination: bool = False,
    with_reminder: bool = False,
) -> SeededRecord:
    # One dog with an owner and an optional set of related medical rows.
    owner_id = f"o-{uuid4().hex}"
    record_id = f"d-{uuid4().hex}"
    resolved_health_id = health_id or f"WOF-{uuid4().hex[:6].upper()}"
    async with SessionLocal() as session:
        session.add(
            Owner(
                id=owner_id,
                name="Asha Rao",
                email="asha@example.test",
                phone="+91-90000-00000",
                location="Pune",
            )
        )
        await session.flush()
        session.add(
            HealthRecord(
                id=record_id,
                health_id=resolved_health_id,
                owner_id=owner_id,
                name="Bruno",
                breed="Indie",
                age_months=30,
                weight_kg=18.5,
                gender="male",
                vaccination_status="up_to_date",
                spayed_neutered=True,
                microchip_id="985112000000001",
                medical_notes="Nervous around needles",
                emergency_contact="Ravi Rao",
                emergency_phone="+91-90000-11111",
            )
        )
        await session.flush()
        if with_allergy:
            session.add(
                MedicalEntry(
                    id=f"m-{uuid4().hex}",
                    record_id=record_id,
                    record_type="allergy",
                    title="Chicken protein allergy",
                    description="Skin flare-ups on chicken-based food",
                    record_date=date(2026, 3, 1),
                    vet_name="Dr. Mehta",
                    vet_clinic="Paws Clinic",
                )
            )
        if with_vaccination:
            session.add(
                MedicalEntry(
                    id=f"m-{uuid4().hex}",
                    record_id=record_id,
                    record_type="vaccination",
                    title="Rabies booster",
                    record_date=date(2026, 1, 10),
                    next_due_date=date(2027, 1, 10),
                )
            )
        # Private categories never leave the owner's account.
        session.add(
            MedicalEntry(
                id=f"m-{uuid4().hex}",
                record_id=record_id,
                record_type="grooming",
                title="Nail trim",
                record_date=date(2026, 4, 1),
            )
        )
        if with_medication:
            session.add(
                Medication(
                    id=f"med-{uuid4().hex}",
                    record_id=record_id,
                    name="Apoquel",
                    dosage="16mg",
                    frequency="daily",
                    start_date=date(2026, 3, 2),
                    is_active=True,
                )
            )
            session.add(
                Medication(
                    id=f"med-{uuid4().hex}",
                    record_id=record_id,
                    name="Old antibiotic",
                    is_active=False,
                )
            )
        if with_reminder:
            session.add(
                HealthReminder(
                    id=f"r-{uuid4().hex}",
                    record_id=record_id,
                    reminder_type="medication",
                    medication_name="Apoquel",
                    dosage="16mg",
                    frequency="daily",
                    next_reminder=datetime.now(timezone.utc) + timedelta(hours=6),
                    end_date=datetime.now(timezone.utc) + timedelta(days=30),
                    is_active=True,
                )
            )
        await session.commit()
    return SeededRecord(record_id=record_id, health_id=resolved_health_id, owner_id=owner_id)


async def fetch_grants(*, partner_id: str, record_id: str | None = None) -> list[VerificationGrant]:
    async with SessionLocal() as session:
        stmt = select(VerificationGrant).where(VerificationGrant.partner_id == partner_id)
        if record_id is not None:
            stmt = stmt.where(VerificationGrant.record_id == record_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def fetch_audit_entries(*, partner_id: str) -> list[AuditEntry]:
    async with SessionLocal() as session:
        result = await session.execute(
            select(AuditEntry).where(AuditEntry.partner_id == partner_id).order_by(AuditEntry.id)
        )
        return list(result.scalars().all())


async def fetch_partner(partner_id: str) -> Partner | None:
    async with SessionLocal() as session:
        result = await session.execute(select(Partner).where(Partner.id == partner_id))
        return result.scalar_one_or_none()
