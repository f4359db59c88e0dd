from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable

from pawgate.domain.models import HealthReminder, MedicalEntry, Medication
from pawgate.services.records import ResolvedRecord
from pawgate.services.tiers import (
    CRITICAL_MEDICAL_RECORDS,
    EMERGENCY_CONTACT,
    FIELD_GROUPS,
    IDENTITY,
    MEDICAL_RECORDS,
    MEDICATIONS,
    REMINDERS,
    ProjectionPolicy,
)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _medical_entry(entry: MedicalEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "record_type": entry.record_type,
        "title": entry.title,
        "description": entry.description,
        "record_date": _iso(entry.record_date),
        "vet_name": entry.vet_name,
        "vet_clinic": entry.vet_clinic,
        "next_due_date": _iso(entry.next_due_date),
    }


def _medication(medication: Medication) -> dict[str, Any]:
    return {
        "id": medication.id,
        "name": medication.name,
        "dosage": medication.dosage,
        "frequency": medication.frequency,
        "start_date": _iso(medication.start_date),
        "end_date": _iso(medication.end_date),
        "prescribed_by": medication.prescribed_by,
        "instructions": medication.instructions,
        "side_effects": medication.side_effects,
    }


def _reminder(reminder: HealthReminder) -> dict[str, Any]:
    return {
        "id": reminder.id,
        "reminder_type": reminder.reminder_type,
        "medication_name": reminder.medication_name,
        "dosage": reminder.dosage,
        "frequency": reminder.frequency,
        "next_reminder": _iso(reminder.next_reminder),
    }


def _identity_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    record = resolved.record
    owner = resolved.owner
    return {
        "id": record.id,
        "health_id": record.health_id,
        "name": record.name,
        "breed": record.breed,
        "age_months": record.age_months,
        "weight_kg": record.weight_kg,
        "gender": record.gender,
        "vaccination_status": record.vaccination_status,
        "spayed_neutered": record.spayed_neutered,
        "microchip_id": record.microchip_id,
        "photo_url": record.photo_url,
        "owner": {
            "name": owner.name if owner else None,
            "location": owner.location if owner else None,
        },
    }


def _medical_record_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    return {
        "medical_records": [_medical_entry(entry) for entry in resolved.medical_entries],
        "medical_notes": resolved.record.medical_notes,
    }


def _medication_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    return {"current_medications": [_medication(item) for item in resolved.medications]}


def _reminder_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    return {"health_reminders": [_reminder(item) for item in resolved.reminders]}


def _emergency_contact_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    owner = resolved.owner
    return {
        "emergency_contact": resolved.record.emergency_contact,
        "emergency_phone": resolved.record.emergency_phone,
        "owner_contact": {
            "email": owner.email if owner else None,
            "phone": owner.phone if owner else None,
        },
    }


def _critical_medical_fields(resolved: ResolvedRecord) -> dict[str, Any]:
    return {"critical_medical_info": [_medical_entry(entry) for entry in resolved.critical_entries]}


_GROUP_BUILDERS: dict[str, Callable[[ResolvedRecord], dict[str, Any]]] = {
    IDENTITY: _identity_fields,
    MEDICAL_RECORDS: _medical_record_fields,
    MEDICATIONS: _medication_fields,
    REMINDERS: _reminder_fields,
    EMERGENCY_CONTACT: _emergency_contact_fields,
    CRITICAL_MEDICAL_RECORDS: _critical_medical_fields,
}


def project_record(resolved: ResolvedRecord, policy: ProjectionPolicy) -> dict[str, Any]:
    # Hidden groups are omitted entirely, never nulled, so the shape leaks nothing.
    payload: dict[str, Any] = {}
    for group in FIELD_GROUPS:
        if policy.allows(group):
            payload.update(_GROUP_BUILDERS[group](resolved))
    return payload
