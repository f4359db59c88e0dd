from __future__ import annotations

from datetime import date

from pawgate.domain.models import HealthRecord, MedicalEntry, Medication, Owner
from pawgate.services.projection import project_record
from pawgate.services.records import ResolvedRecord
from pawgate.services.tiers import resolve_policy


def _resolved() -> ResolvedRecord:
    owner = Owner(id="o1", name="Asha", email="asha@example.test", phone="123", location="Pune")
    record = HealthRecord(
        id="d1",
        health_id="WOF-AB123",
        owner_id="o1",
        name="Bruno",
        breed="Indie",
        medical_notes="Nervous",
        emergency_contact="Ravi",
        emergency_phone="456",
    )
    entries = [
        MedicalEntry(
            id="m1",
            record_id="d1",
            record_type="allergy",
            title="Chicken",
            record_date=date(2026, 3, 1),
        ),
        MedicalEntry(
            id="m2",
            record_id="d1",
            record_type="vaccination",
            title="Rabies",
            record_date=date(2026, 1, 1),
        ),
    ]
    medications = [Medication(id="med1", record_id="d1", name="Apoquel", dosage="16mg")]
    return ResolvedRecord(record=record, owner=owner, medical_entries=entries, medications=medications)


def test_read_only_projection_omits_hidden_keys() -> None:
    payload = project_record(
        _resolved(), resolve_policy(tier="read_only", purpose="emergency", emergency_access_enabled=True)
    )
    assert payload["health_id"] == "WOF-AB123"
    assert payload["owner"] == {"name": "Asha", "location": "Pune"}
    for key in (
        "medical_records",
        "medical_notes",
        "current_medications",
        "health_reminders",
        "emergency_contact",
        "emergency_phone",
        "owner_contact",
        "critical_medical_info",
    ):
        assert key not in payload


def test_medical_projection_includes_entries_and_medications() -> None:
    payload = project_record(
        _resolved(), resolve_policy(tier="medical", purpose="routine", emergency_access_enabled=False)
    )
    assert [entry["id"] for entry in payload["medical_records"]] == ["m1", "m2"]
    assert payload["medical_records"][0]["record_date"] == "2026-03-01"
    assert payload["current_medications"][0]["name"] == "Apoquel"
    assert payload["health_reminders"] == []
    assert "emergency_contact" not in payload


def test_override_projection_adds_only_critical_entries() -> None:
    payload = project_record(
        _resolved(),
        resolve_policy(tier="emergency_override", purpose="emergency", emergency_access_enabled=True),
    )
    assert [entry["id"] for entry in payload["critical_medical_info"]] == ["m1"]
    assert payload["emergency_contact"] == "Ravi"
    assert payload["owner_contact"] == {"email": "asha@example.test", "phone": "123"}
    assert "medical_records" not in payload
    assert "current_medications" not in payload


def test_projection_handles_missing_owner() -> None:
    resolved = _resolved()
    resolved.owner = None
    payload = project_record(
        resolved, resolve_policy(tier="full", purpose="routine", emergency_access_enabled=False)
    )
    assert payload["owner"] == {"name": None, "location": None}
    assert payload["owner_contact"] == {"email": None, "phone": None}
