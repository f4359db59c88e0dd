from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Use JSONB on Postgres while keeping SQLite usable for local and test databases.
JsonType = JSON().with_variant(JSONB(), "postgresql")
# SQLite only autoincrements INTEGER primary keys.
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Partner(Base):
    __tablename__ = "partners"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    # veterinarian, clinic, corporate, trainer, ...
    partner_type: Mapped[str] = mapped_column(String)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # pending | approved | suspended
    status: Mapped[str] = mapped_column(String, default="pending", nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # compliant | noncompliant
    compliance_status: Mapped[str] = mapped_column(String, default="noncompliant", nullable=False)
    # read_only | medical | full | emergency_override
    dog_id_access_level: Mapped[str] = mapped_column(String, default="read_only", nullable=False)
    emergency_access_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Daily ceiling on successful verifications; null falls back to the configured default.
    api_rate_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_verifications_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_dog_id_access: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Owner(Base):
    __tablename__ = "owners"

    # Account holder that owns one or more health records.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class HealthRecord(Base):
    __tablename__ = "health_records"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Public Dog ID printed on tags and QR codes; lookups accept it interchangeably with id.
    health_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("owners.id"), index=True)
    name: Mapped[str] = mapped_column(String)
    breed: Mapped[str | None] = mapped_column(String, nullable=True)
    age_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    gender: Mapped[str | None] = mapped_column(String, nullable=True)
    vaccination_status: Mapped[str | None] = mapped_column(String, nullable=True)
    spayed_neutered: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    microchip_id: Mapped[str | None] = mapped_column(String, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String, nullable=True)
    medical_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[str | None] = mapped_column(String, nullable=True)
    emergency_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class MedicalEntry(Base):
    __tablename__ = "medical_entries"
    __table_args__ = (
        Index("ix_medical_entries_record_date", "record_id", "record_date"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    record_id: Mapped[str] = mapped_column(String, ForeignKey("health_records.id"), index=True)
    # vaccination | allergy | chronic_condition | emergency_contact | checkup | ...
    record_type: Mapped[str] = mapped_column(String)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    record_date: Mapped[date] = mapped_column(Date)
    vet_name: Mapped[str | None] = mapped_column(String, nullable=True)
    vet_clinic: Mapped[str | None] = mapped_column(String, nullable=True)
    next_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class HealthReminder(Base):
    __tablename__ = "health_reminders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    record_id: Mapped[str] = mapped_column(String, ForeignKey("health_records.id"), index=True)
    reminder_type: Mapped[str] = mapped_column(String)
    medication_name: Mapped[str | None] = mapped_column(String, nullable=True)
    dosage: Mapped[str | None] = mapped_column(String, nullable=True)
    frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    next_reminder: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Medication(Base):
    __tablename__ = "medications"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    record_id: Mapped[str] = mapped_column(String, ForeignKey("health_records.id"), index=True)
    name: Mapped[str] = mapped_column(String)
    dosage: Mapped[str | None] = mapped_column(String, nullable=True)
    frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    prescribed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    side_effects: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class VerificationGrant(Base):
    __tablename__ = "verification_grants"
    __table_args__ = (
        # At most one active grant per (partner, record); conflicting inserts fall back to refresh.
        Index(
            "uq_verification_grants_active_pair",
            "partner_id",
            "record_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("ix_verification_grants_partner_last_accessed", "partner_id", "last_accessed"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    partner_id: Mapped[str] = mapped_column(String, ForeignKey("partners.id"), index=True)
    record_id: Mapped[str] = mapped_column(String, ForeignKey("health_records.id"), index=True)
    # Purpose of the most recent access: routine | emergency.
    verification_type: Mapped[str] = mapped_column(String)
    # Tier captured at grant/refresh time; later listings are filtered by it.
    access_level: Mapped[str] = mapped_column(String, default="read_only", nullable=False)
    granted_by: Mapped[str] = mapped_column(String)
    verification_method: Mapped[str] = mapped_column(String)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions_json: Mapped[dict[str, Any] | None] = mapped_column(JsonType, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    verified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    access_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)


class AuditEntry(Base):
    __tablename__ = "audit_entries"
    __table_args__ = (
        Index("ix_audit_entries_partner_occurred_at", "partner_id", "occurred_at"),
    )

    # Use a monotonic numeric id for efficient pagination and ordering.
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    # Identifier returned to the caller as verification_id on success.
    verification_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    # No FK: unknown partner ids from valid credentials are still audited.
    partner_id: Mapped[str] = mapped_column(String, index=True)
    record_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    # Lookup key as supplied by the caller (primary id or public Dog ID).
    record_key: Mapped[str | None] = mapped_column(String, nullable=True)
    # routine | emergency | api_call
    attempt_type: Mapped[str] = mapped_column(String)
    action_type: Mapped[str] = mapped_column(String, default="dog_id_access", nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String, nullable=True)
    access_level: Mapped[str | None] = mapped_column(String, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String, nullable=True)
    risk_score: Mapped[int] = mapped_column(Integer)
    flagged_for_review: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JsonType, default=dict)
