"""partner dog id gateway tables

Revision ID: 0001_partner_gateway
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_partner_gateway"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "partners",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("partner_type", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("compliance_status", sa.String(), nullable=False, server_default="noncompliant"),
        sa.Column("dog_id_access_level", sa.String(), nullable=False, server_default="read_only"),
        sa.Column("emergency_access_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("api_rate_limit", sa.Integer(), nullable=True),
        sa.Column("total_verifications_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_dog_id_access", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "owners",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "health_records",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("health_id", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("owners.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("breed", sa.String(), nullable=True),
        sa.Column("age_months", sa.Integer(), nullable=True),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("vaccination_status", sa.String(), nullable=True),
        sa.Column("spayed_neutered", sa.Boolean(), nullable=True),
        sa.Column("microchip_id", sa.String(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("medical_notes", sa.Text(), nullable=True),
        sa.Column("emergency_contact", sa.String(), nullable=True),
        sa.Column("emergency_phone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_health_records_health_id", "health_records", ["health_id"], unique=True)
    op.create_index("ix_health_records_owner_id", "health_records", ["owner_id"], unique=False)

    op.create_table(
        "medical_entries",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("record_id", sa.String(), sa.ForeignKey("health_records.id"), nullable=False),
        sa.Column("record_type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("record_date", sa.Date(), nullable=False),
        sa.Column("vet_name", sa.String(), nullable=True),
        sa.Column("vet_clinic", sa.String(), nullable=True),
        sa.Column("next_due_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_medical_entries_record_id", "medical_entries", ["record_id"], unique=False)
    op.create_index(
        "ix_medical_entries_record_date",
        "medical_entries",
        ["record_id", "record_date"],
        unique=False,
    )

    op.create_table(
        "health_reminders",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("record_id", sa.String(), sa.ForeignKey("health_records.id"), nullable=False),
        sa.Column("reminder_type", sa.String(), nullable=False),
        sa.Column("medication_name", sa.String(), nullable=True),
        sa.Column("dosage", sa.String(), nullable=True),
        sa.Column("frequency", sa.String(), nullable=True),
        sa.Column("next_reminder", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_health_reminders_record_id", "health_reminders", ["record_id"], unique=False)

    op.create_table(
        "medications",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("record_id", sa.String(), sa.ForeignKey("health_records.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("dosage", sa.String(), nullable=True),
        sa.Column("frequency", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("prescribed_by", sa.String(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("side_effects", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_medications_record_id", "medications", ["record_id"], unique=False)

    op.create_table(
        "verification_grants",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("partner_id", sa.String(), sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("record_id", sa.String(), sa.ForeignKey("health_records.id"), nullable=False),
        sa.Column("verification_type", sa.String(), nullable=False),
        sa.Column("access_level", sa.String(), nullable=False, server_default="read_only"),
        sa.Column("granted_by", sa.String(), nullable=False),
        sa.Column("verification_method", sa.String(), nullable=False),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("permissions_json", postgresql.JSONB(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_accessed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_verification_grants_partner_id", "verification_grants", ["partner_id"], unique=False)
    op.create_index("ix_verification_grants_record_id", "verification_grants", ["record_id"], unique=False)
    op.create_index(
        "ix_verification_grants_partner_last_accessed",
        "verification_grants",
        ["partner_id", "last_accessed"],
        unique=False,
    )
    # Converge racing first-time verifications onto one active grant per pair.
    op.create_index(
        "uq_verification_grants_active_pair",
        "verification_grants",
        ["partner_id", "record_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verification_id", sa.String(), nullable=True, unique=True),
        sa.Column("partner_id", sa.String(), nullable=False),
        sa.Column("record_id", sa.String(), nullable=True),
        sa.Column("record_key", sa.String(), nullable=True),
        sa.Column("attempt_type", sa.String(), nullable=False),
        sa.Column("action_type", sa.String(), nullable=False, server_default="dog_id_access"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("access_level", sa.String(), nullable=True),
        sa.Column("request_id", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("flagged_for_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_audit_entries_occurred_at", "audit_entries", ["occurred_at"], unique=False)
    op.create_index("ix_audit_entries_partner_id", "audit_entries", ["partner_id"], unique=False)
    op.create_index("ix_audit_entries_record_id", "audit_entries", ["record_id"], unique=False)
    op.create_index("ix_audit_entries_request_id", "audit_entries", ["request_id"], unique=False)
    # Serves the daily limiter's count of a partner's successful verifications.
    op.create_index(
        "ix_audit_entries_partner_occurred_at",
        "audit_entries",
        ["partner_id", "occurred_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_audit_entries_partner_occurred_at", table_name="audit_entries")
    op.drop_index("ix_audit_entries_request_id", table_name="audit_entries")
    op.drop_index("ix_audit_entries_record_id", table_name="audit_entries")
    op.drop_index("ix_audit_entries_partner_id", table_name="audit_entries")
    op.drop_index("ix_audit_entries_occurred_at", table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("uq_verification_grants_active_pair", table_name="verification_grants")
    op.drop_index("ix_verification_grants_partner_last_accessed", table_name="verification_grants")
    op.drop_index("ix_verification_grants_record_id", table_name="verification_grants")
    op.drop_index("ix_verification_grants_partner_id", table_name="verification_grants")
    op.drop_table("verification_grants")
    op.drop_index("ix_medications_record_id", table_name="medications")
    op.drop_table("medications")
    op.drop_index("ix_health_reminders_record_id", table_name="health_reminders")
    op.drop_table("health_reminders")
    op.drop_index("ix_medical_entries_record_date", table_name="medical_entries")
    op.drop_index("ix_medical_entries_record_id", table_name="medical_entries")
    op.drop_table("medical_entries")
    op.drop_index("ix_health_records_owner_id", table_name="health_records")
    op.drop_index("ix_health_records_health_id", table_name="health_records")
    op.drop_table("health_records")
    op.drop_table("owners")
    op.drop_table("partners")
