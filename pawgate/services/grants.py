from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.domain.models import VerificationGrant
from pawgate.persistence.repos import grants as grants_repo
from pawgate.persistence.repos import partners as partners_repo
from pawgate.services.eligibility import AuthenticatedPartner
from pawgate.services.tiers import TIER_FULL, TIER_MEDICAL


logger = logging.getLogger(__name__)

VERIFICATION_METHOD_API = "api_call"


@dataclass(frozen=True)
class GrantOutcome:
    grant_id: str
    access_count: int
    created: bool
    expires_at: datetime | None


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored here is UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(grant: VerificationGrant, now: datetime) -> bool:
    expires_at = _as_utc(grant.expires_at)
    return expires_at is not None and expires_at < now


def grant_permissions(partner: AuthenticatedPartner) -> dict[str, bool]:
    return {
        "medical_records": partner.access_level in (TIER_MEDICAL, TIER_FULL),
        "emergency_access": partner.emergency_access_enabled,
        "appointment_booking": partner.partner_type == "veterinarian",
    }


class GrantStore:
    """Keeps exactly one active grant per (partner, record) pair.

    Repeat access refreshes the existing row. A first access inserts; if a
    concurrent request won that insert, the unique index on active pairs
    rejects ours and the operation is retried once as a refresh.
    """

    def __init__(self, *, ttl_days: int | None = None) -> None:
        self._ttl_days = ttl_days

    async def upsert(
        self,
        session: AsyncSession,
        *,
        partner: AuthenticatedPartner,
        record_id: str,
        purpose: str,
        reason: str,
        now: datetime,
    ) -> GrantOutcome:
        try:
            return await self._attempt(session, partner=partner, record_id=record_id, purpose=purpose, reason=reason, now=now)
        except IntegrityError:
            await session.rollback()
            logger.info(
                "grant_insert_conflict partner_id=%s record_id=%s retrying_as_refresh",
                partner.id,
                record_id,
            )
        return await self._attempt(session, partner=partner, record_id=record_id, purpose=purpose, reason=reason, now=now)

    async def _attempt(
        self,
        session: AsyncSession,
        *,
        partner: AuthenticatedPartner,
        record_id: str,
        purpose: str,
        reason: str,
        now: datetime,
    ) -> GrantOutcome:
        existing = await grants_repo.get_active_grant(
            session, partner_id=partner.id, record_id=record_id, for_update=True
        )
        if existing is not None and is_expired(existing, now):
            # Expired grants are retired, not reused, so the pair can hold a fresh one.
            await grants_repo.deactivate_grant(session, grant=existing, at=now)
            existing = None

        if existing is not None:
            grant = await grants_repo.refresh_grant(
                session,
                grant_id=existing.id,
                values=self._refresh_values(partner=partner, purpose=purpose, reason=reason),
                accessed_at=now,
            )
            created = False
        else:
            grant = self._new_grant(partner=partner, record_id=record_id, purpose=purpose, reason=reason, now=now)
            session.add(grant)
            await session.flush()
            created = True

        await partners_repo.record_verification(session, partner_id=partner.id, accessed_at=now)
        await session.commit()
        return GrantOutcome(
            grant_id=grant.id,
            access_count=int(grant.access_count),
            created=created,
            expires_at=_as_utc(grant.expires_at),
        )

    def _refresh_values(self, *, partner: AuthenticatedPartner, purpose: str, reason: str) -> dict[str, Any]:
        return {
            "access_level": partner.access_level,
            "verification_type": purpose,
            "verification_method": VERIFICATION_METHOD_API,
            "verification_notes": reason,
            "permissions_json": grant_permissions(partner),
        }

    def _new_grant(
        self,
        *,
        partner: AuthenticatedPartner,
        record_id: str,
        purpose: str,
        reason: str,
        now: datetime,
    ) -> VerificationGrant:
        expires_at = now + timedelta(days=self._ttl_days) if self._ttl_days else None
        return VerificationGrant(
            id=uuid4().hex,
            partner_id=partner.id,
            record_id=record_id,
            verification_type=purpose,
            access_level=partner.access_level,
            # API grants are self-granted by the partner.
            granted_by=partner.id,
            verification_method=VERIFICATION_METHOD_API,
            verification_notes=reason,
            permissions_json=grant_permissions(partner),
            is_active=True,
            verified_at=now,
            expires_at=expires_at,
            last_accessed=now,
            access_count=1,
            created_at=now,
            updated_at=now,
        )
