from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Callable
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawgate.core.config import Settings, get_settings
from pawgate.core.errors import (
    GatewayError,
    GrantNotFound,
    InternalGatewayError,
    InvalidRequest,
    PartnerNotFound,
)
from pawgate.domain.models import VerificationGrant
from pawgate.persistence.repos import grants as grants_repo
from pawgate.persistence.repos import partners as partners_repo
from pawgate.persistence.repos import records as records_repo
from pawgate.services import audit
from pawgate.services.auth.credentials import PartnerCredential
from pawgate.services.eligibility import check_partner_eligibility
from pawgate.services.grants import GrantStore
from pawgate.services.projection import project_record
from pawgate.services.rate_limit import DailyVerificationLimiter
from pawgate.services.records import load_related, resolve_record
from pawgate.services.tiers import PURPOSE_ROUTINE, PURPOSES, resolve_policy


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


@dataclass(frozen=True)
class VerifyCommand:
    record_key: str | None
    reason: str | None
    purpose: str | None = None


@dataclass
class _Attempt:
    # Everything known about the attempt so far; the failure audit entry is built from it.
    partner_id: str
    attempt_type: str
    record_key: str | None = None
    reason: str | None = None
    record_id: str | None = None
    access_level: str | None = None


def validate_verify_command(command: VerifyCommand) -> tuple[str, str, str]:
    record_key = (command.record_key or "").strip()
    reason = (command.reason or "").strip()
    if not record_key or not reason:
        raise InvalidRequest(audit_reason="missing_record_key_or_reason")
    purpose = (command.purpose or PURPOSE_ROUTINE).strip().lower()
    if purpose not in PURPOSES:
        raise InvalidRequest(
            "purpose must be 'routine' or 'emergency'",
            audit_reason=f"invalid_purpose:{purpose}",
        )
    return record_key, reason, purpose


class PartnerGateway:
    """Credential-gated Dog ID lookups for third-party partners.

    Order of checks: eligibility, daily limit, record resolution, tier policy,
    grant upsert, audit, projection. Every outcome after authentication is
    audited in a transaction of its own.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        limiter: DailyVerificationLimiter | None = None,
        grant_store: GrantStore | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._time_provider = time_provider or _utc_now
        self._limiter = limiter or DailyVerificationLimiter(
            tz_name=self._settings.rate_limit_timezone,
            time_provider=self._time_provider,
        )
        self._grant_store = grant_store or GrantStore(ttl_days=self._settings.grant_ttl_days)

    async def verify(
        self,
        credential: PartnerCredential,
        command: VerifyCommand,
        *,
        client: audit.ClientContext | None = None,
    ) -> dict[str, Any]:
        now = self._time_provider()
        requested_purpose = (command.purpose or PURPOSE_ROUTINE).strip().lower()
        attempt = _Attempt(
            partner_id=credential.partner_id,
            attempt_type=requested_purpose if requested_purpose in PURPOSES else PURPOSE_ROUTINE,
            record_key=command.record_key,
            reason=command.reason,
        )
        try:
            record_key, reason, purpose = validate_verify_command(command)
            async with self._session_factory() as session:
                partner = await check_partner_eligibility(
                    session,
                    credential.partner_id,
                    default_daily_limit=self._settings.default_partner_daily_limit,
                )
                attempt.access_level = partner.access_level
                # Count-then-act: concurrent requests at the ceiling can each pass before either is audited.
                await self._limiter.enforce(session, partner_id=partner.id, daily_limit=partner.daily_limit)
                resolved = await resolve_record(
                    session,
                    record_key,
                    now=now,
                    medical_entry_limit=self._settings.verify_medical_entry_limit,
                )
                attempt.record_id = resolved.record.id
                policy = resolve_policy(
                    tier=partner.access_level,
                    purpose=purpose,
                    emergency_access_enabled=partner.emergency_access_enabled,
                )
                projected = project_record(resolved, policy)
                record_name = resolved.record.name

            async with self._session_factory() as session:
                grant = await self._grant_store.upsert(
                    session,
                    partner=partner,
                    record_id=attempt.record_id,
                    purpose=purpose,
                    reason=reason,
                    now=now,
                )
        except GatewayError as exc:
            await self._audit_failure(attempt, exc, client=client, occurred_at=now)
            raise
        except Exception as exc:
            logger.exception(
                "dog_id_verification_failed partner_id=%s record_key=%s",
                attempt.partner_id,
                attempt.record_key,
            )
            internal = InternalGatewayError(audit_reason=f"{type(exc).__name__}: {exc}")
            await self._audit_failure(attempt, internal, client=client, occurred_at=now)
            raise internal from exc

        verification_id = uuid4().hex
        await audit.record_attempt(
            self._session_factory,
            partner_id=partner.id,
            attempt_type=purpose,
            success=True,
            record_id=attempt.record_id,
            record_key=record_key,
            reason=reason,
            access_level=partner.access_level,
            verification_id=verification_id,
            client=client,
            occurred_at=now,
            metadata={
                "grant_id": grant.grant_id,
                "grant_created": grant.created,
                "health_data_accessed": policy.as_flags(),
                "emergency_override": policy.emergency_override_applied,
                "partner_name": partner.name,
                "partner_type": partner.partner_type,
                "dog_name": record_name,
            },
        )
        return {
            "success": True,
            "verification_id": verification_id,
            "record": projected,
            "access_level": partner.access_level,
            "emergency_override": policy.emergency_override_applied,
            "verified_at": _iso(now),
            "partner": {"name": partner.name, "type": partner.partner_type},
            "grant": {
                "id": grant.grant_id,
                "access_count": grant.access_count,
                "created": grant.created,
                "expires_at": _iso(grant.expires_at),
            },
        }

    async def list_grants(
        self,
        credential: PartnerCredential,
        *,
        offset: int = 0,
        limit: int | None = None,
        include_expired: bool = False,
        verification_type: str | None = None,
    ) -> dict[str, Any]:
        now = self._time_provider()
        page_size = limit or self._settings.list_default_page_size
        page_size = max(1, min(page_size, self._settings.list_max_page_size))
        async with self._session_factory() as session:
            partner = await check_partner_eligibility(
                session,
                credential.partner_id,
                default_daily_limit=self._settings.default_partner_daily_limit,
            )
            grants, total = await grants_repo.list_partner_grants(
                session,
                partner_id=partner.id,
                now=now,
                include_expired=include_expired,
                verification_type=verification_type,
                offset=offset,
                limit=page_size,
            )
            items = [await self._grant_summary(session, grant, now=now) for grant in grants]
            used_today = await self._limiter.used_today(session, partner_id=partner.id)
        return {
            "verifications": items,
            "pagination": {
                "total": total,
                "limit": page_size,
                "offset": offset,
                "has_more": offset + page_size < total,
            },
            "analytics": {
                "verifications_today": used_today,
                "daily_limit": partner.daily_limit,
            },
        }

    async def revoke_grant(
        self,
        credential: PartnerCredential,
        grant_id: str,
        *,
        reason: str | None = None,
        client: audit.ClientContext | None = None,
    ) -> dict[str, Any]:
        now = self._time_provider()
        attempt = _Attempt(
            partner_id=credential.partner_id,
            attempt_type=audit.ATTEMPT_API_CALL,
            reason=reason,
        )
        try:
            async with self._session_factory() as session:
                partner = await partners_repo.get_partner(session, credential.partner_id)
                if partner is None:
                    raise PartnerNotFound(audit_reason="partner_not_found")
                grant = await grants_repo.get_partner_grant(
                    session, partner_id=partner.id, grant_id=grant_id
                )
                if grant is None or not grant.is_active:
                    raise GrantNotFound(audit_reason=f"grant_not_found:{grant_id}")
                attempt.record_id = grant.record_id
                attempt.access_level = grant.access_level
                await grants_repo.deactivate_grant(
                    session, grant=grant, at=now, reason=reason, revoked=True
                )
                await session.commit()
        except GatewayError as exc:
            await self._audit_failure(attempt, exc, client=client, occurred_at=now, action_type="grant_revoke")
            raise
        except Exception as exc:
            logger.exception("grant_revoke_failed partner_id=%s grant_id=%s", attempt.partner_id, grant_id)
            internal = InternalGatewayError(audit_reason=f"{type(exc).__name__}: {exc}")
            await self._audit_failure(attempt, internal, client=client, occurred_at=now, action_type="grant_revoke")
            raise internal from exc

        await audit.record_attempt(
            self._session_factory,
            partner_id=credential.partner_id,
            attempt_type=audit.ATTEMPT_API_CALL,
            success=True,
            record_id=attempt.record_id,
            reason=reason,
            access_level=attempt.access_level,
            client=client,
            occurred_at=now,
            action_type="grant_revoke",
            metadata={"grant_id": grant_id},
        )
        return {"id": grant_id, "is_active": False, "revoked_at": _iso(now), "revoked_reason": reason}

    async def _grant_summary(
        self, session: AsyncSession, grant: VerificationGrant, *, now: datetime
    ) -> dict[str, Any]:
        # Listings are filtered by the tier stored on each grant, never the partner's current tier.
        permissions = grant.permissions_json or {}
        policy = resolve_policy(
            tier=grant.access_level,
            purpose=PURPOSE_ROUTINE,
            emergency_access_enabled=bool(permissions.get("emergency_access")),
        )
        record = await records_repo.get_record(session, grant.record_id)
        projected = None
        if record is not None:
            resolved = await load_related(
                session,
                record,
                now=now,
                medical_entry_limit=self._settings.list_medical_entry_limit,
            )
            projected = project_record(resolved, policy)
        return {
            "id": grant.id,
            "record_id": grant.record_id,
            "verification_type": grant.verification_type,
            "access_level": grant.access_level,
            "verification_method": grant.verification_method,
            "verification_notes": grant.verification_notes,
            "permissions": permissions,
            "is_active": grant.is_active,
            "verified_at": _iso(grant.verified_at),
            "expires_at": _iso(grant.expires_at),
            "last_accessed": _iso(grant.last_accessed),
            "access_count": grant.access_count,
            "record": projected,
        }

    async def _audit_failure(
        self,
        attempt: _Attempt,
        exc: GatewayError,
        *,
        client: audit.ClientContext | None,
        occurred_at: datetime,
        action_type: str = "dog_id_access",
    ) -> None:
        await audit.record_attempt(
            self._session_factory,
            partner_id=attempt.partner_id,
            attempt_type=attempt.attempt_type,
            success=False,
            record_id=attempt.record_id,
            record_key=attempt.record_key,
            reason=attempt.reason,
            failure_reason=exc.audit_reason,
            error_code=exc.code,
            access_level=attempt.access_level,
            client=client,
            occurred_at=occurred_at,
            action_type=action_type,
            metadata={"status_code": exc.status_code},
        )
