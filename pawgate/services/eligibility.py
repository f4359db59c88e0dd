from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pawgate.core.errors import PartnerIneligible, PartnerNotFound
from pawgate.domain.models import Partner
from pawgate.persistence.repos import partners as partners_repo


STATUS_APPROVED = "approved"
COMPLIANCE_COMPLIANT = "compliant"


@dataclass(frozen=True)
class AuthenticatedPartner:
    """Eligible partner snapshot threaded through the rest of the request."""

    id: str
    name: str
    partner_type: str
    access_level: str
    emergency_access_enabled: bool
    daily_limit: int
    total_verifications_count: int
    last_dog_id_access: datetime | None


def _snapshot(partner: Partner, *, default_daily_limit: int) -> AuthenticatedPartner:
    daily_limit = partner.api_rate_limit if partner.api_rate_limit is not None else default_daily_limit
    return AuthenticatedPartner(
        id=partner.id,
        name=partner.name,
        partner_type=partner.partner_type,
        access_level=partner.dog_id_access_level or "read_only",
        emergency_access_enabled=bool(partner.emergency_access_enabled),
        daily_limit=int(daily_limit),
        total_verifications_count=int(partner.total_verifications_count or 0),
        last_dog_id_access=partner.last_dog_id_access,
    )


def ineligibility_reason(partner: Partner) -> str | None:
    # Internal reasons are audited; callers only ever see PARTNER_INELIGIBLE.
    if partner.status != STATUS_APPROVED:
        return f"not_approved:{partner.status}"
    if not partner.verified:
        return "not_verified"
    if partner.compliance_status != COMPLIANCE_COMPLIANT:
        return f"noncompliant:{partner.compliance_status}"
    return None


async def check_partner_eligibility(
    session: AsyncSession,
    partner_id: str,
    *,
    default_daily_limit: int,
) -> AuthenticatedPartner:
    partner = await partners_repo.get_partner(session, partner_id)
    if partner is None:
        raise PartnerNotFound(audit_reason="partner_not_found")
    reason = ineligibility_reason(partner)
    if reason is not None:
        raise PartnerIneligible(audit_reason=reason)
    return _snapshot(partner, default_daily_limit=default_daily_limit)
