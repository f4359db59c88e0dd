from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

import jwt

from pawgate.core.config import Settings, get_settings
from pawgate.core.errors import Unauthenticated


logger = logging.getLogger(__name__)

# Claim names accepted for the partner identifier, in priority order.
PARTNER_ID_CLAIMS = ("partner_id", "partnerId", "sub")


@dataclass(frozen=True)
class PartnerCredential:
    # Verified bearer credential; carries identity only, never eligibility.
    partner_id: str
    claims: dict[str, Any] = field(default_factory=dict)


def parse_bearer_token(header_value: str | None) -> str:
    # Enforce Bearer token format for partner authentication.
    if not header_value:
        raise Unauthenticated("Authorization header required")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthenticated("Authorization header required")
    return parts[1]


def validate_credential(token: str, *, settings: Settings | None = None) -> PartnerCredential:
    """Verify signature and expiry of a partner token and extract the partner id.

    Raises ``Unauthenticated`` on any failure. No partner context is available
    at that point, so callers must not attempt an audit write.
    """
    resolved = settings or get_settings()
    options = {"require": ["exp"]}
    try:
        claims = jwt.decode(
            token,
            resolved.partner_jwt_secret,
            algorithms=resolved.partner_jwt_algorithms,
            issuer=resolved.partner_jwt_issuer,
            audience=resolved.partner_jwt_audience,
            leeway=resolved.partner_jwt_leeway_s,
            options={**options, "verify_aud": resolved.partner_jwt_audience is not None},
        )
    except jwt.PyJWTError as exc:
        logger.info("partner_credential_rejected reason=%s", type(exc).__name__)
        raise Unauthenticated() from exc

    partner_id = None
    for claim in PARTNER_ID_CLAIMS:
        value = claims.get(claim)
        if isinstance(value, str) and value.strip():
            partner_id = value.strip()
            break
    if partner_id is None:
        logger.info("partner_credential_rejected reason=missing_partner_claim")
        raise Unauthenticated("Partner ID not found in token")
    return PartnerCredential(partner_id=partner_id, claims=claims)


def authenticate(header_value: str | None, *, settings: Settings | None = None) -> PartnerCredential:
    return validate_credential(parse_bearer_token(header_value), settings=settings)
