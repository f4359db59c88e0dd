from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import Request

from pawgate.core.config import get_settings
from pawgate.domain.models import AuditEntry


logger = logging.getLogger(__name__)

ATTEMPT_ROUTINE = "routine"
ATTEMPT_EMERGENCY = "emergency"
ATTEMPT_API_CALL = "api_call"

_SENSITIVE_KEY_PATTERNS = ["authorization", "token", "secret", "password"]
_REDACTED_VALUE = "[REDACTED]"


@dataclass(frozen=True)
class ClientContext:
    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(pattern in lowered for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_metadata(value: Any) -> Any:
    # Recursively scrub credential-like fields while preserving safe structure.
    if isinstance(value, dict):
        sanitized: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            key = str(raw_key)
            if _is_sensitive_key(key):
                sanitized[key] = _REDACTED_VALUE
            else:
                sanitized[key] = sanitize_metadata(raw_value)
        return sanitized
    if isinstance(value, list):
        return [sanitize_metadata(item) for item in value]
    return value


def get_client_context(request: Request | None) -> ClientContext:
    # Prefer the first proxy hop, then X-Real-IP, then the socket peer.
    if request is None:
        return ClientContext()
    forwarded = request.headers.get("x-forwarded-for")
    ip_address = None
    if forwarded:
        ip_address = forwarded.split(",")[0].strip() or None
    if ip_address is None:
        ip_address = request.headers.get("x-real-ip")
    if ip_address is None and request.client:
        ip_address = request.client.host
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id")
    return ClientContext(
        request_id=request_id,
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )


def compute_risk_score(*, success: bool, attempt_type: str) -> int:
    """Coarse, deterministic risk score: failures > emergency > routine."""
    settings = get_settings()
    if not success:
        return settings.risk_score_failure
    if attempt_type == ATTEMPT_EMERGENCY:
        return settings.risk_score_emergency
    return settings.risk_score_routine


async def record_attempt(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    partner_id: str,
    attempt_type: str,
    success: bool,
    action_type: str = "dog_id_access",
    record_id: str | None = None,
    record_key: str | None = None,
    reason: str | None = None,
    failure_reason: str | None = None,
    error_code: str | None = None,
    access_level: str | None = None,
    verification_id: str | None = None,
    client: ClientContext | None = None,
    metadata: dict[str, Any] | None = None,
    occurred_at: datetime | None = None,
) -> bool:
    """Append one audit entry in its own transaction.

    Best-effort: a write failure is logged operationally and reported through
    the return value, never raised, so it cannot replace the outcome being
    returned to the caller.
    """
    client = client or ClientContext()
    entry = AuditEntry(
        occurred_at=occurred_at or datetime.now(timezone.utc),
        verification_id=verification_id,
        partner_id=partner_id,
        record_id=record_id,
        record_key=record_key,
        attempt_type=attempt_type,
        action_type=action_type,
        reason=reason,
        success=success,
        failure_reason=failure_reason,
        error_code=error_code,
        access_level=access_level,
        request_id=client.request_id,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        risk_score=compute_risk_score(success=success, attempt_type=attempt_type),
        flagged_for_review=not success,
        metadata_json=sanitize_metadata(metadata or {}),
    )
    # Closing the session discards the uncommitted entry; connection errors surface as OSError under asyncpg.
    try:
        async with session_factory() as audit_session:
            audit_session.add(entry)
            await audit_session.commit()
    except (SQLAlchemyError, OSError) as exc:
        logger.error(
            "audit_entry_write_failed partner_id=%s attempt_type=%s success=%s request_id=%s",
            partner_id,
            attempt_type,
            success,
            client.request_id,
            exc_info=exc,
        )
        return False
    return True
