from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawgate.core.config import get_settings
from pawgate.persistence.db import SessionLocal
from pawgate.services.audit import ClientContext, get_client_context
from pawgate.services.auth.credentials import PartnerCredential, authenticate
from pawgate.services.gateway import PartnerGateway


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Gateway phases (reads, grant upsert, audit) each open their own session.
    return SessionLocal


def get_gateway(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PartnerGateway:
    return PartnerGateway(session_factory=session_factory)


def get_partner_credential(request: Request) -> PartnerCredential:
    # Reject before any partner-scoped side effect; there is no partner to audit against yet.
    settings = get_settings()
    return authenticate(request.headers.get(settings.auth_header))


def get_client(request: Request) -> ClientContext:
    return get_client_context(request)
