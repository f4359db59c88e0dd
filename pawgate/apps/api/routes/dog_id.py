from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from pawgate.apps.api.deps import get_client, get_gateway, get_partner_credential
from pawgate.apps.api.openapi import PARTNER_ERROR_RESPONSES
from pawgate.apps.api.response import SuccessEnvelope, success_response
from pawgate.services.audit import ClientContext
from pawgate.services.auth.credentials import PartnerCredential
from pawgate.services.gateway import PartnerGateway, VerifyCommand


router = APIRouter(prefix="/partners/dog-id", tags=["partners"], responses=PARTNER_ERROR_RESPONSES)


class VerifyRequest(BaseModel):
    # Fields are optional here so missing values surface as an audited 400, not a bare 422.
    record_key: str | None = None
    reason: str | None = None
    purpose: str | None = None


class PartnerInfo(BaseModel):
    name: str
    type: str


class GrantInfo(BaseModel):
    id: str
    access_count: int
    created: bool
    expires_at: str | None


class VerifyResponse(BaseModel):
    success: bool
    verification_id: str
    record: dict[str, Any]
    access_level: str
    emergency_override: bool
    verified_at: str
    partner: PartnerInfo
    grant: GrantInfo


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class GrantAnalytics(BaseModel):
    verifications_today: int
    daily_limit: int


class GrantListResponse(BaseModel):
    verifications: list[dict[str, Any]]
    pagination: Pagination
    analytics: GrantAnalytics


class RevokeResponse(BaseModel):
    id: str
    is_active: bool
    revoked_at: str | None
    revoked_reason: str | None


@router.post("/verify", response_model=SuccessEnvelope[VerifyResponse])
async def verify_dog_id(
    request: Request,
    payload: VerifyRequest,
    credential: PartnerCredential = Depends(get_partner_credential),
    client: ClientContext = Depends(get_client),
    gateway: PartnerGateway = Depends(get_gateway),
) -> dict:
    result = await gateway.verify(
        credential,
        VerifyCommand(record_key=payload.record_key, reason=payload.reason, purpose=payload.purpose),
        client=client,
    )
    return success_response(request=request, data=result)


@router.get("/verifications", response_model=SuccessEnvelope[GrantListResponse])
async def list_verifications(
    request: Request,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    include_expired: bool = Query(default=False),
    verification_type: str | None = Query(default=None, alias="type"),
    credential: PartnerCredential = Depends(get_partner_credential),
    gateway: PartnerGateway = Depends(get_gateway),
) -> dict:
    result = await gateway.list_grants(
        credential,
        offset=offset,
        limit=limit,
        include_expired=include_expired,
        verification_type=verification_type,
    )
    return success_response(request=request, data=result)


@router.delete("/verifications/{grant_id}", response_model=SuccessEnvelope[RevokeResponse])
async def revoke_verification(
    request: Request,
    grant_id: str,
    reason: str | None = Query(default=None, max_length=500),
    credential: PartnerCredential = Depends(get_partner_credential),
    client: ClientContext = Depends(get_client),
    gateway: PartnerGateway = Depends(get_gateway),
) -> dict:
    result = await gateway.revoke_grant(credential, grant_id, reason=reason, client=client)
    return success_response(request=request, data=result)
