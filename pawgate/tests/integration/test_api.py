from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from pawgate.apps.api.main import create_app
from pawgate.tests.utils.auth import partner_headers
from pawgate.tests.utils.seed import create_partner, create_record, fetch_audit_entries, fetch_grants


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=create_app()), base_url="http://test")


@pytest.mark.asyncio
async def test_health_endpoint_is_public() -> None:
    async with _client() as client:
        resp = await client.get("/v1/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["data"] == {"status": "ok"}
    assert body["meta"]["api_version"] == "v1"


@pytest.mark.asyncio
async def test_verify_returns_enveloped_projection() -> None:
    partner_id = await create_partner(access_level="medical")
    seeded = await create_record(health_id="WOF-AB123")

    async with _client() as client:
        resp = await client.post(
            "/v1/partners/dog-id/verify",
            headers={**partner_headers(partner_id), "X-Request-Id": "req-verify-1"},
            json={"record_key": "WOF-AB123", "reason": "Vaccination check", "purpose": "routine"},
        )

    assert resp.status_code == 200
    assert resp.headers["X-Request-Id"] == "req-verify-1"
    body = resp.json()
    assert body["meta"]["request_id"] == "req-verify-1"
    data = body["data"]
    assert data["success"] is True
    assert data["access_level"] == "medical"
    assert data["record"]["id"] == seeded.record_id
    assert "emergency_contact" not in data["record"]
    assert data["grant"]["access_count"] == 1

    entries = await fetch_audit_entries(partner_id=partner_id)
    assert len(entries) == 1
    assert entries[0].request_id == "req-verify-1"
    assert entries[0].verification_id == data["verification_id"]


@pytest.mark.asyncio
async def test_missing_or_invalid_credential_is_rejected_without_audit() -> None:
    partner_id = await create_partner()
    seeded = await create_record()
    payload = {"record_key": seeded.health_id, "reason": "Intake"}

    async with _client() as client:
        missing = await client.post("/v1/partners/dog-id/verify", json=payload)
        expired = await client.post(
            "/v1/partners/dog-id/verify",
            headers=partner_headers(partner_id, expires_in_s=-3600),
            json=payload,
        )
        forged = await client.post(
            "/v1/partners/dog-id/verify",
            headers=partner_headers(partner_id, secret="not-the-partner-secret"),
            json=payload,
        )

    for resp in (missing, expired, forged):
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AUTH_UNAUTHORIZED"
        assert resp.headers["WWW-Authenticate"] == "Bearer"
    assert missing.json()["error"]["message"] == "Authorization header required"
    assert await fetch_audit_entries(partner_id=partner_id) == []
    assert await fetch_grants(partner_id=partner_id) == []


@pytest.mark.asyncio
async def test_missing_reason_is_audited_bad_request() -> None:
    partner_id = await create_partner()
    seeded = await create_record()

    async with _client() as client:
        resp = await client.post(
            "/v1/partners/dog-id/verify",
            headers=partner_headers(partner_id),
            json={"record_key": seeded.health_id},
        )

    assert resp.status_code == 400
    assert resp.json()["error"] == {
        "code": "INVALID_REQUEST",
        "message": "Dog ID and verification reason are required",
    }
    entries = await fetch_audit_entries(partner_id=partner_id)
    assert len(entries) == 1
    assert entries[0].success is False
    assert entries[0].error_code == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_unknown_purpose_is_rejected() -> None:
    partner_id = await create_partner()
    seeded = await create_record()

    async with _client() as client:
        resp = await client.post(
            "/v1/partners/dog-id/verify",
            headers=partner_headers(partner_id),
            json={"record_key": seeded.health_id, "reason": "Intake", "purpose": "curiosity"},
        )

    assert resp.status_code == 400
    entries = await fetch_audit_entries(partner_id=partner_id)
    assert entries[0].failure_reason == "invalid_purpose:curiosity"


@pytest.mark.asyncio
async def test_unknown_dog_id_and_rate_limit_map_to_stable_codes() -> None:
    partner_id = await create_partner(api_rate_limit=1)
    seeded = await create_record()
    headers = partner_headers(partner_id)

    async with _client() as client:
        missing = await client.post(
            "/v1/partners/dog-id/verify",
            headers=headers,
            json={"record_key": "WOF-NOPE", "reason": "Intake"},
        )
        ok = await client.post(
            "/v1/partners/dog-id/verify",
            headers=headers,
            json={"record_key": seeded.health_id, "reason": "Intake"},
        )
        limited = await client.post(
            "/v1/partners/dog-id/verify",
            headers=headers,
            json={"record_key": seeded.health_id, "reason": "Intake"},
        )

    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "DOG_ID_NOT_FOUND"
    assert ok.status_code == 200
    assert limited.status_code == 429
    assert limited.json()["error"]["code"] == "RATE_LIMITED"
    # Internal reasons stay in the audit trail.
    assert "details" not in limited.json()["error"]


@pytest.mark.asyncio
async def test_suspended_partner_gets_forbidden() -> None:
    partner_id = await create_partner(status="suspended")
    seeded = await create_record()

    async with _client() as client:
        resp = await client.post(
            "/v1/partners/dog-id/verify",
            headers=partner_headers(partner_id),
            json={"record_key": seeded.health_id, "reason": "Intake"},
        )

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "PARTNER_INELIGIBLE"
    entries = await fetch_audit_entries(partner_id=partner_id)
    assert entries[0].failure_reason == "not_approved:suspended"


@pytest.mark.asyncio
async def test_malformed_body_is_a_validation_error() -> None:
    partner_id = await create_partner()

    async with _client() as client:
        resp = await client.post(
            "/v1/partners/dog-id/verify",
            headers={**partner_headers(partner_id), "Content-Type": "application/json"},
            content=b"{not json",
        )

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"
    assert await fetch_audit_entries(partner_id=partner_id) == []


@pytest.mark.asyncio
async def test_list_and_revoke_verifications() -> None:
    partner_id = await create_partner(access_level="full")
    other_partner_id = await create_partner()
    seeded = await create_record()
    headers = partner_headers(partner_id)

    async with _client() as client:
        verify = await client.post(
            "/v1/partners/dog-id/verify",
            headers=headers,
            json={"record_key": seeded.health_id, "reason": "Boarding intake", "purpose": "emergency"},
        )
        grant_id = verify.json()["data"]["grant"]["id"]

        listing = await client.get("/v1/partners/dog-id/verifications?type=emergency", headers=headers)
        empty_filter = await client.get("/v1/partners/dog-id/verifications?type=routine", headers=headers)

        foreign = await client.delete(
            f"/v1/partners/dog-id/verifications/{grant_id}",
            headers=partner_headers(other_partner_id),
        )
        revoked = await client.delete(
            f"/v1/partners/dog-id/verifications/{grant_id}?reason=Owner%20request",
            headers=headers,
        )
        after = await client.get("/v1/partners/dog-id/verifications", headers=headers)

    assert listing.status_code == 200
    data = listing.json()["data"]
    assert [item["id"] for item in data["verifications"]] == [grant_id]
    assert data["verifications"][0]["record"]["emergency_contact"] == "Ravi Rao"
    assert data["verifications"][0]["permissions"]["medical_records"] is True
    assert data["analytics"]["verifications_today"] == 1
    assert empty_filter.json()["data"]["verifications"] == []

    assert foreign.status_code == 404
    assert foreign.json()["error"]["code"] == "VERIFICATION_NOT_FOUND"

    assert revoked.status_code == 200
    assert revoked.json()["data"]["revoked_reason"] == "Owner request"
    assert after.json()["data"]["pagination"]["total"] == 0

    grants = await fetch_grants(partner_id=partner_id)
    assert grants[0].is_active is False
    assert grants[0].revoked_reason == "Owner request"
