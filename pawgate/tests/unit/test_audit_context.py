from __future__ import annotations

from starlette.requests import Request

from pawgate.services.audit import compute_risk_score, get_client_context, sanitize_metadata


def _make_request(headers: list[tuple[bytes, bytes]]) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/v1/partners/dog-id/verify",
        "scheme": "http",
        "server": ("test", 80),
        "client": ("10.0.0.9", 1234),
        "headers": headers,
        "query_string": b"",
    }
    return Request(scope)


def test_risk_score_orders_failures_above_emergency_above_routine() -> None:
    routine = compute_risk_score(success=True, attempt_type="routine")
    emergency = compute_risk_score(success=True, attempt_type="emergency")
    failed = compute_risk_score(success=False, attempt_type="routine")
    assert (routine, emergency, failed) == (5, 10, 25)
    assert compute_risk_score(success=False, attempt_type="emergency") == failed


def test_client_context_prefers_first_forwarded_hop() -> None:
    request = _make_request(
        [
            (b"x-forwarded-for", b"203.0.113.7, 10.0.0.1"),
            (b"x-real-ip", b"198.51.100.2"),
            (b"user-agent", b"clinic-sdk/1.2"),
            (b"x-request-id", b"req-123"),
        ]
    )
    context = get_client_context(request)
    assert context.ip_address == "203.0.113.7"
    assert context.user_agent == "clinic-sdk/1.2"
    assert context.request_id == "req-123"


def test_client_context_falls_back_to_real_ip_then_peer() -> None:
    assert get_client_context(_make_request([(b"x-real-ip", b"198.51.100.2")])).ip_address == "198.51.100.2"
    assert get_client_context(_make_request([])).ip_address == "10.0.0.9"
    assert get_client_context(None).ip_address is None


def test_audit_metadata_redacts_credentials() -> None:
    sanitized = sanitize_metadata(
        {"authorization": "Bearer abc", "nested": {"id_token": "x"}, "dog_name": "Bruno"}
    )
    assert sanitized["authorization"] == "[REDACTED]"
    assert sanitized["nested"]["id_token"] == "[REDACTED]"
    assert sanitized["dog_name"] == "Bruno"
