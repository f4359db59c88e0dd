from __future__ import annotations

import pytest

from pawgate.core.config import Settings
from pawgate.core.errors import Unauthenticated
from pawgate.services.auth.credentials import authenticate, parse_bearer_token, validate_credential
from pawgate.tests.utils.auth import issue_partner_token


def _settings(**overrides) -> Settings:
    values = {"partner_jwt_secret": "unit-secret"}
    values.update(overrides)
    return Settings(**values)


def test_valid_token_yields_partner_id() -> None:
    token = issue_partner_token("p-1", secret="unit-secret", extra_claims={"scope": "dog_id"})
    credential = validate_credential(token, settings=_settings())
    assert credential.partner_id == "p-1"
    assert credential.claims["scope"] == "dog_id"


def test_camel_case_partner_claim_is_accepted() -> None:
    token = issue_partner_token(None, secret="unit-secret", extra_claims={"partnerId": "p-2"})
    assert validate_credential(token, settings=_settings()).partner_id == "p-2"


def test_expired_token_is_rejected() -> None:
    token = issue_partner_token("p-1", secret="unit-secret", expires_in_s=-3600)
    with pytest.raises(Unauthenticated):
        validate_credential(token, settings=_settings())


def test_wrong_signature_is_rejected() -> None:
    token = issue_partner_token("p-1", secret="someone-else")
    with pytest.raises(Unauthenticated):
        validate_credential(token, settings=_settings())


def test_token_without_partner_claim_is_rejected() -> None:
    token = issue_partner_token(None, secret="unit-secret")
    with pytest.raises(Unauthenticated) as excinfo:
        validate_credential(token, settings=_settings())
    assert excinfo.value.message == "Partner ID not found in token"


def test_audience_is_enforced_when_configured() -> None:
    token = issue_partner_token("p-1", secret="unit-secret", extra_claims={"aud": "other-api"})
    with pytest.raises(Unauthenticated):
        validate_credential(token, settings=_settings(partner_jwt_audience="dog-id-api"))


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer a b"])
def test_malformed_headers_are_rejected(header: str | None) -> None:
    with pytest.raises(Unauthenticated):
        parse_bearer_token(header)


def test_authenticate_parses_and_validates() -> None:
    token = issue_partner_token("p-3", secret="unit-secret")
    assert authenticate(f"Bearer {token}", settings=_settings()).partner_id == "p-3"
