from __future__ import annotations


class PawgateError(Exception):
    """Base error for pawgate."""


class GatewayError(PawgateError):
    """Partner gateway failure with a stable code and HTTP status."""

    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"

    def __init__(self, message: str | None = None, *, audit_reason: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        # Internal detail persisted to the audit trail; never returned to callers.
        self.audit_reason = audit_reason or self.message


class Unauthenticated(GatewayError):
    """Missing, malformed, or expired partner credential."""

    status_code = 401
    code = "AUTH_UNAUTHORIZED"
    message = "Invalid or expired token"


class InvalidRequest(GatewayError):
    """Required request fields are missing or malformed."""

    status_code = 400
    code = "INVALID_REQUEST"
    message = "Dog ID and verification reason are required"


class PartnerNotFound(GatewayError):
    status_code = 404
    code = "PARTNER_NOT_FOUND"
    message = "Partner not found"


class PartnerIneligible(GatewayError):
    """Partner is not approved, not verified, or not compliant."""

    status_code = 403
    code = "PARTNER_INELIGIBLE"
    message = "Partner is not eligible for Dog ID verification"


class RateLimitExceeded(GatewayError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Daily API rate limit exceeded"


class RecordNotFound(GatewayError):
    status_code = 404
    code = "DOG_ID_NOT_FOUND"
    message = "Dog ID not found"


class GrantNotFound(GatewayError):
    status_code = 404
    code = "VERIFICATION_NOT_FOUND"
    message = "Verification not found"


class InternalGatewayError(GatewayError):
    """Unexpected failure inside the gateway; details stay in the operational log."""

    message = "Internal server error"
