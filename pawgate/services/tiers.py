from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet


TIER_READ_ONLY = "read_only"
TIER_MEDICAL = "medical"
TIER_FULL = "full"
TIER_EMERGENCY_OVERRIDE = "emergency_override"
TIERS = (TIER_READ_ONLY, TIER_MEDICAL, TIER_FULL, TIER_EMERGENCY_OVERRIDE)

PURPOSE_ROUTINE = "routine"
PURPOSE_EMERGENCY = "emergency"
PURPOSES = (PURPOSE_ROUTINE, PURPOSE_EMERGENCY)

IDENTITY = "identity"
MEDICAL_RECORDS = "medical_records"
MEDICATIONS = "medications"
REMINDERS = "reminders"
EMERGENCY_CONTACT = "emergency_contact"
# Filtered allergy/chronic/emergency entries exposed only through the emergency override.
CRITICAL_MEDICAL_RECORDS = "critical_medical_records"

FIELD_GROUPS = (
    IDENTITY,
    MEDICAL_RECORDS,
    MEDICATIONS,
    REMINDERS,
    EMERGENCY_CONTACT,
    CRITICAL_MEDICAL_RECORDS,
)

_BASE_GROUPS: dict[str, FrozenSet[str]] = {
    TIER_READ_ONLY: frozenset({IDENTITY}),
    TIER_MEDICAL: frozenset({IDENTITY, MEDICAL_RECORDS, MEDICATIONS, REMINDERS}),
    TIER_FULL: frozenset({IDENTITY, MEDICAL_RECORDS, MEDICATIONS, REMINDERS, EMERGENCY_CONTACT}),
    TIER_EMERGENCY_OVERRIDE: frozenset({IDENTITY}),
}

# Groups a tier gains when the caller declares an emergency, flag or not.
_EMERGENCY_PURPOSE_GROUPS: dict[str, FrozenSet[str]] = {
    TIER_MEDICAL: frozenset({EMERGENCY_CONTACT}),
}

_OVERRIDE_GROUPS = frozenset({EMERGENCY_CONTACT, CRITICAL_MEDICAL_RECORDS})


@dataclass(frozen=True)
class ProjectionPolicy:
    tier: str
    purpose: str
    visible: FrozenSet[str]
    emergency_override_applied: bool = False

    def allows(self, group: str) -> bool:
        return group in self.visible

    def as_flags(self) -> dict[str, bool]:
        return {group: group in self.visible for group in FIELD_GROUPS}


def normalize_tier(tier: str | None) -> str:
    # Unknown or missing tiers collapse to the narrowest view.
    if tier in _BASE_GROUPS:
        return tier
    return TIER_READ_ONLY


def emergency_override_applies(*, tier: str, purpose: str, emergency_access_enabled: bool) -> bool:
    # read_only is a hard ceiling; the override never widens it.
    return (
        emergency_access_enabled
        and purpose == PURPOSE_EMERGENCY
        and normalize_tier(tier) != TIER_READ_ONLY
    )


def resolve_policy(*, tier: str | None, purpose: str, emergency_access_enabled: bool) -> ProjectionPolicy:
    """Map (tier, purpose, partner flags) to the set of visible field groups.

    Pure function: the stored tier is never changed, the override only widens
    the view for this one response.
    """
    resolved_tier = normalize_tier(tier)
    visible = set(_BASE_GROUPS[resolved_tier])
    if purpose == PURPOSE_EMERGENCY:
        visible |= _EMERGENCY_PURPOSE_GROUPS.get(resolved_tier, frozenset())
    override = emergency_override_applies(
        tier=resolved_tier,
        purpose=purpose,
        emergency_access_enabled=emergency_access_enabled,
    )
    if override:
        visible |= _OVERRIDE_GROUPS
    return ProjectionPolicy(
        tier=resolved_tier,
        purpose=purpose,
        visible=frozenset(visible),
        emergency_override_applied=override,
    )
