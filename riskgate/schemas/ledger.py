"""
Ledger Schemas

IdentityBaseline holds the last known-good location and devices of an
identity. AttemptRecord is the append-only ledger entry for a single
attempt; final_outcome is its only mutable field.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, field_serializer, field_validator

from .base import WireModel

from .decisions import AuthDecision, RiskAssessment


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class GeoLocation(WireModel):
    """Point location with optional place names."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    country: Optional[str] = Field(default=None, description="ISO country code")
    city: Optional[str] = Field(default=None)


class IdentityBaseline(WireModel):
    """
    Last known-good signals for an identity.

    Only mutated on ALLOW; updates replace the whole object so readers
    always see a consistent snapshot.
    """
    model_config = ConfigDict(frozen=True)

    identity_key: str = Field(
        ...,
        description="Email/username or phone the baseline belongs to",
    )
    last_known_location: Optional[GeoLocation] = Field(
        default=None,
        description="Location of the last allowed login",
    )
    last_known_device_fingerprint: Optional[str] = Field(
        default=None,
        description="Fingerprint of the last allowed login",
    )
    last_seen_at: datetime = Field(
        default_factory=_utc_now,
        description="Timestamp of the last allowed login",
    )
    trusted_devices: frozenset[str] = Field(
        default_factory=frozenset,
        description="Fingerprints of devices with an allowed login",
    )
    known_device_classes: frozenset[str] = Field(
        default_factory=frozenset,
        description="Device classes seen on allowed logins",
    )

    @field_serializer("trusted_devices", "known_device_classes")
    def _sorted(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class FinalOutcome(str, Enum):
    """What the user actually experienced after the decision."""
    ALLOWED = "ALLOWED"
    BLOCKED = "BLOCKED"
    OTP_PENDING = "OTP_PENDING"
    OTP_PASSED = "OTP_PASSED"
    OTP_FAILED = "OTP_FAILED"
    OTP_EXPIRED = "OTP_EXPIRED"

    @classmethod
    def initial_for(cls, decision: AuthDecision) -> "FinalOutcome":
        return {
            AuthDecision.ALLOW: cls.ALLOWED,
            AuthDecision.BLOCK: cls.BLOCKED,
            AuthDecision.CHALLENGE_OTP: cls.OTP_PENDING,
        }[decision]

    @property
    def is_otp_resolution(self) -> bool:
        return self in (FinalOutcome.OTP_PASSED, FinalOutcome.OTP_FAILED, FinalOutcome.OTP_EXPIRED)


class AttemptRecord(WireModel):
    """
    Append-only ledger entry.

    All fields except final_outcome/outcome_recorded_at are frozen at
    creation; an outcome update rewrites the record in place, it never
    adds a new one.
    """
    model_config = ConfigDict(frozen=True)

    attempt_id: str
    identity_key: str
    assessment: RiskAssessment
    recorded_at: datetime = Field(default_factory=_utc_now)
    final_outcome: FinalOutcome
    outcome_recorded_at: Optional[datetime] = None

    @classmethod
    def from_assessment(
        cls,
        assessment: RiskAssessment,
        recorded_at: Optional[datetime] = None,
    ) -> "AttemptRecord":
        return cls(
            attempt_id=assessment.attempt_id,
            identity_key=assessment.identity_key,
            assessment=assessment,
            recorded_at=recorded_at or _utc_now(),
            final_outcome=FinalOutcome.initial_for(assessment.decision),
        )

    def with_outcome(self, outcome: FinalOutcome, at: Optional[datetime] = None) -> "AttemptRecord":
        """Return a copy with the outcome field written."""
        return self.model_copy(update={
            "final_outcome": outcome,
            "outcome_recorded_at": at or _utc_now(),
        })


class AttemptOutcomeRequest(WireModel):
    """Body of POST /risk/attempt-outcome."""
    attempt_id: str = Field(..., min_length=1)
    final_outcome: FinalOutcome

    @field_validator("final_outcome")
    @classmethod
    def must_resolve_otp(cls, v: FinalOutcome) -> FinalOutcome:
        if not v.is_otp_resolution:
            raise ValueError("finalOutcome must be OTP_PASSED, OTP_FAILED or OTP_EXPIRED")
        return v
