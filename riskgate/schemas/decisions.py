"""
Decision Schemas

Defines the decision alphabet and the RiskAssessment returned for
every login attempt. Decisions follow a hierarchy:
ALLOW < CHALLENGE_OTP < BLOCK
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import ConfigDict, Field

from .base import WireModel
from .signals import Signal


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def new_attempt_id() -> str:
    """Generate a unique attempt identifier."""
    return f"att_{uuid4().hex}"


class AuthDecision(str, Enum):
    """
    Login decision outcomes.

    Ordered by severity:
    - ALLOW: Log the user in directly
    - CHALLENGE_OTP: Require a one-time password before login
    - BLOCK: Refuse the login
    """
    ALLOW = "ALLOW"
    CHALLENGE_OTP = "CHALLENGE_OTP"
    BLOCK = "BLOCK"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    AuthDecision.ALLOW: 0,
    AuthDecision.CHALLENGE_OTP: 1,
    AuthDecision.BLOCK: 2,
}


class OverrideReasons:
    """Override reasons that are not derived from evidence tags."""
    ALL_SIGNALS_UNAVAILABLE = "all_signals_unavailable"
    BLOCKLIST_IDENTITY = "blocklist:identity"
    BLOCKLIST_IP = "blocklist:ip"
    BLOCKLIST_DEVICE = "blocklist:device"


class RiskAssessment(WireModel):
    """
    Aggregate outcome for one login attempt.

    Created once by the aggregator, immutable, appended to the ledger
    and returned to the caller. composite_score is a pure function of
    signals and the active policy weights.
    """
    model_config = ConfigDict(frozen=True)

    attempt_id: str = Field(
        default_factory=new_attempt_id,
        description="Unique attempt identifier",
    )
    identity_key: str = Field(
        ...,
        description="Identity the attempt was made for",
    )
    signals: dict[str, Signal] = Field(
        default_factory=dict,
        description="Signals by provider name (applicable providers only)",
    )
    composite_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence-weighted combination of signal scores",
    )
    decision: AuthDecision = Field(
        ...,
        description="Login decision",
    )
    override_reason: Optional[str] = Field(
        default=None,
        description="Kill-switch that forced the decision, if any",
    )
    computed_at: datetime = Field(
        default_factory=_utc_now,
        description="When the assessment was computed",
    )
    policy_version: str = Field(
        default="1.0.0",
        description="Risk policy version used for this assessment",
    )
    processing_time_ms: float = Field(
        default=0.0,
        description="Aggregation wall time in milliseconds",
    )

    @property
    def all_signals_unavailable(self) -> bool:
        return self.override_reason == OverrideReasons.ALL_SIGNALS_UNAVAILABLE

    @property
    def degraded_providers(self) -> list[str]:
        return sorted(name for name, s in self.signals.items() if s.degraded)
