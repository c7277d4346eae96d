"""
Signal Schemas

A Signal is one provider's opinion about one login attempt. Signals
are created fresh per attempt, are immutable once returned, and are
only ever persisted inside a RiskAssessment.
"""

from typing import Any, Optional

from pydantic import ConfigDict, Field

from .base import WireModel


# Evidence items carrying this prefix force a BLOCK decision
FORCE_BLOCK_PREFIX = "force_block:"


class ProviderNames:
    """Identifiers of the built-in signal providers."""
    PHONE_CARRIER = "phone_carrier"
    GEO_IP = "geo_ip"
    DEVICE = "device"
    BEHAVIORAL = "behavioral"
    SIM_SWAP = "sim_swap"

    ALL = (PHONE_CARRIER, GEO_IP, DEVICE, BEHAVIORAL, SIM_SWAP)


class Signal(WireModel):
    """
    Risk opinion produced by a single provider.

    Used for:
    - Weighted aggregation (score x confidence)
    - Kill-switch evaluation (force_block evidence tags)
    - Audit trail and UI explanations (evidence)
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ...,
        description="Provider identifier (e.g. 'geo_ip')",
    )
    score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Risk score, higher is riskier",
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence in the score; 0 means could not evaluate",
    )
    evidence: tuple[str, ...] = Field(
        default=(),
        description="Ordered, human-readable reasons",
    )
    degraded: bool = Field(
        default=False,
        description="True if a fallback value replaced a timed-out/failed call",
    )
    latency_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Provider call duration in milliseconds",
    )
    error: Optional[str] = Field(
        default=None,
        description="Failure description for degraded signals",
    )
    observed: dict[str, Any] = Field(
        default_factory=dict,
        description="Facts observed by the provider (used for baseline updates, not scored)",
    )

    @property
    def force_block_tags(self) -> list[str]:
        """Evidence items that request a forced BLOCK."""
        return [e for e in self.evidence if e.startswith(FORCE_BLOCK_PREFIX)]

    def with_latency(self, latency_ms: float) -> "Signal":
        """Return a copy stamped with the measured call latency."""
        return self.model_copy(update={"latency_ms": round(latency_ms, 3)})


class EvidenceCodes:
    """
    Standard evidence strings emitted by providers.

    Format: lower_snake_case; kill-switch tags use FORCE_BLOCK_PREFIX.
    """
    # Degradation
    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_ERROR = "provider_error"

    # Phone carrier
    INVALID_FORMAT = "invalid_format"
    INVALID_NUMBER = "invalid_number"
    VOIP_LINE = "voip_line"
    UNKNOWN_CARRIER = "unknown_carrier"
    RECENTLY_PORTED = "recently_ported"
    PORTED = "ported"

    # Geo / IP
    NO_BASELINE_LOCATION = "no_baseline_location"
    LOCATION_MISMATCH = "location_mismatch"
    IMPOSSIBLE_TRAVEL = "impossible_travel"
    VPN = "vpn"
    PROXY = "proxy"
    HOSTING_IP = "hosting_ip"
    HIGH_RISK_COUNTRY = "high_risk_country"
    TOR_EXIT_NODE = FORCE_BLOCK_PREFIX + "tor_exit_node"

    # Device
    FIRST_SEEN_IDENTITY = "first_seen_identity"
    TRUSTED_DEVICE = "trusted_device"
    NEW_DEVICE = "new_device"
    DEVICE_CLASS_MISMATCH = "device_class_mismatch"

    # Behavioral
    TYPING_SPEED_ANOMALY = "typing_speed_anomaly"
    HIGH_ERROR_RATE = "high_error_rate"
    INCONSISTENT_RHYTHM = "inconsistent_rhythm"
    UNUSUAL_DWELL_TIME = "unusual_dwell_time"

    # SIM swap
    NO_SIM_SWAP = "no_sim_swap"
    RECENT_SIM_SWAP = "recent_sim_swap"
    SIM_SWAP_IN_WINDOW = "sim_swap_in_window"
    SIM_SWAP_OUTSIDE_WINDOW = "sim_swap_outside_window"
    SIM_SWAP_UNKNOWN_DATE = "sim_swap_unknown_date"
