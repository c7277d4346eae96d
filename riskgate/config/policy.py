"""
Risk Policy Configuration

Defines the structure of the YAML risk policy: per-provider weights,
timeouts and degraded defaults, decision thresholds, and blocklists.
The policy is loaded at startup, immutable for the process lifetime,
and replaced only by an explicit reload.

Constraints (violations raise InvalidConfiguration, never clamp):
- weights, scores and thresholds are within [0, 1]
- provider keys name built-in providers
- weights of enabled providers sum to 1
- 0 <= challenge_threshold < block_threshold <= 1
"""

import hashlib
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..errors import InvalidConfiguration
from ..schemas import ProviderNames

logger = logging.getLogger("riskgate.config")

WEIGHT_SUM_TOLERANCE = 1e-6


class ProviderConfig(BaseModel):
    """
    Per-provider aggregation settings.

    degraded_default_score is substituted when the provider times out
    or fails; it must be strictly between 0 and 1 so an outage neither
    auto-allows nor auto-blocks.
    """
    enabled: bool = Field(
        default=True,
        description="Whether the provider is dispatched at all",
    )
    weight: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Weight in the composite score",
    )
    timeout_ms: float = Field(
        default=800.0,
        gt=0.0,
        description="Per-call timeout in milliseconds",
    )
    degraded_default_score: float = Field(
        default=0.5,
        gt=0.0,
        lt=1.0,
        description="Score recorded when the provider is degraded",
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class RiskPolicy(BaseModel):
    """
    Complete risk policy.

    Loaded from YAML and validated as a whole.
    """
    version: str = Field(
        default="1.0.0",
        description="Policy version for audit trail",
    )
    description: Optional[str] = Field(
        default=None,
        description="Policy description",
    )

    providers: dict[str, ProviderConfig] = Field(
        ...,
        description="Provider settings by provider name",
    )

    challenge_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Composite score at or above this = CHALLENGE_OTP",
    )
    block_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Composite score at or above this = BLOCK",
    )
    all_providers_down_default_score: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Composite score used when every signal is unavailable",
    )

    # Blocklists (immediate BLOCK)
    blocklist_identities: set[str] = Field(
        default_factory=set,
        description="Blocked identity keys",
    )
    blocklist_ips: set[str] = Field(
        default_factory=set,
        description="Blocked client IPs",
    )
    blocklist_devices: set[str] = Field(
        default_factory=set,
        description="Blocked device fingerprints",
    )

    @model_validator(mode="after")
    def _validate_constraints(self) -> "RiskPolicy":
        if not self.challenge_threshold < self.block_threshold:
            raise ValueError(
                f"challenge_threshold ({self.challenge_threshold}) must be lower "
                f"than block_threshold ({self.block_threshold})"
            )

        unknown = sorted(set(self.providers) - set(ProviderNames.ALL))
        if unknown:
            raise ValueError(
                f"Unknown provider(s) {', '.join(unknown)}; "
                f"expected names from {', '.join(ProviderNames.ALL)}"
            )

        enabled = {name: cfg for name, cfg in self.providers.items() if cfg.enabled}
        if not enabled:
            raise ValueError("At least one provider must be enabled")

        total = sum(cfg.weight for cfg in enabled.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(
                f"Weights of enabled providers must sum to 1, got {total:.6f}"
            )
        return self

    def provider(self, name: str) -> ProviderConfig:
        """Get a provider's settings; unknown providers are a configuration error."""
        try:
            return self.providers[name]
        except KeyError:
            raise InvalidConfiguration(f"No policy entry for provider '{name}'") from None

    @property
    def enabled_providers(self) -> list[str]:
        return sorted(name for name, cfg in self.providers.items() if cfg.enabled)

    @property
    def overall_deadline_seconds(self) -> float:
        """Longest per-provider timeout among enabled providers."""
        return max(self.providers[name].timeout_seconds for name in self.enabled_providers)

    def compute_hash(self) -> str:
        """Hash of the policy content for audit."""
        policy_json = self.model_dump_json()
        return hashlib.sha256(policy_json.encode()).hexdigest()[:16]


def build_policy(data: dict[str, Any]) -> RiskPolicy:
    """
    Validate a raw policy mapping.

    Raises:
        InvalidConfiguration: if the mapping violates any constraint
    """
    if not isinstance(data, dict):
        raise InvalidConfiguration("Risk policy must be a mapping")
    try:
        return RiskPolicy(**data)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid risk policy: {e}") from e


def load_policy(path: Optional[Union[str, Path]]) -> RiskPolicy:
    """
    Load the risk policy from YAML.

    A missing file falls back to DEFAULT_POLICY; an unreadable or
    invalid file raises InvalidConfiguration.
    """
    if path is None:
        return DEFAULT_POLICY

    path = Path(path)
    if not path.exists():
        logger.warning("Risk policy %s not found, using default policy", path)
        return DEFAULT_POLICY

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise InvalidConfiguration(f"Cannot read risk policy {path}: {e}") from e

    policy = build_policy(config)
    logger.info("Loaded risk policy %s (version %s)", path, policy.version)
    return policy


# Default policy configuration (fallback)
# ========================================
# Used when config/risk_policy.yaml is missing. With these thresholds the
# all-providers-down score (0.5) maps to CHALLENGE_OTP, i.e. fail closed.
DEFAULT_POLICY = RiskPolicy(
    version="1.0.0",
    description="Default login risk policy",
    providers={
        ProviderNames.PHONE_CARRIER: ProviderConfig(weight=0.25, timeout_ms=1500),
        ProviderNames.GEO_IP: ProviderConfig(weight=0.20, timeout_ms=1000),
        ProviderNames.DEVICE: ProviderConfig(weight=0.15, timeout_ms=300),
        ProviderNames.BEHAVIORAL: ProviderConfig(weight=0.20, timeout_ms=300),
        ProviderNames.SIM_SWAP: ProviderConfig(weight=0.20, timeout_ms=1500),
    },
    challenge_threshold=0.4,
    block_threshold=0.8,
    all_providers_down_default_score=0.5,
)
