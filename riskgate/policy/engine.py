"""
Decision Policy

Maps a scored attempt to a login decision. Separated from scoring to
allow:
- Security-controlled thresholds and blocklists
- Hot-reload without deployment
- Full audit trail (policy version + hash on every assessment)

Decision flow (first match wins):
1. Check blocklists (immediate BLOCK)
2. Check force_block evidence tags (immediate BLOCK)
3. Apply score thresholds (BLOCK, then CHALLENGE_OTP)
4. ALLOW

Side effect: an ALLOW teaches the identity baseline the device and
location of the attempt. CHALLENGE_OTP and BLOCK never touch it.
"""

import logging
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Optional, Union

from ..config import DEFAULT_POLICY, RiskPolicy, load_policy
from ..schemas import (
    AttemptContext,
    AuthDecision,
    GeoLocation,
    IdentityBaseline,
    OverrideReasons,
    ProviderNames,
    RiskAssessment,
)

logger = logging.getLogger("riskgate.policy")


def merge_baseline(
    current: Optional[IdentityBaseline],
    assessment: RiskAssessment,
    context: AttemptContext,
    now: datetime,
) -> IdentityBaseline:
    """
    Fold an allowed attempt into the identity baseline.

    Returns a new baseline; `current` is never modified. Fields the
    attempt did not observe keep their previous value.
    """
    trusted = set(current.trusted_devices) if current else set()
    classes = set(current.known_device_classes) if current else set()
    location = current.last_known_location if current else None
    last_device = current.last_known_device_fingerprint if current else None

    if context.device_fingerprint:
        trusted.add(context.device_fingerprint)
        last_device = context.device_fingerprint
    if context.device_class is not None:
        classes.add(context.device_class.value)

    geo = assessment.signals.get(ProviderNames.GEO_IP)
    if geo is not None and not geo.degraded and geo.observed.get("location"):
        location = GeoLocation(**geo.observed["location"])

    return IdentityBaseline(
        identity_key=assessment.identity_key,
        last_known_location=location,
        last_known_device_fingerprint=last_device,
        last_seen_at=now,
        trusted_devices=frozenset(trusted),
        known_device_classes=frozenset(classes),
    )


class DecisionPolicy:
    """
    Policy evaluation engine.

    Holds the active RiskPolicy (loaded from YAML) and evaluates
    assessments against blocklists, kill-switches and thresholds.
    """

    def __init__(
        self,
        policy: Optional[RiskPolicy] = None,
        policy_path: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize decision policy.

        Args:
            policy: Risk policy (if None, loaded from policy_path or the default)
            policy_path: Path to YAML policy file (optional)
            clock: Time source for baseline updates
        """
        self.policy_path = Path(policy_path) if policy_path else None
        if policy is None:
            policy = load_policy(self.policy_path) if self.policy_path else DEFAULT_POLICY
        self.policy = policy
        self.policy_hash = policy.compute_hash()
        self.clock = clock

    def reload_policy(self) -> RiskPolicy:
        """
        Reload policy from the YAML file.

        The active policy is replaced only if the new one validates.

        Raises:
            InvalidConfiguration: if the file is unreadable or invalid
        """
        policy = load_policy(self.policy_path)
        self.policy = policy
        self.policy_hash = policy.compute_hash()
        logger.info("Risk policy reloaded: version %s (%s)", policy.version, self.policy_hash)
        return policy

    def decide(
        self,
        assessment: RiskAssessment,
        policy: Optional[RiskPolicy] = None,
        context: Optional[AttemptContext] = None,
    ) -> tuple[AuthDecision, Optional[str]]:
        """
        Decide a scored attempt.

        Args:
            assessment: Signals and composite score of the attempt
            policy: Policy to apply (defaults to the active one)
            context: Attempt input, needed for IP/device blocklists

        Returns:
            Tuple of (decision, override_reason)
        """
        policy = policy or self.policy

        # =======================================================================
        # Step 1: Blocklists
        # =======================================================================
        if assessment.identity_key in policy.blocklist_identities:
            return AuthDecision.BLOCK, OverrideReasons.BLOCKLIST_IDENTITY
        if context is not None:
            if context.client_ip and context.client_ip in policy.blocklist_ips:
                return AuthDecision.BLOCK, OverrideReasons.BLOCKLIST_IP
            if context.device_fingerprint and context.device_fingerprint in policy.blocklist_devices:
                return AuthDecision.BLOCK, OverrideReasons.BLOCKLIST_DEVICE

        # =======================================================================
        # Step 2: Kill-switch evidence
        # =======================================================================
        for name in sorted(assessment.signals):
            tags = assessment.signals[name].force_block_tags
            if tags:
                return AuthDecision.BLOCK, tags[0]

        # =======================================================================
        # Step 3: Score thresholds
        # =======================================================================
        # all_signals_unavailable survives the threshold decision
        override = assessment.override_reason if assessment.all_signals_unavailable else None
        score = assessment.composite_score

        if score >= policy.block_threshold:
            return AuthDecision.BLOCK, override
        if score >= policy.challenge_threshold:
            return AuthDecision.CHALLENGE_OTP, override
        return AuthDecision.ALLOW, override

    async def apply_outcome(
        self,
        assessment: RiskAssessment,
        context: AttemptContext,
        ledger,
    ) -> Optional[IdentityBaseline]:
        """
        Update the identity baseline after an ALLOW.

        Returns:
            The new baseline, or None if the decision leaves it untouched
        """
        if assessment.decision != AuthDecision.ALLOW:
            return None

        now = self.clock()
        baseline = await ledger.update_baseline(
            assessment.identity_key,
            lambda current: merge_baseline(current, assessment, context, now),
        )
        logger.debug(
            "Baseline updated for %s (%d trusted devices)",
            assessment.identity_key,
            len(baseline.trusted_devices),
        )
        return baseline
