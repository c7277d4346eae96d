"""
Offline Replay Framework

Re-decides historical attempt records under a given risk policy and
compares the results to the original decisions. Used to:
- Check determinism (same policy => same composite and decision)
- Preview the effect of new weights or thresholds before rollout

Only stored signals are replayed; providers are never called again.
IP and device blocklists cannot be replayed because the attempt input
is not stored with the record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..aggregation import combine_signals
from ..config import RiskPolicy
from ..policy import DecisionPolicy
from ..schemas import AttemptRecord, AuthDecision, FinalOutcome

SCORE_TOLERANCE = 1e-9


@dataclass
class ReplayMetrics:
    total: int
    allow_rate: float
    challenge_rate: float
    block_rate: float


@dataclass
class ReplayDivergence:
    attempt_id: str
    identity_key: str
    original_decision: str
    replayed_decision: str
    original_score: float
    replayed_score: float
    final_outcome: str


@dataclass
class ReplayResults:
    original: ReplayMetrics
    replayed: ReplayMetrics
    policy_version: str
    divergences: list[ReplayDivergence] = field(default_factory=list)
    # Attempts whose OTP was passed but would now be blocked
    blocked_legitimate: int = 0
    # Attempts that failed/expired OTP but would now be allowed
    allowed_suspicious: int = 0

    @property
    def is_identical(self) -> bool:
        return not self.divergences

    def to_dict(self) -> dict:
        return {
            "policy_version": self.policy_version,
            "original": self.original.__dict__,
            "replayed": self.replayed.__dict__,
            "divergence_count": len(self.divergences),
            "blocked_legitimate": self.blocked_legitimate,
            "allowed_suspicious": self.allowed_suspicious,
            "divergences": [d.__dict__ for d in self.divergences],
        }


def _compute_metrics(decisions: list[str]) -> ReplayMetrics:
    total = len(decisions)
    if total == 0:
        return ReplayMetrics(total=0, allow_rate=0.0, challenge_rate=0.0, block_rate=0.0)

    def rate(decision: AuthDecision) -> float:
        return round(sum(1 for d in decisions if d == decision.value) / total, 4)

    return ReplayMetrics(
        total=total,
        allow_rate=rate(AuthDecision.ALLOW),
        challenge_rate=rate(AuthDecision.CHALLENGE_OTP),
        block_rate=rate(AuthDecision.BLOCK),
    )


def replay_record(
    record: AttemptRecord,
    policy: RiskPolicy,
    decision_policy: Optional[DecisionPolicy] = None,
) -> tuple[float, AuthDecision, Optional[str]]:
    """
    Recompute composite score and decision of one stored attempt.

    Returns:
        Tuple of (composite_score, decision, override_reason)
    """
    decision_policy = decision_policy or DecisionPolicy(policy)
    enabled = set(policy.enabled_providers)
    signals = {
        name: signal
        for name, signal in record.assessment.signals.items()
        if name in enabled
    }
    composite, override = combine_signals(signals, policy)
    rescored = record.assessment.model_copy(update={
        "signals": signals,
        "composite_score": composite,
        "override_reason": override,
    })
    decision, override = decision_policy.decide(rescored, policy)
    return composite, decision, override


def replay_assessments(
    records: Iterable[AttemptRecord],
    policy: RiskPolicy,
) -> ReplayResults:
    """
    Replay stored attempts under `policy`.

    Args:
        records: Attempt records (ledger or audit export)
        policy: Policy to re-decide with

    Returns:
        ReplayResults with original vs replayed decision mix and divergences
    """
    decision_policy = DecisionPolicy(policy)
    original_decisions: list[str] = []
    replayed_decisions: list[str] = []
    results = ReplayResults(
        original=_compute_metrics([]),
        replayed=_compute_metrics([]),
        policy_version=policy.version,
    )

    for record in records:
        original = record.assessment
        composite, decision, _ = replay_record(record, policy, decision_policy)

        original_decisions.append(original.decision.value)
        replayed_decisions.append(decision.value)

        changed = (
            decision != original.decision
            or abs(composite - original.composite_score) > SCORE_TOLERANCE
        )
        if not changed:
            continue

        results.divergences.append(ReplayDivergence(
            attempt_id=record.attempt_id,
            identity_key=record.identity_key,
            original_decision=original.decision.value,
            replayed_decision=decision.value,
            original_score=original.composite_score,
            replayed_score=composite,
            final_outcome=record.final_outcome.value,
        ))
        if record.final_outcome == FinalOutcome.OTP_PASSED and decision == AuthDecision.BLOCK:
            results.blocked_legitimate += 1
        if (
            record.final_outcome in (FinalOutcome.OTP_FAILED, FinalOutcome.OTP_EXPIRED)
            and decision == AuthDecision.ALLOW
        ):
            results.allowed_suspicious += 1

    results.original = _compute_metrics(original_decisions)
    results.replayed = _compute_metrics(replayed_decisions)
    return results
