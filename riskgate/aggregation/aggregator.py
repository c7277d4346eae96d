"""
Signal Aggregator

Orchestrates all signal providers and combines their Signals into one
RiskAssessment.

Design goals:
- Run providers in parallel, each bounded by its own timeout
- Never let a provider failure reach the caller (degrade instead)
- Combine signals deterministically, independent of completion order
- Provide explainability (every signal and its evidence is kept)
"""

import asyncio
import logging
import math
import time
from datetime import datetime, UTC
from typing import Callable, Optional

from ..config import RiskPolicy
from ..errors import ProviderTimeout
from ..metrics import metrics
from ..policy import DecisionPolicy
from ..providers import SignalProvider
from ..schemas import (
    AttemptContext,
    AuthDecision,
    EvidenceCodes,
    IdentityBaseline,
    OverrideReasons,
    RiskAssessment,
    Signal,
)

logger = logging.getLogger("riskgate.aggregator")


def combine_signals(
    signals: dict[str, Signal],
    policy: RiskPolicy,
) -> tuple[float, Optional[str]]:
    """
    Confidence-weighted combination of signal scores.

        composite = sum(w * s * c) / sum(w * c)

    Terms are summed in provider-name order with math.fsum, so the
    result depends only on the signals and weights. A signal with zero
    confidence contributes nothing to either sum.

    Returns:
        Tuple of (composite_score, override_reason)
    """
    numerator = []
    denominator = []
    for name in sorted(signals):
        signal = signals[name]
        weight = policy.provider(name).weight
        numerator.append(weight * signal.score * signal.confidence)
        denominator.append(weight * signal.confidence)

    total_weight = math.fsum(denominator)
    if total_weight <= 0.0:
        return policy.all_providers_down_default_score, OverrideReasons.ALL_SIGNALS_UNAVAILABLE

    composite = math.fsum(numerator) / total_weight
    return min(1.0, max(0.0, composite)), None


def degraded_signal(
    name: str,
    default_score: float,
    error: BaseException,
    latency_ms: float = 0.0,
) -> Signal:
    """Fallback signal for a provider that timed out or failed."""
    timed_out = isinstance(error, (ProviderTimeout, asyncio.TimeoutError))
    return Signal(
        name=name,
        score=default_score,
        confidence=0.0,
        evidence=(EvidenceCodes.PROVIDER_TIMEOUT if timed_out else EvidenceCodes.PROVIDER_ERROR,),
        degraded=True,
        latency_ms=round(latency_ms, 3),
        error=str(error) or error.__class__.__name__,
    )


class SignalAggregator:
    """
    Runs providers concurrently and produces the RiskAssessment.

    One aggregator serves one risk domain (login risk); the policy
    passed to assess() supplies weights, timeouts and thresholds.
    """

    def __init__(
        self,
        providers: list[SignalProvider],
        decision_policy: DecisionPolicy,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize aggregator.

        Args:
            providers: Provider instances (one per name)
            decision_policy: Maps composite score and overrides to a decision
            clock: Time source for computed_at
        """
        self.providers = {provider.name: provider for provider in providers}
        self.decision_policy = decision_policy
        self.clock = clock

    def applicable_providers(
        self,
        context: AttemptContext,
        policy: RiskPolicy,
    ) -> list[SignalProvider]:
        """Enabled providers whose required input is present, by name."""
        return [
            self.providers[name]
            for name in sorted(self.providers)
            if name in policy.providers
            and policy.providers[name].enabled
            and self.providers[name].is_applicable(context)
        ]

    async def _run_provider(
        self,
        provider: SignalProvider,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
        policy: RiskPolicy,
    ) -> Signal:
        config = policy.provider(provider.name)
        start = time.perf_counter()
        try:
            signal = await provider.evaluate(context, baseline, config.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.warning("Provider %s degraded: %s", provider.name, e)
            return degraded_signal(provider.name, config.degraded_default_score, e, latency_ms)

        latency_ms = (time.perf_counter() - start) * 1000
        if signal.name != provider.name:
            signal = signal.model_copy(update={"name": provider.name})
        return signal.with_latency(latency_ms)

    async def collect_signals(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
        policy: RiskPolicy,
    ) -> dict[str, Signal]:
        """
        Dispatch applicable providers and gather one Signal per provider.

        Waits at most for the longest per-provider timeout; providers
        still running after that are cancelled and reported degraded.
        """
        providers = self.applicable_providers(context, policy)
        if not providers:
            return {}

        tasks = {
            provider.name: asyncio.create_task(
                self._run_provider(provider, context, baseline, policy),
                name=f"provider:{provider.name}",
            )
            for provider in providers
        }
        deadline = max(policy.provider(name).timeout_seconds for name in tasks)

        start = time.perf_counter()
        await asyncio.wait(tasks.values(), timeout=deadline)
        elapsed_ms = (time.perf_counter() - start) * 1000

        signals: dict[str, Signal] = {}
        for name, task in tasks.items():
            config = policy.provider(name)
            if not task.done():
                # Abandoned: cancel without awaiting
                task.cancel()
                logger.warning("Provider %s abandoned at overall deadline", name)
                signals[name] = degraded_signal(
                    name,
                    config.degraded_default_score,
                    ProviderTimeout(name, deadline * 1000),
                    elapsed_ms,
                )
            elif task.cancelled():
                signals[name] = degraded_signal(
                    name,
                    config.degraded_default_score,
                    ProviderTimeout(name, config.timeout_ms),
                    elapsed_ms,
                )
            else:
                signals[name] = task.result()

        return signals

    async def assess(
        self,
        context: AttemptContext,
        baseline: Optional[IdentityBaseline],
        policy: Optional[RiskPolicy] = None,
    ) -> RiskAssessment:
        """
        Score and decide one login attempt.

        Args:
            context: Login attempt (required fields already validated)
            baseline: Identity baseline snapshot, None for first-seen identities
            policy: Policy to apply (defaults to the decision policy's active one)

        Returns:
            Immutable RiskAssessment
        """
        policy = policy or self.decision_policy.policy
        start = time.perf_counter()

        signals = await self.collect_signals(context, baseline, policy)
        composite, override = combine_signals(signals, policy)

        scored = RiskAssessment(
            identity_key=context.identity_key,
            signals=signals,
            composite_score=composite,
            decision=AuthDecision.ALLOW,
            override_reason=override,
            computed_at=self.clock(),
            policy_version=policy.version,
        )
        decision, override = self.decision_policy.decide(scored, policy, context)

        processing_time_ms = (time.perf_counter() - start) * 1000
        assessment = scored.model_copy(update={
            "decision": decision,
            "override_reason": override,
            "processing_time_ms": round(processing_time_ms, 3),
        })

        # Per-provider telemetry
        for name, signal in signals.items():
            metrics.provider_latency.labels(provider=name).observe(signal.latency_ms)
            if signal.degraded:
                metrics.degraded_signals.labels(
                    provider=name,
                    reason=signal.evidence[0] if signal.evidence else EvidenceCodes.PROVIDER_ERROR,
                ).inc()

        return assessment
