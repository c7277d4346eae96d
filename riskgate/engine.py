"""
Risk Engine

End-to-end control flow for one login attempt:
1. Validate required fields (identity key, client IP)
2. Read the identity baseline snapshot
3. Assess: providers in parallel -> composite score -> decision
4. Append the attempt to the ledger
5. On ALLOW, fold the attempt into the identity baseline

The engine is what the API (and tests) talk to; every collaborator is
injected so mock and real deployments differ only in wiring.
"""

import asyncio
import logging
import time
from datetime import datetime, UTC
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

import redis.asyncio as redis

from .aggregation import SignalAggregator
from .config import RiskPolicy, Settings
from .errors import MalformedAttemptContext
from .ledger import AttemptLedger, AuditTrail, InMemoryAttemptLedger, RedisAttemptLedger
from .metrics import metrics, telemetry
from .policy import DecisionPolicy
from .providers import ProviderSet, SignalProvider, build_providers
from .schemas import (
    AttemptContext,
    AttemptRecord,
    FinalOutcome,
    IdentityBaseline,
    RiskAssessment,
)

logger = logging.getLogger("riskgate.engine")


class RiskEngine:
    """
    Login risk engine facade.

    One engine serves the login risk domain; a transaction risk domain
    would be a second engine with its own providers and policy.
    """

    def __init__(
        self,
        providers: list[SignalProvider],
        ledger: AttemptLedger,
        decision_policy: Optional[DecisionPolicy] = None,
        audit: Optional[AuditTrail] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize engine.

        Args:
            providers: Signal providers to dispatch
            ledger: Baseline and attempt storage
            decision_policy: Active policy holder (default policy if None)
            audit: Optional durable audit trail
            clock: Time source for assessments and baselines
        """
        self.decision_policy = decision_policy or DecisionPolicy(clock=clock)
        self.aggregator = SignalAggregator(providers, self.decision_policy, clock=clock)
        self.ledger = ledger
        self.audit = audit
        self._provider_set: Optional[ProviderSet] = None
        self._background_tasks: set[asyncio.Task] = set()

    def _background(self, coro: Awaitable, name: str) -> None:
        """Run a coroutine in the background and log failures."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)

        def _log_exception(task_ref: asyncio.Task) -> None:
            self._background_tasks.discard(task_ref)
            if task_ref.cancelled():
                return
            exc = task_ref.exception()
            if exc is not None:
                logger.warning("Background task %s failed: %s", name, exc)

        task.add_done_callback(_log_exception)

    @property
    def policy(self) -> RiskPolicy:
        return self.decision_policy.policy

    async def assess_attempt(self, context: AttemptContext) -> RiskAssessment:
        """
        Assess one login attempt and record it.

        Raises:
            MalformedAttemptContext: if identity_key or client_ip is missing
        """
        missing = context.missing_required_fields()
        if missing:
            raise MalformedAttemptContext(missing)

        start = time.perf_counter()
        policy = self.policy

        baseline = await self.ledger.get_baseline(context.identity_key)
        assessment = await self.aggregator.assess(context, baseline, policy)

        ledger_start = time.perf_counter()
        record = await self.ledger.append(assessment)
        updated = await self.decision_policy.apply_outcome(assessment, context, self.ledger)
        metrics.ledger_latency.observe((time.perf_counter() - ledger_start) * 1000)
        if updated is not None:
            metrics.baseline_updates.inc()

        if self.audit is not None:
            self._background(self.audit.record_attempt(record), "audit_attempt")

        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics.assess_latency.observe(elapsed_ms)
        metrics.decisions_total.labels(decision=assessment.decision.value).inc()
        metrics.composite_score.observe(assessment.composite_score)
        if assessment.override_reason:
            metrics.overrides_total.labels(reason=assessment.override_reason).inc()
        telemetry.record(
            assessment.decision.value,
            elapsed_ms,
            assessment.composite_score,
            assessment.degraded_providers,
        )

        logger.info(
            "Attempt %s for %s: %s (score=%.3f, override=%s, degraded=%s)",
            assessment.attempt_id,
            assessment.identity_key,
            assessment.decision.value,
            assessment.composite_score,
            assessment.override_reason,
            ",".join(assessment.degraded_providers) or "-",
        )
        return assessment

    async def record_outcome(self, attempt_id: str, outcome: FinalOutcome) -> AttemptRecord:
        """
        Record the OTP outcome of a challenged attempt.

        The stored assessment is never changed.

        Raises:
            AttemptNotFound: unknown attempt
            OutcomeAlreadyRecorded: attempt not awaiting an OTP outcome
        """
        record = await self.ledger.record_outcome(attempt_id, outcome)
        metrics.outcomes_total.labels(outcome=outcome.value).inc()
        if self.audit is not None:
            self._background(self.audit.record_outcome(record), "audit_outcome")
        return record

    async def get_attempt(self, attempt_id: str) -> AttemptRecord:
        return await self.ledger.get_attempt(attempt_id)

    async def get_baseline(self, identity_key: str) -> Optional[IdentityBaseline]:
        return await self.ledger.get_baseline(identity_key)

    async def list_attempts(self, identity_key: str, limit: int = 50) -> list[AttemptRecord]:
        return await self.ledger.list_attempts(identity_key, limit)

    def reload_policy(self) -> RiskPolicy:
        """Reload the YAML policy; the active one is kept if the file is invalid."""
        return self.decision_policy.reload_policy()

    async def close(self) -> None:
        """Release lookup clients, ledger and audit connections."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        if self._provider_set is not None:
            await self._provider_set.aclose()
        await self.ledger.close()
        if self.audit is not None:
            await self.audit.close()


def build_ledger(settings: Settings) -> AttemptLedger:
    """Select the ledger backend configured in settings."""
    if settings.ledger_backend == "redis":
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            decode_responses=True,
        )
        return RedisAttemptLedger(client, prefix=settings.redis_key_prefix)
    return InMemoryAttemptLedger()


async def build_engine(
    settings: Settings,
    policy_path: Optional[Union[str, Path]] = None,
    ledger: Optional[AttemptLedger] = None,
) -> RiskEngine:
    """
    Wire a RiskEngine from settings.

    Raises:
        InvalidConfiguration: if the risk policy is invalid
    """
    decision_policy = DecisionPolicy(policy_path=policy_path or settings.risk_policy_path)
    provider_set = build_providers(settings)

    audit = None
    if settings.audit_enabled:
        audit = AuditTrail(settings.postgres_url, echo=settings.app_debug)
        await audit.initialize()

    engine = RiskEngine(
        providers=provider_set.providers,
        ledger=ledger or build_ledger(settings),
        decision_policy=decision_policy,
        audit=audit,
    )
    engine._provider_set = provider_set
    logger.info(
        "Risk engine ready: policy %s, ledger %s, mock_mode=%s",
        decision_policy.policy.version,
        settings.ledger_backend,
        settings.mock_mode,
    )
    return engine
