"""
Redis Attempt Ledger

Ledger shared by all API workers. Layout (all keys under the
configured prefix):
- baseline:{identity}   JSON IdentityBaseline
- attempt:{attempt_id}  JSON AttemptRecord
- attempts:{identity}   list of attempt IDs, oldest first

Baseline updates, appends and outcome writes are optimistic
transactions: WATCH the key, read, compute, MULTI/EXEC, and retry when
another writer got there first.
"""

import logging
from datetime import datetime, UTC
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from ..errors import AttemptNotFound, LedgerConflict
from ..schemas import AttemptRecord, FinalOutcome, IdentityBaseline, RiskAssessment
from .base import (
    AttemptLedger,
    BaselineUpdater,
    DEFAULT_LIST_LIMIT,
    next_recorded_at,
    resolve_outcome,
)

logger = logging.getLogger("riskgate.ledger")

MAX_TRANSACTION_RETRIES = 16


class RedisAttemptLedger(AttemptLedger):
    """Ledger stored in Redis."""

    def __init__(
        self,
        redis_client: redis.Redis,
        prefix: str = "riskgate:",
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """
        Initialize Redis ledger.

        Args:
            redis_client: Async Redis client
            prefix: Key prefix shared with other riskgate data
            clock: Time source for recorded_at / outcome_recorded_at
        """
        self.redis = redis_client
        self.prefix = prefix
        self.clock = clock

    # =========================================================================
    # Keys
    # =========================================================================

    def _baseline_key(self, identity_key: str) -> str:
        return f"{self.prefix}baseline:{identity_key}"

    def _attempt_key(self, attempt_id: str) -> str:
        return f"{self.prefix}attempt:{attempt_id}"

    def _identity_attempts_key(self, identity_key: str) -> str:
        return f"{self.prefix}attempts:{identity_key}"

    # =========================================================================
    # Baselines
    # =========================================================================

    async def get_baseline(self, identity_key: str) -> Optional[IdentityBaseline]:
        raw = await self.redis.get(self._baseline_key(identity_key))
        if raw is None:
            return None
        return IdentityBaseline.model_validate_json(raw)

    async def update_baseline(
        self,
        identity_key: str,
        updater: BaselineUpdater,
    ) -> IdentityBaseline:
        key = self._baseline_key(identity_key)

        async with self.redis.pipeline(transaction=True) as pipe:
            for _ in range(MAX_TRANSACTION_RETRIES):
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    current = IdentityBaseline.model_validate_json(raw) if raw else None
                    baseline = updater(current)

                    pipe.multi()
                    pipe.set(key, baseline.model_dump_json())
                    await pipe.execute()
                    return baseline
                except WatchError:
                    logger.debug("Baseline update for %s conflicted, retrying", identity_key)
                    continue

        raise LedgerConflict(f"Baseline update for '{identity_key}' kept conflicting")

    # =========================================================================
    # Attempts
    # =========================================================================

    async def append(self, assessment: RiskAssessment) -> AttemptRecord:
        list_key = self._identity_attempts_key(assessment.identity_key)

        async with self.redis.pipeline(transaction=True) as pipe:
            for _ in range(MAX_TRANSACTION_RETRIES):
                try:
                    await pipe.watch(list_key)
                    last_id = await pipe.lindex(list_key, -1)
                    previous = None
                    if last_id is not None:
                        raw_last = await pipe.get(self._attempt_key(_as_str(last_id)))
                        if raw_last:
                            previous = AttemptRecord.model_validate_json(raw_last).recorded_at

                    record = AttemptRecord.from_assessment(
                        assessment,
                        recorded_at=next_recorded_at(previous, self.clock()),
                    )

                    pipe.multi()
                    pipe.set(self._attempt_key(record.attempt_id), record.model_dump_json())
                    pipe.rpush(list_key, record.attempt_id)
                    await pipe.execute()
                    return record
                except WatchError:
                    continue

        raise LedgerConflict(f"Append for '{assessment.identity_key}' kept conflicting")

    async def get_attempt(self, attempt_id: str) -> AttemptRecord:
        raw = await self.redis.get(self._attempt_key(attempt_id))
        if raw is None:
            raise AttemptNotFound(attempt_id)
        return AttemptRecord.model_validate_json(raw)

    async def list_attempts(
        self,
        identity_key: str,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AttemptRecord]:
        ids = await self.redis.lrange(self._identity_attempts_key(identity_key), -limit, -1)
        if not ids:
            return []
        raws = await self.redis.mget([self._attempt_key(_as_str(i)) for i in reversed(ids)])
        return [AttemptRecord.model_validate_json(raw) for raw in raws if raw]

    async def record_outcome(self, attempt_id: str, outcome: FinalOutcome) -> AttemptRecord:
        key = self._attempt_key(attempt_id)

        async with self.redis.pipeline(transaction=True) as pipe:
            for _ in range(MAX_TRANSACTION_RETRIES):
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if raw is None:
                        raise AttemptNotFound(attempt_id)

                    record = AttemptRecord.model_validate_json(raw)
                    updated = resolve_outcome(record, outcome, self.clock())

                    pipe.multi()
                    pipe.set(key, updated.model_dump_json())
                    await pipe.execute()
                    logger.info("Attempt %s outcome recorded: %s", attempt_id, outcome.value)
                    return updated
                except WatchError:
                    continue

        raise LedgerConflict(f"Outcome write for '{attempt_id}' kept conflicting")

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


def _as_str(value) -> str:
    return value.decode() if isinstance(value, bytes) else value
