"""
In-memory Attempt Ledger

Single-process ledger. Every read-modify-write of one identity runs
under that identity's asyncio.Lock; baselines and records are frozen
models, so readers only ever see whole snapshots. A lock lives only
while some task holds or waits for it.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import AsyncIterator, Callable, Optional

from ..errors import AttemptNotFound
from ..schemas import AttemptRecord, FinalOutcome, IdentityBaseline, RiskAssessment
from .base import (
    AttemptLedger,
    BaselineUpdater,
    DEFAULT_LIST_LIMIT,
    next_recorded_at,
    resolve_outcome,
)

logger = logging.getLogger("riskgate.ledger")


class InMemoryAttemptLedger(AttemptLedger):
    """Ledger held in process memory (demo mode, tests)."""

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        self.clock = clock
        self._baselines: dict[str, IdentityBaseline] = {}
        self._attempts: dict[str, AttemptRecord] = {}
        self._by_identity: dict[str, list[str]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _identity_lock(self, identity_key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(identity_key, asyncio.Lock())
        self._lock_users[identity_key] = self._lock_users.get(identity_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[identity_key] -= 1
            if not self._lock_users[identity_key]:
                del self._lock_users[identity_key]
                del self._locks[identity_key]

    async def _load_baseline(self, identity_key: str) -> Optional[IdentityBaseline]:
        return self._baselines.get(identity_key)

    async def _store_baseline(self, baseline: IdentityBaseline) -> None:
        self._baselines[baseline.identity_key] = baseline

    async def get_baseline(self, identity_key: str) -> Optional[IdentityBaseline]:
        return await self._load_baseline(identity_key)

    async def update_baseline(
        self,
        identity_key: str,
        updater: BaselineUpdater,
    ) -> IdentityBaseline:
        async with self._identity_lock(identity_key):
            current = await self._load_baseline(identity_key)
            baseline = updater(current)
            await self._store_baseline(baseline)
            return baseline

    async def append(self, assessment: RiskAssessment) -> AttemptRecord:
        identity_key = assessment.identity_key
        async with self._identity_lock(identity_key):
            ids = self._by_identity[identity_key]
            previous = self._attempts[ids[-1]].recorded_at if ids else None
            record = AttemptRecord.from_assessment(
                assessment,
                recorded_at=next_recorded_at(previous, self.clock()),
            )
            self._attempts[record.attempt_id] = record
            ids.append(record.attempt_id)
        return record

    async def get_attempt(self, attempt_id: str) -> AttemptRecord:
        record = self._attempts.get(attempt_id)
        if record is None:
            raise AttemptNotFound(attempt_id)
        return record

    async def list_attempts(
        self,
        identity_key: str,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AttemptRecord]:
        ids = self._by_identity.get(identity_key, [])
        return [self._attempts[attempt_id] for attempt_id in reversed(ids[-limit:])]

    async def record_outcome(self, attempt_id: str, outcome: FinalOutcome) -> AttemptRecord:
        record = await self.get_attempt(attempt_id)
        async with self._identity_lock(record.identity_key):
            updated = resolve_outcome(self._attempts[attempt_id], outcome, self.clock())
            self._attempts[attempt_id] = updated
        logger.info("Attempt %s outcome recorded: %s", attempt_id, outcome.value)
        return updated
