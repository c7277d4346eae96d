"""
Attempt Ledger Interface

The ledger owns two kinds of state:
- Identity baselines: one per identity, replaced atomically on ALLOW
- Attempt records: append-only; final_outcome is the only field that
  may change, and only from OTP_PENDING to an OTP resolution, once

Implementations: InMemoryAttemptLedger (single process) and
RedisAttemptLedger (shared across API workers).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from ..errors import OutcomeAlreadyRecorded
from ..schemas import AttemptRecord, FinalOutcome, IdentityBaseline, RiskAssessment


BaselineUpdater = Callable[[Optional[IdentityBaseline]], IdentityBaseline]

DEFAULT_LIST_LIMIT = 50


def next_recorded_at(previous: Optional[datetime], now: datetime) -> datetime:
    """Clamp a timestamp so records of one identity never go back in time."""
    if previous is not None and now < previous:
        return previous
    return now


def resolve_outcome(record: AttemptRecord, outcome: FinalOutcome, now: datetime) -> AttemptRecord:
    """
    Apply an OTP outcome to a record.

    Raises:
        OutcomeAlreadyRecorded: if the record is not awaiting an OTP outcome
    """
    if record.final_outcome != FinalOutcome.OTP_PENDING or not outcome.is_otp_resolution:
        raise OutcomeAlreadyRecorded(record.attempt_id, record.final_outcome.value)
    return record.with_outcome(outcome, now)


class AttemptLedger(ABC):
    """Storage for identity baselines and attempt records."""

    @abstractmethod
    async def get_baseline(self, identity_key: str) -> Optional[IdentityBaseline]:
        """Snapshot of the identity baseline, None if the identity was never allowed."""
        pass

    @abstractmethod
    async def update_baseline(
        self,
        identity_key: str,
        updater: BaselineUpdater,
    ) -> IdentityBaseline:
        """
        Atomically replace the baseline with updater(current).

        Concurrent updates for one identity are serialized, so no
        update is lost.
        """
        pass

    @abstractmethod
    async def append(self, assessment: RiskAssessment) -> AttemptRecord:
        """Append a new attempt record for an assessment."""
        pass

    @abstractmethod
    async def get_attempt(self, attempt_id: str) -> AttemptRecord:
        """
        Fetch an attempt record.

        Raises:
            AttemptNotFound: if no record exists
        """
        pass

    @abstractmethod
    async def list_attempts(
        self,
        identity_key: str,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AttemptRecord]:
        """Most recent attempts of an identity, newest first."""
        pass

    @abstractmethod
    async def record_outcome(self, attempt_id: str, outcome: FinalOutcome) -> AttemptRecord:
        """
        Write the OTP outcome of a challenged attempt.

        Raises:
            AttemptNotFound: if no record exists
            OutcomeAlreadyRecorded: if the record is not OTP_PENDING
        """
        pass

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
