# Attempt ledger, audit trail and replay
from .base import AttemptLedger, BaselineUpdater, next_recorded_at, resolve_outcome
from .memory import InMemoryAttemptLedger
from .redis_ledger import RedisAttemptLedger
from .audit import AuditTrail, record_from_row
from .replay import (
    ReplayMetrics,
    ReplayDivergence,
    ReplayResults,
    replay_record,
    replay_assessments,
)

__all__ = [
    "AttemptLedger",
    "BaselineUpdater",
    "next_recorded_at",
    "resolve_outcome",
    "InMemoryAttemptLedger",
    "RedisAttemptLedger",
    "AuditTrail",
    "record_from_row",
    "ReplayMetrics",
    "ReplayDivergence",
    "ReplayResults",
    "replay_record",
    "replay_assessments",
]
