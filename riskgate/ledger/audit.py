"""
Audit Trail

Durable Postgres copy of every attempt record, for:
1. Security investigations (who was challenged/blocked and why)
2. Policy replay (re-deciding stored signals under a new policy)
3. Outcome analytics (OTP pass/fail rates per decision band)

The ledger stays the source of truth; audit writes are best effort and
never fail a login.
"""

import json
import logging
import time
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ..metrics import metrics
from ..schemas import AttemptRecord, FinalOutcome, RiskAssessment

logger = logging.getLogger("riskgate.audit")


CREATE_AUDIT_TABLE = """
    CREATE TABLE IF NOT EXISTS risk_attempt_audit (
        attempt_id TEXT PRIMARY KEY,
        identity_key TEXT NOT NULL,
        recorded_at TIMESTAMPTZ NOT NULL,
        decision TEXT NOT NULL,
        composite_score DOUBLE PRECISION NOT NULL,
        override_reason TEXT,
        policy_version TEXT NOT NULL,
        final_outcome TEXT NOT NULL,
        outcome_recorded_at TIMESTAMPTZ,
        assessment_json JSONB NOT NULL
    )
"""

CREATE_AUDIT_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_risk_attempt_audit_identity
    ON risk_attempt_audit (identity_key, recorded_at DESC)
"""


class AuditTrail:
    """
    Writes attempt records to the risk_attempt_audit table.

    Uses raw SQL through SQLAlchemy's async engine (asyncpg driver).
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize audit trail.

        Args:
            database_url: PostgreSQL connection URL (postgresql+asyncpg://...)
            echo: Log SQL statements
        """
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self.session_factory = None

    async def initialize(self) -> None:
        """Initialize database connection and create the audit table."""
        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=self.echo,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
            )
            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            async with self.session_factory() as session:
                await session.execute(text(CREATE_AUDIT_TABLE))
                await session.execute(text(CREATE_AUDIT_INDEX))
                await session.commit()
        except Exception as e:
            logger.warning("Audit trail initialization failed: %s", e)
            self.session_factory = None

    async def close(self) -> None:
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()

    async def health_check(self) -> bool:
        """Check database connectivity."""
        if not self.session_factory:
            return False

        async with self.session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    async def record_attempt(self, record: AttemptRecord) -> bool:
        """
        Insert an attempt record.

        Returns:
            True if written, False if the audit store is unavailable
        """
        if not self.session_factory:
            return False

        assessment = record.assessment
        params = {
            "attempt_id": record.attempt_id,
            "identity_key": record.identity_key,
            "recorded_at": record.recorded_at,
            "decision": assessment.decision.value,
            "composite_score": assessment.composite_score,
            "override_reason": assessment.override_reason,
            "policy_version": assessment.policy_version,
            "final_outcome": record.final_outcome.value,
            "assessment_json": assessment.model_dump_json(),
        }

        try:
            started_at = time.perf_counter()
            async with self.session_factory() as session:
                await session.execute(
                    text("""
                        INSERT INTO risk_attempt_audit (
                            attempt_id, identity_key, recorded_at, decision,
                            composite_score, override_reason, policy_version,
                            final_outcome, assessment_json
                        ) VALUES (
                            :attempt_id, :identity_key, :recorded_at, :decision,
                            :composite_score, :override_reason, :policy_version,
                            :final_outcome, CAST(:assessment_json AS JSONB)
                        )
                        ON CONFLICT (attempt_id) DO NOTHING
                    """),
                    params,
                )
                await session.commit()
            metrics.ledger_latency.observe((time.perf_counter() - started_at) * 1000)
            return True
        except Exception as e:
            logger.warning("Audit write failed for %s: %s", record.attempt_id, e)
            metrics.errors_total.labels(error_type="AuditWriteFailed").inc()
            return False

    async def record_outcome(self, record: AttemptRecord) -> bool:
        """Write the final outcome of an attempt already in the audit table."""
        if not self.session_factory:
            return False

        try:
            async with self.session_factory() as session:
                await session.execute(
                    text("""
                        UPDATE risk_attempt_audit
                        SET final_outcome = :final_outcome,
                            outcome_recorded_at = :outcome_recorded_at
                        WHERE attempt_id = :attempt_id
                    """),
                    {
                        "attempt_id": record.attempt_id,
                        "final_outcome": record.final_outcome.value,
                        "outcome_recorded_at": record.outcome_recorded_at,
                    },
                )
                await session.commit()
            return True
        except Exception as e:
            logger.warning("Audit outcome update failed for %s: %s", record.attempt_id, e)
            metrics.errors_total.labels(error_type="AuditWriteFailed").inc()
            return False

    async def fetch_attempts(
        self,
        identity_key: Optional[str] = None,
        limit: int = 1000,
    ) -> list[dict]:
        """Read audit rows (newest first) for replay and analysis."""
        if not self.session_factory:
            return []

        query = "SELECT * FROM risk_attempt_audit"
        params: dict = {"limit": limit}
        if identity_key:
            query += " WHERE identity_key = :identity_key"
            params["identity_key"] = identity_key
        query += " ORDER BY recorded_at DESC LIMIT :limit"

        async with self.session_factory() as session:
            result = await session.execute(text(query), params)
            rows = []
            for row in result.mappings():
                row = dict(row)
                if isinstance(row.get("assessment_json"), str):
                    row["assessment_json"] = json.loads(row["assessment_json"])
                rows.append(row)
            return rows


def record_from_row(row: dict) -> AttemptRecord:
    """Rebuild an AttemptRecord from a risk_attempt_audit row."""
    return AttemptRecord(
        attempt_id=row["attempt_id"],
        identity_key=row["identity_key"],
        assessment=RiskAssessment.model_validate(row["assessment_json"]),
        recorded_at=row["recorded_at"],
        final_outcome=FinalOutcome(row["final_outcome"]),
        outcome_recorded_at=row.get("outcome_recorded_at"),
    )
