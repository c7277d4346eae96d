"""
Login Risk API

FastAPI application providing the login risk endpoints.
Latency is bounded by the slowest provider timeout in the risk policy.

Endpoints:
- POST /risk/assess: Assess a login attempt
- POST /risk/attempt-outcome: Record the OTP outcome of a challenged attempt
- GET /risk/attempts/{attempt_id}: Read an attempt record
- GET /risk/identities/{identity_key}/baseline: Read an identity baseline
- GET /risk/identities/{identity_key}/attempts: Recent attempts of an identity
- GET /health: Health check
- GET /metrics: Prometheus metrics
- GET /policy/version, POST /policy/reload: Risk policy management
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config import settings
from ..engine import RiskEngine, build_engine
from ..errors import (
    AttemptNotFound,
    InvalidConfiguration,
    MalformedAttemptContext,
    OutcomeAlreadyRecorded,
)
from ..metrics import metrics, telemetry
from ..schemas import AttemptContext, AttemptOutcomeRequest, AttemptRecord, IdentityBaseline, RiskAssessment
from ..utils import configure_logging
from .auth import require_api_token, require_admin_token, require_metrics_token

logger = logging.getLogger("riskgate.api")


# Global instance (initialized in lifespan)
risk_engine: Optional[RiskEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Initializes and cleans up resources:
    - Risk policy (invalid policy aborts startup)
    - Lookup clients (mock or real)
    - Ledger (memory or Redis) and optional audit trail
    """
    global risk_engine

    configure_logging(settings.app_log_level)
    risk_engine = await build_engine(settings)

    # Verify ledger connection
    try:
        healthy = await risk_engine.ledger.ping()
    except Exception as e:
        logger.warning("Ledger connection failed: %s", e)
        healthy = False
    metrics.component_health.labels(component="ledger").set(1 if healthy else 0)

    yield

    # Cleanup
    if risk_engine:
        await risk_engine.close()
    risk_engine = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Login Risk API",
        description="Real-time multi-signal login risk scoring",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


def get_engine() -> RiskEngine:
    """Return the running engine or fail with 503 before startup completes."""
    if risk_engine is None:
        raise HTTPException(status_code=503, detail="Risk engine not initialized")
    return risk_engine


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns service health status and component availability.
    """
    health = {
        "status": "healthy",
        "components": {
            "ledger": False,
            "policy": False,
        }
    }

    if risk_engine:
        # Check ledger
        try:
            health["components"]["ledger"] = await risk_engine.ledger.ping()
        except Exception as e:
            logger.warning("Ledger health check failed: %s", e)

        # Check policy
        health["components"]["policy"] = True
        health["policy_version"] = risk_engine.policy.version
        health["mock_mode"] = settings.mock_mode

        # Check audit store (only when enabled)
        if risk_engine.audit is not None:
            try:
                health["components"]["audit"] = await risk_engine.audit.health_check()
            except Exception as e:
                logger.warning("Audit health check failed: %s", e)
                health["components"]["audit"] = False

    # Overall status
    if not all(health["components"].values()):
        health["status"] = "degraded"

    return health


@app.get("/metrics")
def metrics_endpoint(_: None = Depends(require_metrics_token)):
    """Expose Prometheus metrics with optional token auth."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/metrics/summary")
def metrics_summary(hours: int = 24, _: None = Depends(require_metrics_token)):
    """Return recent decision telemetry for dashboards."""
    return telemetry.snapshot(hours=hours)


# =============================================================================
# RISK ENDPOINTS
# =============================================================================

@app.post("/risk/assess", response_model=RiskAssessment)
async def assess_attempt(
    context: AttemptContext,
    _: None = Depends(require_api_token),
):
    """
    Assess a login attempt.

    This is the primary endpoint for the login flow.

    Returns:
        200 with the RiskAssessment, or 503 with a conservative
        RiskAssessment when no provider could produce a signal
    """
    start_time = time.perf_counter()
    metrics.requests_total.labels(endpoint="/risk/assess").inc()
    engine = get_engine()

    try:
        assessment = await engine.assess_attempt(context)
    except MalformedAttemptContext as e:
        metrics.errors_total.labels(error_type="MalformedAttemptContext").inc()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Assessment failed")
        metrics.errors_total.labels(error_type=type(e).__name__).inc()
        raise HTTPException(status_code=500, detail="Assessment failed")

    if assessment.all_signals_unavailable:
        logger.warning(
            "All signals unavailable for attempt %s (%.1fms)",
            assessment.attempt_id,
            (time.perf_counter() - start_time) * 1000,
        )
        return JSONResponse(status_code=503, content=assessment.model_dump(mode="json", by_alias=True))

    return assessment


@app.post("/risk/attempt-outcome", response_model=AttemptRecord)
async def record_attempt_outcome(
    request: AttemptOutcomeRequest,
    _: None = Depends(require_api_token),
):
    """Record OTP_PASSED / OTP_FAILED / OTP_EXPIRED for a challenged attempt."""
    metrics.requests_total.labels(endpoint="/risk/attempt-outcome").inc()
    engine = get_engine()

    try:
        return await engine.record_outcome(request.attempt_id, request.final_outcome)
    except AttemptNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OutcomeAlreadyRecorded as e:
        metrics.errors_total.labels(error_type="OutcomeAlreadyRecorded").inc()
        raise HTTPException(status_code=409, detail=str(e))


@app.get("/risk/attempts/{attempt_id}", response_model=AttemptRecord)
async def get_attempt(attempt_id: str, _: None = Depends(require_api_token)):
    """Get a single attempt record."""
    try:
        return await get_engine().get_attempt(attempt_id)
    except AttemptNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/risk/identities/{identity_key}/baseline", response_model=IdentityBaseline)
async def get_identity_baseline(identity_key: str, _: None = Depends(require_api_token)):
    """Get the known-good baseline of an identity."""
    baseline = await get_engine().get_baseline(identity_key)
    if baseline is None:
        raise HTTPException(status_code=404, detail=f"No baseline for '{identity_key}'")
    return baseline


@app.get("/risk/identities/{identity_key}/attempts", response_model=list[AttemptRecord])
async def list_identity_attempts(
    identity_key: str,
    limit: int = Query(default=50, ge=1, le=500),
    _: None = Depends(require_api_token),
):
    """List recent attempts of an identity, newest first."""
    return await get_engine().list_attempts(identity_key, limit)


# =============================================================================
# POLICY ENDPOINTS
# =============================================================================

@app.get("/policy/version")
async def get_policy_version(_: None = Depends(require_api_token)):
    """Get current policy version and hash."""
    engine = get_engine()
    return {
        "version": engine.policy.version,
        "hash": engine.decision_policy.policy_hash,
    }


@app.post("/policy/reload")
async def reload_policy(_: None = Depends(require_admin_token)):
    """Reload policy from configuration file; an invalid file keeps the active policy."""
    engine = get_engine()
    try:
        policy = engine.reload_policy()
    except InvalidConfiguration as e:
        logger.error("Policy reload failed: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "status": "success",
        "version": policy.version,
        "hash": engine.decision_policy.policy_hash,
    }
