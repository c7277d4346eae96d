"""
Pytest Configuration and Fixtures - Login Risk Engine

Provides shared fixtures for login risk tests: a fixed clock, mock
lookups, an in-memory ledger, an engine wired like mock mode, and an
API client running inside the app lifespan.
"""

from datetime import datetime, UTC
from typing import AsyncGenerator, Callable
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import AsyncClient, ASGITransport

from riskgate.api.main import app
from riskgate.config import DEFAULT_POLICY, Settings, settings
from riskgate.engine import RiskEngine
from riskgate.ledger import InMemoryAttemptLedger
from riskgate.policy import DecisionPolicy
from riskgate.providers import build_providers
from riskgate.schemas import AttemptContext, DeviceClass, TypingSample


FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests (no infrastructure)")
    config.addinivalue_line("markers", "integration: integration tests (requires Redis)")


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Frozen clock so port/swap ages are exact."""
    return lambda: FIXED_NOW


@pytest.fixture
def mock_settings() -> Settings:
    return Settings(_env_file=None, mock_mode=True, ledger_backend="memory")


@pytest.fixture
def ledger(clock) -> InMemoryAttemptLedger:
    return InMemoryAttemptLedger(clock=clock)


@pytest.fixture
def engine(mock_settings, ledger, clock) -> RiskEngine:
    """Engine with mock lookups, default policy and in-memory ledger."""
    provider_set = build_providers(mock_settings, clock=clock)
    return RiskEngine(
        providers=provider_set.providers,
        ledger=ledger,
        decision_policy=DecisionPolicy(DEFAULT_POLICY, clock=clock),
        clock=clock,
    )


@pytest.fixture
def typing_session() -> Callable[..., list[TypingSample]]:
    """
    Build a keystroke session with a steady rhythm.

    The default (50 keys, 125ms apart, 80ms dwell, one Backspace) types
    at about 95 WPM with a 2% error rate.
    """
    def _build(
        count: int = 50,
        step_ms: float = 125.0,
        dwell_ms: float = 80.0,
        corrections: int = 1,
    ) -> list[TypingSample]:
        samples = []
        for i in range(count):
            key = "Backspace" if i >= count - corrections else "a"
            pressed = 1000.0 + i * step_ms
            samples.append(TypingSample(
                key=key,
                pressed_at_ms=pressed,
                released_at_ms=pressed + dwell_ms,
            ))
        return samples

    return _build


@pytest.fixture
def login_context() -> AttemptContext:
    """Clean login from Mumbai on a known carrier, no keystrokes."""
    return AttemptContext(
        identity_key=f"user_{uuid4().hex[:8]}@example.com",
        client_ip="203.0.113.10",
        phone_number="+91 98123 45670",
        device_fingerprint="fp-laptop-1",
        device_class=DeviceClass.DESKTOP,
    )


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    """
    Get Redis client for tests.

    Skips when Redis is not reachable.
    """
    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
    )

    try:
        await client.ping()
    except Exception:
        await client.aclose()
        pytest.skip("Redis not available")

    try:
        yield client
    finally:
        keys = await client.keys("riskgate-test:*")
        if keys:
            await client.delete(*keys)
        await client.aclose()


@pytest_asyncio.fixture
async def api_client() -> AsyncGenerator[AsyncClient, None]:
    """
    Get async HTTP client for API tests.

    Uses lifespan context manager to properly initialize app resources.
    """
    from riskgate.api.main import lifespan

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
