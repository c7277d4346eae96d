"""
API Tests

Integration tests for the login risk API (mock lookups, in-memory ledger).
"""

import pytest
import yaml
from httpx import AsyncClient

import riskgate.api.main as api_main
from riskgate.config import DEFAULT_POLICY, settings
from riskgate.engine import RiskEngine
from riskgate.errors import ProviderError
from riskgate.ledger import InMemoryAttemptLedger
from riskgate.policy import DecisionPolicy
from riskgate.providers import SignalProvider
from riskgate.schemas import ProviderNames


class FailingProvider(SignalProvider):
    def __init__(self, name: str):
        self.name = name

    def is_applicable(self, context):
        return True

    async def score(self, context, baseline):
        raise ProviderError(self.name, "upstream unavailable")


def login_payload(**overrides) -> dict:
    payload = {
        "identityKey": "api-user@example.com",
        "clientIp": "203.0.113.10",
        "phoneNumber": "+91 98123 45670",
        "deviceFingerprint": "fp-api-1",
        "deviceClass": "desktop",
    }
    payload.update(overrides)
    return payload


async def challenged_attempt(api_client: AsyncClient) -> dict:
    response = await api_client.post(
        "/risk/assess",
        json=login_payload(identityKey="otp-user@example.com", phoneNumber="+91 99999 12345"),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["decision"] == "CHALLENGE_OTP"
    return data


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_status(self, api_client: AsyncClient):
        """Test health endpoint returns status."""
        response = await api_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["ledger"] is True
        assert data["mock_mode"] is True


class TestAssessEndpoint:
    """Tests for POST /risk/assess."""

    @pytest.mark.asyncio
    async def test_clean_login(self, api_client: AsyncClient):
        response = await api_client.post("/risk/assess", json=login_payload())

        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "ALLOW"
        assert data["identityKey"] == "api-user@example.com"
        assert data["attemptId"].startswith("att_")
        assert set(data["signals"]) == {
            ProviderNames.PHONE_CARRIER,
            ProviderNames.GEO_IP,
            ProviderNames.DEVICE,
            ProviderNames.SIM_SWAP,
        }
        assert 0.0 <= data["compositeScore"] <= 1.0

    @pytest.mark.asyncio
    async def test_tor_is_blocked(self, api_client: AsyncClient):
        response = await api_client.post("/risk/assess", json=login_payload(clientIp="tor-exit-9"))

        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "BLOCK"
        assert data["overrideReason"] == "force_block:tor_exit_node"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["identityKey", "clientIp"])
    async def test_missing_required_field(self, api_client: AsyncClient, missing):
        payload = login_payload()
        del payload[missing]

        response = await api_client.post("/risk/assess", json=payload)

        assert response.status_code == 400
        assert missing in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_blank_identity_is_400(self, api_client: AsyncClient):
        response = await api_client.post("/risk/assess", json=login_payload(identityKey="  "))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_camel_case_body_and_response(self, api_client: AsyncClient):
        """Test the documented wire names, including nested typing samples."""
        samples = [
            {"key": ch, "pressedAtMs": i * 150, "releasedAtMs": i * 150 + 90}
            for i, ch in enumerate("correct horse")
        ]
        response = await api_client.post(
            "/risk/assess",
            json={
                "identityKey": "wire@example.com",
                "clientIp": "203.0.113.5",
                "deviceFingerprint": "fp-wire",
                "typingSamples": samples,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["identityKey"] == "wire@example.com"
        assert ProviderNames.BEHAVIORAL in data["signals"]
        assert {"attemptId", "compositeScore", "overrideReason", "computedAt"} <= set(data)
        assert "latencyMs" in data["signals"][ProviderNames.DEVICE]
        assert "composite_score" not in data

    @pytest.mark.asyncio
    async def test_snake_case_body_still_accepted(self, api_client: AsyncClient):
        response = await api_client.post(
            "/risk/assess",
            json={"identity_key": "snake@example.com", "client_ip": "203.0.113.5"},
        )

        assert response.status_code == 200
        assert response.json()["identityKey"] == "snake@example.com"

    @pytest.mark.asyncio
    async def test_all_providers_down_returns_503_with_decision(self, api_client: AsyncClient, monkeypatch):
        failing = RiskEngine(
            providers=[FailingProvider(name) for name in ProviderNames.ALL],
            ledger=InMemoryAttemptLedger(),
            decision_policy=DecisionPolicy(DEFAULT_POLICY),
        )
        monkeypatch.setattr(api_main, "risk_engine", failing)

        response = await api_client.post("/risk/assess", json=login_payload())

        assert response.status_code == 503
        data = response.json()
        assert data["overrideReason"] == "all_signals_unavailable"
        assert data["decision"] == "CHALLENGE_OTP"
        assert all(signal["degraded"] for signal in data["signals"].values())

    @pytest.mark.asyncio
    async def test_api_token_enforced(self, api_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret-token")

        denied = await api_client.post("/risk/assess", json=login_payload())
        allowed = await api_client.post(
            "/risk/assess",
            json=login_payload(),
            headers={"Authorization": "Bearer secret-token"},
        )

        assert denied.status_code == 401
        assert allowed.status_code == 200


class TestOutcomeEndpoint:
    """Tests for POST /risk/attempt-outcome."""

    @pytest.mark.asyncio
    async def test_record_otp_passed(self, api_client: AsyncClient):
        attempt = await challenged_attempt(api_client)

        response = await api_client.post(
            "/risk/attempt-outcome",
            json={"attemptId": attempt["attemptId"], "finalOutcome": "OTP_PASSED"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["finalOutcome"] == "OTP_PASSED"
        assert data["assessment"]["compositeScore"] == attempt["compositeScore"]
        assert data["assessment"]["decision"] == "CHALLENGE_OTP"

    @pytest.mark.asyncio
    async def test_second_outcome_conflicts(self, api_client: AsyncClient):
        attempt = await challenged_attempt(api_client)
        body = {"attemptId": attempt["attemptId"], "finalOutcome": "OTP_FAILED"}

        first = await api_client.post("/risk/attempt-outcome", json=body)
        second = await api_client.post("/risk/attempt-outcome", json=body)

        assert first.status_code == 200
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_outcome_for_allowed_attempt_conflicts(self, api_client: AsyncClient):
        allowed = (await api_client.post("/risk/assess", json=login_payload())).json()

        response = await api_client.post(
            "/risk/attempt-outcome",
            json={"attemptId": allowed["attemptId"], "finalOutcome": "OTP_PASSED"},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_attempt(self, api_client: AsyncClient):
        response = await api_client.post(
            "/risk/attempt-outcome",
            json={"attemptId": "att_missing", "finalOutcome": "OTP_PASSED"},
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_otp_outcome_rejected(self, api_client: AsyncClient):
        response = await api_client.post(
            "/risk/attempt-outcome",
            json={"attemptId": "att_any", "finalOutcome": "ALLOWED"},
        )

        assert response.status_code == 422


class TestLedgerViews:
    """Tests for attempt and baseline read endpoints."""

    @pytest.mark.asyncio
    async def test_get_attempt(self, api_client: AsyncClient):
        attempt = await challenged_attempt(api_client)

        response = await api_client.get(f"/risk/attempts/{attempt['attemptId']}")

        assert response.status_code == 200
        assert response.json()["finalOutcome"] == "OTP_PENDING"

    @pytest.mark.asyncio
    async def test_get_missing_attempt(self, api_client: AsyncClient):
        response = await api_client.get("/risk/attempts/att_missing")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_baseline_after_allow(self, api_client: AsyncClient):
        await api_client.post("/risk/assess", json=login_payload(identityKey="baseline@example.com"))

        response = await api_client.get("/risk/identities/baseline@example.com/baseline")

        assert response.status_code == 200
        data = response.json()
        assert data["trustedDevices"] == ["fp-api-1"]
        assert data["lastKnownLocation"]["city"] == "Mumbai"

    @pytest.mark.asyncio
    async def test_no_baseline(self, api_client: AsyncClient):
        response = await api_client.get("/risk/identities/stranger@example.com/baseline")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_attempts(self, api_client: AsyncClient):
        identity = "history@example.com"
        ids = []
        for _ in range(3):
            response = await api_client.post("/risk/assess", json=login_payload(identityKey=identity))
            ids.append(response.json()["attemptId"])

        response = await api_client.get(f"/risk/identities/{identity}/attempts", params={"limit": 2})

        assert response.status_code == 200
        assert [r["attemptId"] for r in response.json()] == [ids[2], ids[1]]

    @pytest.mark.asyncio
    async def test_list_limit_validated(self, api_client: AsyncClient):
        response = await api_client.get("/risk/identities/x/attempts", params={"limit": 0})
        assert response.status_code == 422


class TestPolicyEndpoints:
    """Tests for policy version and reload."""

    def _write_policy(self, path, version: str, **overrides):
        data = {
            "version": version,
            "providers": {
                name: {"weight": 0.2, "timeout_ms": 500} for name in ProviderNames.ALL
            },
        }
        data.update(overrides)
        path.write_text(yaml.safe_dump(data))

    @pytest.mark.asyncio
    async def test_policy_version(self, api_client: AsyncClient):
        response = await api_client.get("/policy/version")

        assert response.status_code == 200
        data = response.json()
        assert data["version"]
        assert len(data["hash"]) == 16

    @pytest.mark.asyncio
    async def test_reload(self, api_client: AsyncClient, tmp_path):
        path = tmp_path / "risk_policy.yaml"
        self._write_policy(path, "9.0.0")
        api_main.risk_engine.decision_policy.policy_path = path

        response = await api_client.post("/policy/reload")

        assert response.status_code == 200
        assert response.json()["version"] == "9.0.0"
        assert (await api_client.get("/policy/version")).json()["version"] == "9.0.0"

    @pytest.mark.asyncio
    async def test_invalid_reload_keeps_policy(self, api_client: AsyncClient, tmp_path):
        before = (await api_client.get("/policy/version")).json()
        path = tmp_path / "risk_policy.yaml"
        self._write_policy(path, "9.9.9", challenge_threshold=0.9, block_threshold=0.1)
        api_main.risk_engine.decision_policy.policy_path = path

        response = await api_client.post("/policy/reload")

        assert response.status_code == 400
        assert (await api_client.get("/policy/version")).json() == before

    @pytest.mark.asyncio
    async def test_reload_requires_admin_token(self, api_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "admin_token", "admin-secret")

        response = await api_client.post("/policy/reload", headers={"X-API-Key": "wrong"})

        assert response.status_code == 401


class TestMetricsEndpoints:

    @pytest.mark.asyncio
    async def test_prometheus_metrics(self, api_client: AsyncClient):
        await api_client.post("/risk/assess", json=login_payload())

        response = await api_client.get("/metrics")

        assert response.status_code == 200
        assert "riskgate_decisions_total" in response.text

    @pytest.mark.asyncio
    async def test_summary(self, api_client: AsyncClient):
        await api_client.post("/risk/assess", json=login_payload())

        response = await api_client.get("/metrics/summary", params={"hours": 1})

        assert response.status_code == 200
        assert response.json()["total"] >= 1
