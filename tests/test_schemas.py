"""
Schema Tests

Tests for Pydantic model validation.
"""

import pytest
from pydantic import ValidationError

from riskgate.schemas import (
    AttemptContext,
    AttemptOutcomeRequest,
    AttemptRecord,
    AuthDecision,
    EvidenceCodes,
    FinalOutcome,
    GeoLocation,
    IdentityBaseline,
    RiskAssessment,
    Signal,
    TypingSample,
)


class TestAttemptContext:
    """Tests for AttemptContext schema."""

    def test_minimal_context(self):
        context = AttemptContext(identity_key="alice@example.com", client_ip="203.0.113.10")

        assert context.missing_required_fields() == []
        assert not context.has_phone
        assert not context.has_device
        assert context.timed_keystrokes == 0

    def test_missing_fields_reported_not_raised(self):
        """Test that required fields are checked by the engine, not the model."""
        context = AttemptContext(phone_number="9876543210")

        assert context.missing_required_fields() == ["identityKey", "clientIp"]

    def test_blank_strings_count_as_missing(self):
        context = AttemptContext(identity_key="   ", client_ip="203.0.113.10", phone_number="")

        assert context.missing_required_fields() == ["identityKey"]
        assert context.phone_number is None

    def test_camel_case_input(self):
        context = AttemptContext.model_validate({
            "identityKey": "alice@example.com",
            "clientIp": "203.0.113.10",
            "deviceFingerprint": "fp-1",
            "typingSamples": [{"key": "a", "pressedAtMs": 0, "releasedAtMs": 80}],
        })

        assert context.identity_key == "alice@example.com"
        assert context.device_fingerprint == "fp-1"
        assert context.typing_samples[0].dwell_ms == 80

    def test_invalid_device_class(self):
        with pytest.raises(ValidationError):
            AttemptContext(identity_key="a", client_ip="b", device_class="smartwatch")

    def test_typing_sample_dwell(self):
        sample = TypingSample(key="a", pressed_at_ms=100, released_at_ms=185)

        assert sample.dwell_ms == 85
        assert not sample.is_correction
        assert TypingSample(key="Backspace", pressed_at_ms=0).is_correction
        assert TypingSample(pressed_at_ms=0).dwell_ms is None

    def test_negative_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            TypingSample(key="a", pressed_at_ms=-1)


class TestSignal:
    """Tests for Signal schema."""

    @pytest.mark.parametrize("field,value", [
        ("score", 1.2),
        ("score", -0.1),
        ("confidence", 1.01),
    ])
    def test_range_validation(self, field, value):
        data = {"name": "geo_ip", "score": 0.5, "confidence": 0.5, field: value}
        with pytest.raises(ValidationError):
            Signal(**data)

    def test_immutable(self):
        signal = Signal(name="geo_ip", score=0.5, confidence=1.0)
        with pytest.raises(ValidationError):
            signal.score = 0.9

    def test_force_block_tags(self):
        signal = Signal(
            name="geo_ip",
            score=1.0,
            confidence=1.0,
            evidence=(EvidenceCodes.VPN, EvidenceCodes.TOR_EXIT_NODE),
        )

        assert signal.force_block_tags == ["force_block:tor_exit_node"]

    def test_with_latency(self):
        signal = Signal(name="device", score=0.0, confidence=1.0)

        stamped = signal.with_latency(12.34567)

        assert stamped.latency_ms == 12.346
        assert signal.latency_ms == 0.0


class TestRiskAssessment:
    """Tests for RiskAssessment schema."""

    def test_attempt_ids_are_unique(self):
        first = RiskAssessment(identity_key="a", composite_score=0.1, decision=AuthDecision.ALLOW)
        second = RiskAssessment(identity_key="a", composite_score=0.1, decision=AuthDecision.ALLOW)

        assert first.attempt_id.startswith("att_")
        assert first.attempt_id != second.attempt_id

    def test_degraded_providers(self):
        assessment = RiskAssessment(
            identity_key="a",
            composite_score=0.5,
            decision=AuthDecision.CHALLENGE_OTP,
            signals={
                "sim_swap": Signal(name="sim_swap", score=0.5, confidence=0.0, degraded=True),
                "geo_ip": Signal(name="geo_ip", score=0.5, confidence=0.0, degraded=True),
                "device": Signal(name="device", score=0.0, confidence=1.0),
            },
        )

        assert assessment.degraded_providers == ["geo_ip", "sim_swap"]

    def test_decision_severity(self):
        assert AuthDecision.ALLOW.severity < AuthDecision.CHALLENGE_OTP.severity < AuthDecision.BLOCK.severity

    def test_json_round_trip(self):
        assessment = RiskAssessment(
            identity_key="a",
            composite_score=0.42,
            decision=AuthDecision.CHALLENGE_OTP,
            signals={"geo_ip": Signal(name="geo_ip", score=0.3, confidence=0.5, evidence=("vpn",))},
        )

        assert RiskAssessment.model_validate_json(assessment.model_dump_json()) == assessment

    def test_wire_names(self):
        assessment = RiskAssessment(identity_key="a", composite_score=0.42, decision=AuthDecision.ALLOW)

        wire = assessment.model_dump(mode="json", by_alias=True)

        assert {"attemptId", "identityKey", "compositeScore", "overrideReason", "computedAt"} <= set(wire)
        assert RiskAssessment.model_validate(wire) == assessment


class TestLedgerSchemas:
    """Tests for baseline and attempt record schemas."""

    def test_initial_outcome(self):
        assert FinalOutcome.initial_for(AuthDecision.ALLOW) == FinalOutcome.ALLOWED
        assert FinalOutcome.initial_for(AuthDecision.BLOCK) == FinalOutcome.BLOCKED
        assert FinalOutcome.initial_for(AuthDecision.CHALLENGE_OTP) == FinalOutcome.OTP_PENDING

    def test_baseline_serializes_sets_sorted(self):
        baseline = IdentityBaseline(
            identity_key="a",
            trusted_devices=frozenset({"fp-b", "fp-a"}),
            last_known_location=GeoLocation(latitude=19.0, longitude=72.8),
        )

        dumped = baseline.model_dump(mode="json")

        assert dumped["trusted_devices"] == ["fp-a", "fp-b"]
        assert IdentityBaseline.model_validate_json(baseline.model_dump_json()) == baseline

    def test_invalid_coordinates(self):
        with pytest.raises(ValidationError):
            GeoLocation(latitude=95.0, longitude=0.0)

    def test_record_with_outcome_keeps_assessment(self, now):
        assessment = RiskAssessment(identity_key="a", composite_score=0.5, decision=AuthDecision.CHALLENGE_OTP)
        record = AttemptRecord.from_assessment(assessment, now)

        updated = record.with_outcome(FinalOutcome.OTP_PASSED, now)

        assert updated.assessment is record.assessment
        assert updated.outcome_recorded_at == now
        assert record.outcome_recorded_at is None

    @pytest.mark.parametrize("outcome", ["OTP_PASSED", "OTP_FAILED", "OTP_EXPIRED"])
    def test_outcome_request_accepts_resolutions(self, outcome):
        request = AttemptOutcomeRequest(attempt_id="att_1", final_outcome=outcome)
        assert request.final_outcome.is_otp_resolution

    @pytest.mark.parametrize("outcome", ["ALLOWED", "BLOCKED", "OTP_PENDING", "MAYBE"])
    def test_outcome_request_rejects_others(self, outcome):
        with pytest.raises(ValidationError):
            AttemptOutcomeRequest(attempt_id="att_1", final_outcome=outcome)
