"""
Risk Policy Configuration Tests

Tests for policy validation and YAML loading.
"""

from pathlib import Path

import pytest

from riskgate.config import DEFAULT_POLICY, ProviderConfig, RiskPolicy, build_policy, load_policy
from riskgate.errors import InvalidConfiguration
from riskgate.schemas import ProviderNames


REPO_POLICY = Path(__file__).resolve().parent.parent / "config" / "risk_policy.yaml"


def policy_dict(**overrides) -> dict:
    data = {
        "version": "1.2.3",
        "providers": {
            "phone_carrier": {"weight": 0.5, "timeout_ms": 1500},
            "geo_ip": {"weight": 0.5, "timeout_ms": 1000},
        },
        "challenge_threshold": 0.4,
        "block_threshold": 0.8,
    }
    data.update(overrides)
    return data


class TestPolicyValidation:
    """Tests for configuration constraints."""

    def test_default_policy_is_valid(self):
        assert DEFAULT_POLICY.enabled_providers == sorted(ProviderNames.ALL)
        assert DEFAULT_POLICY.overall_deadline_seconds == 1.5
        assert sum(p.weight for p in DEFAULT_POLICY.providers.values()) == pytest.approx(1.0)

    def test_default_all_down_score_fails_closed(self):
        score = DEFAULT_POLICY.all_providers_down_default_score
        assert DEFAULT_POLICY.challenge_threshold <= score < DEFAULT_POLICY.block_threshold

    def test_valid_mapping(self):
        policy = build_policy(policy_dict())

        assert policy.version == "1.2.3"
        assert policy.provider("geo_ip").timeout_seconds == 1.0

    @pytest.mark.parametrize("challenge,block", [
        (0.8, 0.8),
        (0.9, 0.4),
    ])
    def test_threshold_order(self, challenge, block):
        with pytest.raises(InvalidConfiguration, match="challenge_threshold"):
            build_policy(policy_dict(challenge_threshold=challenge, block_threshold=block))

    def test_threshold_range(self):
        with pytest.raises(InvalidConfiguration):
            build_policy(policy_dict(block_threshold=1.5))

    def test_weights_must_sum_to_one(self):
        data = policy_dict()
        data["providers"]["geo_ip"]["weight"] = 0.3

        with pytest.raises(InvalidConfiguration, match="sum to 1"):
            build_policy(data)

    def test_misspelled_provider_rejected(self):
        """Test that a typo cannot silently switch a provider off."""
        data = policy_dict()
        data["providers"]["geoip"] = data["providers"].pop("geo_ip")

        with pytest.raises(InvalidConfiguration, match="Unknown provider.*geoip"):
            build_policy(data)

    def test_unknown_provider_rejected_even_when_disabled(self):
        data = policy_dict()
        data["providers"]["carrier_pigeon"] = {"weight": 0.3, "enabled": False}

        with pytest.raises(InvalidConfiguration, match="carrier_pigeon"):
            build_policy(data)

    def test_disabled_providers_excluded_from_weight_sum(self):
        data = policy_dict()
        data["providers"]["phone_carrier"]["weight"] = 1.0
        data["providers"]["geo_ip"]["enabled"] = False

        policy = build_policy(data)

        assert policy.enabled_providers == ["phone_carrier"]

    def test_no_enabled_provider(self):
        data = policy_dict()
        for provider in data["providers"].values():
            provider["enabled"] = False

        with pytest.raises(InvalidConfiguration, match="enabled"):
            build_policy(data)

    @pytest.mark.parametrize("score", [0.0, 1.0])
    def test_degraded_default_must_be_neutral(self, score):
        data = policy_dict()
        data["providers"]["geo_ip"]["degraded_default_score"] = score

        with pytest.raises(InvalidConfiguration):
            build_policy(data)

    def test_negative_weight(self):
        data = policy_dict()
        data["providers"]["geo_ip"]["weight"] = -0.5

        with pytest.raises(InvalidConfiguration):
            build_policy(data)

    def test_not_a_mapping(self):
        with pytest.raises(InvalidConfiguration):
            build_policy(["not", "a", "policy"])

    def test_unknown_provider_lookup(self):
        with pytest.raises(InvalidConfiguration):
            DEFAULT_POLICY.provider("carrier_pigeon")

    def test_hash_tracks_content(self):
        changed = RiskPolicy(
            providers={"geo_ip": ProviderConfig(weight=1.0)},
            challenge_threshold=0.3,
        )

        assert DEFAULT_POLICY.compute_hash() == DEFAULT_POLICY.model_copy().compute_hash()
        assert changed.compute_hash() != DEFAULT_POLICY.compute_hash()


class TestLoadPolicy:
    """Tests for YAML loading."""

    def test_repository_policy_loads(self):
        policy = load_policy(REPO_POLICY)

        assert set(policy.enabled_providers) == set(ProviderNames.ALL)
        assert policy.challenge_threshold < policy.block_threshold

    def test_missing_file_falls_back_to_default(self, tmp_path):
        assert load_policy(tmp_path / "absent.yaml") is DEFAULT_POLICY

    def test_none_path_is_default(self):
        assert load_policy(None) is DEFAULT_POLICY

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("providers: [unclosed\n")

        with pytest.raises(InvalidConfiguration, match="Cannot read"):
            load_policy(path)

    def test_misspelled_provider_in_file(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text(
            "providers:\n"
            "  phone_carrier: {weight: 0.5}\n"
            "  geoip: {weight: 0.5}\n"
        )

        with pytest.raises(InvalidConfiguration, match="geoip"):
            load_policy(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        with pytest.raises(InvalidConfiguration):
            load_policy(path)
