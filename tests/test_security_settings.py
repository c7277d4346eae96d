import pytest

from riskgate.config.settings import Settings


SECURITY_ENV = [
    "API_TOKEN",
    "ADMIN_TOKEN",
    "METRICS_TOKEN",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "IPINFO_TOKEN",
]


def _clear_env(monkeypatch) -> None:
    for key in SECURITY_ENV + ["MOCK_MODE"]:
        monkeypatch.delenv(key, raising=False)


def _set_required_env(monkeypatch) -> None:
    monkeypatch.setenv("API_TOKEN", "test-api")
    monkeypatch.setenv("ADMIN_TOKEN", "test-admin")
    monkeypatch.setenv("METRICS_TOKEN", "test-metrics")


def test_production_requires_security_settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    _clear_env(monkeypatch)

    with pytest.raises(ValueError) as excinfo:
        Settings(_env_file=None)

    message = str(excinfo.value)
    assert "API_TOKEN" in message
    assert "ADMIN_TOKEN" in message
    assert "METRICS_TOKEN" in message
    # Mock lookups need no provider credentials
    assert "TWILIO" not in message


def test_production_allows_with_required_settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    _clear_env(monkeypatch)
    _set_required_env(monkeypatch)

    settings = Settings(_env_file=None)
    assert settings.app_env == "production"
    assert settings.mock_mode is True


def test_production_real_lookups_require_credentials(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    _clear_env(monkeypatch)
    _set_required_env(monkeypatch)
    monkeypatch.setenv("MOCK_MODE", "false")

    with pytest.raises(ValueError) as excinfo:
        Settings(_env_file=None)

    message = str(excinfo.value)
    assert "TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN" in message
    assert "IPINFO_TOKEN" in message


def test_production_real_lookups_with_credentials(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    _clear_env(monkeypatch)
    _set_required_env(monkeypatch)
    monkeypatch.setenv("MOCK_MODE", "false")
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "ACtest")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "secret")
    monkeypatch.setenv("IPINFO_TOKEN", "ipinfo-test")

    settings = Settings(_env_file=None)
    assert settings.mock_mode is False


def test_development_needs_no_tokens(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    _clear_env(monkeypatch)

    settings = Settings(_env_file=None)
    assert settings.api_token is None
    assert settings.cors_allow_origins_list == ["http://localhost:5173", "http://localhost:8080"]
