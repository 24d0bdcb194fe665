import pytest

from digikey_client.config_loader import load_settings
from digikey_client.errors import ConfigurationError


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("DIGIKEY_CLIENT_ID", "env-id")
    monkeypatch.setenv("DIGIKEY_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("DIGIKEY_SANDBOX", "true")

    settings = load_settings(env_file=None)

    assert settings.client_id == "env-id"
    assert settings.api_base_url == "https://sandbox-api.digikey.com"
    assert settings.locale_headers() == {}


def test_env_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("DIGIKEY_CLIENT_ID", raising=False)
    monkeypatch.delenv("DIGIKEY_CLIENT_SECRET", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "DIGIKEY_CLIENT_ID=file-id\n"
        "DIGIKEY_CLIENT_SECRET=file-secret\n"
        "DIGIKEY_BASE_URL=https://proxy.example.test/\n"
    )

    settings = load_settings(env_file=str(env_file))

    assert settings.client_id == "file-id"
    assert settings.api_base_url == "https://proxy.example.test"


def test_missing_credentials_raise_configuration_error(monkeypatch):
    monkeypatch.delenv("DIGIKEY_CLIENT_ID", raising=False)
    monkeypatch.delenv("DIGIKEY_CLIENT_SECRET", raising=False)

    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(env_file=None)

    assert "DIGIKEY_CLIENT_ID" in str(excinfo.value)
