import pytest
from pydantic import ValidationError

from core.config import DEFAULT_API_VERSION, AppSettings, get_user_config_dir


def test_defaults():
    settings = AppSettings(_env_file=None)

    assert settings.api_version == DEFAULT_API_VERSION == "38.0"
    assert settings.http_timeout_seconds > 0
    assert settings.login_url == "https://login.salesforce.com"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("FORCEPIPE_API_VERSION", "59.0")
    monkeypatch.setenv("FORCEPIPE_INSTANCE_URL", "https://na9.example.com")

    settings = AppSettings(_env_file=None)

    assert settings.api_version == "59.0"
    assert settings.instance_url == "https://na9.example.com"


@pytest.mark.parametrize("field,value", [("api_version", "v38"), ("http_timeout_seconds", 0)])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        AppSettings(_env_file=None, **{field: value})


def test_user_config_dir_honours_xdg(monkeypatch, tmp_path):
    monkeypatch.setattr("core.config.sys.platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert get_user_config_dir() == tmp_path / "forcepipe"
