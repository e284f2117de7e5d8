import pytest

from config.registry import INFERENCE_KEY, bind_model, get_model, is_bound, unbind_model
from config.settings import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.STAGE_CATALOG_PATH.endswith(".yaml")
    assert settings.NOTIFICATIONS_ENABLED is True


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("APP_URL", "https://jobs.example")
    monkeypatch.setenv("NOTIFICATIONS_ENABLED", "false")
    settings = Settings(_env_file=None)
    assert settings.APP_URL == "https://jobs.example"
    assert settings.NOTIFICATIONS_ENABLED is False


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(INFERENCE_KEY, marker)
    assert is_bound(INFERENCE_KEY)
    assert get_model(INFERENCE_KEY) is marker
    unbind_model(INFERENCE_KEY)
    with pytest.raises(KeyError):
        get_model(INFERENCE_KEY)
