import pytest
from pydantic import ValidationError

from docsource import config as config_module


@pytest.fixture(autouse=True)
def restore_settings_cache():
    """
    Ensure the settings cache is cleared between tests.
    """
    config_module.reload_settings()
    yield
    config_module.reload_settings()


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DOCSOURCE_ENVIRONMENT", raising=False)
    monkeypatch.delenv("DOCSOURCE_MAX_WORKERS", raising=False)

    settings = config_module.Settings(_env_file=None)

    assert settings.environment == "production"
    assert settings.is_dev is False
    assert settings.max_workers == 32
    assert settings.config_file == "docsource.toml"


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DOCSOURCE_ENVIRONMENT", "development")
    monkeypatch.setenv("DOCSOURCE_MAX_WORKERS", "8")
    monkeypatch.setenv("DOCSOURCE_LOG_LEVEL", "debug")

    settings = config_module.reload_settings()

    assert settings.is_dev is True
    assert settings.max_workers == 8
    assert settings.log_level == "DEBUG"


def test_rejects_zero_workers(monkeypatch) -> None:
    monkeypatch.setenv("DOCSOURCE_MAX_WORKERS", "0")

    with pytest.raises(ValidationError):
        config_module.reload_settings()
