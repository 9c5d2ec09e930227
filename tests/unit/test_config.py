"""
Tests de Settings: defaults, validacion de credenciales y lectura de entorno.
"""
import pytest

from roadmap_sync.core.config import REQUIRED_VARIABLES, Settings
from roadmap_sync.shared.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in REQUIRED_VARIABLES + ("SYNC_FIELD_PROFILE", "NOTION_REQUEST_DELAY_S"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Settings(_env_file=None)
    assert config.NOTION_VERSION == "2022-06-28"
    assert config.PRODUCTBOARD_API_VERSION == "1"
    assert config.NOTION_REQUEST_DELAY_S == 0.35
    assert config.NOTION_PAGE_SIZE == 100
    assert config.SYNC_FIELD_PROFILE == "incremental"
    assert config.SYNC_CLEAR_EMPTY_RELEASE_RELATIONS is False


def test_missing_credentials_lists_all():
    config = Settings(_env_file=None)
    assert config.missing_credentials == list(REQUIRED_VARIABLES)
    with pytest.raises(ConfigurationError) as exc:
        config.require_credentials()
    assert exc.value.missing == list(REQUIRED_VARIABLES)
    assert exc.value.error_code == "INVALID_CONFIGURATION"
    assert "NOTION_API_KEY" in exc.value.message


def test_blank_values_count_as_missing():
    config = Settings(
        _env_file=None,
        PRODUCTBOARD_API_TOKEN="pb",
        NOTION_API_KEY="   ",
        NOTION_RELEASES_DB_ID="r",
        NOTION_FEATURES_DB_ID="f",
    )
    assert config.missing_credentials == ["NOTION_API_KEY"]


def test_complete_credentials_pass():
    config = Settings(
        _env_file=None,
        PRODUCTBOARD_API_TOKEN="pb",
        NOTION_API_KEY="nk",
        NOTION_RELEASES_DB_ID="r",
        NOTION_FEATURES_DB_ID="f",
    )
    config.require_credentials()


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("NOTION_API_KEY", "secret_x")
    monkeypatch.setenv("NOTION_REQUEST_DELAY_S", "0.5")
    monkeypatch.setenv("SYNC_FIELD_PROFILE", "extended")
    config = Settings(_env_file=None)
    assert config.NOTION_API_KEY == "secret_x"
    assert config.NOTION_REQUEST_DELAY_S == 0.5
    assert config.SYNC_FIELD_PROFILE == "extended"


def test_reads_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PRODUCTBOARD_API_TOKEN=from-file\nUNRELATED=1\n", encoding="utf-8")
    config = Settings(_env_file=env_file)
    assert config.PRODUCTBOARD_API_TOKEN == "from-file"
