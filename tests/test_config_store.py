"""Tests for the configuration store."""

import json
import pytest
from pathlib import Path

from x2rest.core.models import ClientConfig, ConfigError
from x2rest.core.config_store import (
    get_base_dir,
    config_path,
    save_client_config,
    load_client_config,
)


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Set up a temporary home directory for config storage."""
    monkeypatch.setenv("X2REST_HOME", str(tmp_path))
    monkeypatch.delenv("X2REST_API_KEY", raising=False)
    return tmp_path


@pytest.fixture
def sample_config():
    """Create a sample connection config."""
    return ClientConfig(
        base_url="https://crm.test.com/index.php/api2",
        api_user="admin",
        api_key="secret",
    )


def test_get_base_dir_with_env_var(temp_home):
    """Test get_base_dir uses X2REST_HOME environment variable."""
    base_dir = get_base_dir()
    assert base_dir == temp_home
    assert base_dir.exists()


def test_get_base_dir_creates_directory(temp_home):
    """Test get_base_dir creates the directory if it doesn't exist."""
    temp_home.rmdir()
    assert not temp_home.exists()

    base_dir = get_base_dir()
    assert base_dir.exists()
    assert base_dir.is_dir()


def test_get_base_dir_default(tmp_path, monkeypatch):
    """Test get_base_dir falls back to ~/.x2rest."""
    monkeypatch.delenv("X2REST_HOME", raising=False)
    monkeypatch.setattr(Path, "home", lambda: tmp_path)

    assert get_base_dir() == tmp_path / ".x2rest"


def test_config_path(temp_home):
    """Test config_path generates correct paths."""
    assert config_path() == temp_home / "default_config.json"
    assert config_path("staging") == temp_home / "staging_config.json"


def test_save_and_load_config(temp_home, sample_config):
    """Test saving and loading a config."""
    path = save_client_config(sample_config)
    assert path.exists()

    loaded = load_client_config()
    assert loaded == sample_config


def test_saved_config_is_json(temp_home, sample_config):
    """Test the saved file is readable JSON."""
    path = save_client_config(sample_config, "staging")

    with open(path) as f:
        data = json.load(f)

    assert data["base_url"] == sample_config.base_url
    assert data["purify"] is True


def test_load_config_missing(temp_home):
    """Test loading a missing profile raises ConfigError."""
    with pytest.raises(ConfigError) as exc_info:
        load_client_config("nope")

    assert "not found" in str(exc_info.value)


def test_load_config_invalid_json(temp_home):
    """Test loading invalid JSON raises ConfigError."""
    (temp_home / "default_config.json").write_text("{ invalid json }")

    with pytest.raises(ConfigError) as exc_info:
        load_client_config()

    assert "Invalid JSON" in str(exc_info.value)


def test_load_config_missing_setting(temp_home):
    """Test a config without required settings raises ConfigError."""
    (temp_home / "default_config.json").write_text(json.dumps({"base_url": "https://crm.test.com"}))

    with pytest.raises(ConfigError):
        load_client_config()


def test_env_api_key_overrides(temp_home, sample_config, monkeypatch):
    """Test X2REST_API_KEY takes precedence over the stored key."""
    save_client_config(sample_config)
    monkeypatch.setenv("X2REST_API_KEY", "from-env")

    loaded = load_client_config()

    assert loaded.api_key == "from-env"
    assert loaded.api_user == "admin"
