"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

import finance_agent.config as config_module
import finance_agent.storage.database as database_module
from helpers import FakeModelClient


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_config(temp_dir, monkeypatch):
    """Point configuration at a temp directory and keep the real keyring out."""
    config_dir = temp_dir / ".finance-agent"
    monkeypatch.setenv("FINANCE_AGENT_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.setattr(config_module, "_config", None)
    monkeypatch.setattr(database_module, "_db", None)

    with patch("finance_agent.config.keyring") as mock_keyring:
        mock_keyring.get_password.return_value = None
        yield config_dir


@pytest.fixture
def mock_config(isolated_config):
    """The process-wide Config instance, backed by the temp directory."""
    return config_module.get_config()


@pytest.fixture
def fake_model():
    return FakeModelClient()
