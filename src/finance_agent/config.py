"""Configuration management for the finance agent."""

import json
import logging
import os
from pathlib import Path
from typing import Any

import keyring

logger = logging.getLogger(__name__)

APP_NAME = "finance-agent"
CONFIG_DIR_ENV = "FINANCE_AGENT_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path.home() / ".finance-agent"

KEYRING_SERVICE = "finance-agent"

# Supported AI providers
AI_PROVIDER_GEMINI = "gemini"
AI_PROVIDER_ANTHROPIC = "anthropic"

API_KEY_ENV_VARS = {
    AI_PROVIDER_GEMINI: "GEMINI_API_KEY",
    AI_PROVIDER_ANTHROPIC: "ANTHROPIC_API_KEY",
}

KEYRING_API_KEYS = {
    AI_PROVIDER_GEMINI: "gemini-api-key",
    AI_PROVIDER_ANTHROPIC: "anthropic-api-key",
}


def default_config_dir() -> Path:
    """Config directory, honouring FINANCE_AGENT_CONFIG_DIR."""
    override = os.environ.get(CONFIG_DIR_ENV)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_DIR


class Config:
    """Manages application configuration."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or default_config_dir()
        self.config_file = self.config_dir / "config.json"
        self.data_dir = self.config_dir / "data"
        self._config: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from file, filling in missing defaults."""
        self._config = self._default_config()
        if self.config_file.exists():
            with open(self.config_file) as f:
                self._config.update(json.load(f))

    def _save(self) -> None:
        """Save configuration to file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self._config, f, indent=2)

    def _default_config(self) -> dict[str, Any]:
        """Return default configuration."""
        return {
            "ai_provider": AI_PROVIDER_GEMINI,  # "gemini" or "anthropic"
            "model": "gemini-1.5-flash-latest",
            "anthropic_model": "claude-sonnet-4-5",
            "request_timeout": 30.0,
            "temperature": 0.0,
            "max_output_tokens": 2048,
            "max_history": 30,
            "max_topics": 10,
            "session_ttl_seconds": 3600,
            "max_sessions": 1000,
            "scenario_mode": "basic",
            "save_history": True,
            "user_id": None,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._config[key] = value
        self._save()

    def get_api_key(self, provider: str | None = None) -> str | None:
        """Get a provider's API key from environment or keyring."""
        provider = provider or self.ai_provider
        # Check environment variable first
        env_key = os.environ.get(API_KEY_ENV_VARS[provider])
        if env_key:
            return env_key
        # Fall back to keyring
        return keyring.get_password(KEYRING_SERVICE, KEYRING_API_KEYS[provider])

    def set_api_key(self, api_key: str, provider: str | None = None) -> None:
        """Store a provider's API key in the system keyring."""
        provider = provider or self.ai_provider
        keyring.set_password(KEYRING_SERVICE, KEYRING_API_KEYS[provider], api_key)

    def clear_api_key(self, provider: str | None = None) -> None:
        """Remove a provider's API key from the keyring."""
        provider = provider or self.ai_provider
        try:
            keyring.delete_password(KEYRING_SERVICE, KEYRING_API_KEYS[provider])
        except keyring.errors.PasswordDeleteError:
            logger.debug(f"No stored API key for {provider}")

    @property
    def ai_provider(self) -> str:
        """Get the configured AI provider."""
        return self._config.get("ai_provider", AI_PROVIDER_GEMINI)

    @ai_provider.setter
    def ai_provider(self, provider: str) -> None:
        """Set the AI provider."""
        if provider not in (AI_PROVIDER_GEMINI, AI_PROVIDER_ANTHROPIC):
            raise ValueError(f"Invalid AI provider: {provider}")
        self.set("ai_provider", provider)

    def model_for(self, provider: str | None = None) -> str:
        """Model name for a provider, defaulting to the configured one."""
        if (provider or self.ai_provider) == AI_PROVIDER_ANTHROPIC:
            return self._config.get("anthropic_model", "claude-sonnet-4-5")
        return self._config.get("model", "gemini-1.5-flash-latest")

    @property
    def request_timeout(self) -> float:
        """Seconds to wait for the remote model."""
        return float(self._config.get("request_timeout", 30.0))

    @property
    def temperature(self) -> float:
        return float(self._config.get("temperature", 0.0))

    @property
    def max_output_tokens(self) -> int:
        return int(self._config.get("max_output_tokens", 2048))

    @property
    def max_history(self) -> int:
        return int(self._config.get("max_history", 30))

    @property
    def max_topics(self) -> int:
        return int(self._config.get("max_topics", 10))

    @property
    def session_ttl_seconds(self) -> float:
        return float(self._config.get("session_ttl_seconds", 3600))

    @property
    def max_sessions(self) -> int:
        return int(self._config.get("max_sessions", 1000))

    @property
    def scenario_mode(self) -> str:
        """Level of detail in the financial snapshot ('basic' or 'advanced')."""
        return self._config.get("scenario_mode", "basic")

    @scenario_mode.setter
    def scenario_mode(self, mode: str) -> None:
        if mode not in ("basic", "advanced"):
            raise ValueError(f"Invalid scenario mode: {mode}")
        self.set("scenario_mode", mode)

    @property
    def save_history(self) -> bool:
        """Whether chat exchanges are written to the history table."""
        return bool(self._config.get("save_history", True))

    @property
    def user_id(self) -> str | None:
        """Owner of saved history and profile rows."""
        return self._config.get("user_id")

    @user_id.setter
    def user_id(self, user_id: str) -> None:
        self.set("user_id", user_id)

    @property
    def db_path(self) -> Path:
        """Get the database file path."""
        return self.data_dir / "finance_data.db"

    def to_dict(self) -> dict[str, Any]:
        """Return configuration as a dictionary (excluding secrets)."""
        return {k: v for k, v in self._config.items()}


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
