""".env support for API keys and config overrides."""

import os
from pathlib import Path

from finance_agent.config import default_config_dir


def get_env_path() -> Path:
    """The .env file kept next to config.json."""
    return default_config_dir() / ".env"


def _parse_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, sep, value = line.partition("=")
    if not sep or not key.strip():
        return None

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return key.strip(), value


def read_env(env_path: Path | None = None) -> dict[str, str]:
    """Parse a .env file into a dict without touching os.environ."""
    path = env_path or get_env_path()
    if not path.exists():
        return {}

    pairs = (_parse_line(line) for line in path.read_text().splitlines())
    return dict(pair for pair in pairs if pair is not None)


def load_env(env_path: Path | None = None) -> list[str]:
    """Load variables from a .env file into the environment.

    Variables already set in the real environment win.

    Returns:
        Names of the variables that were set
    """
    loaded = []
    for key, value in read_env(env_path).items():
        if key not in os.environ:
            os.environ[key] = value
            loaded.append(key)
    return loaded


def write_env_key(env_path: Path, key: str, value: str) -> None:
    """Set one key in a .env file, keeping other lines and comments."""
    lines = env_path.read_text().splitlines() if env_path.exists() else []
    entry = f'{key}="{value}"'

    for index, line in enumerate(lines):
        parsed = _parse_line(line)
        if parsed and parsed[0] == key:
            lines[index] = entry
            break
    else:
        lines.append(entry)

    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.write_text("\n".join(lines) + "\n")
