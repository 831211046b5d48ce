"""Settings — reads .env + optional settings.toml + environment into AppConfig.

Precedence (highest first):
  1. ``AGENT_CONTEXT_*`` environment variables (``.env`` files are loaded
     into the environment first: local cwd, then the config directory).
  2. Keys in ``<config_dir>/settings.toml``.
  3. Built-in defaults.

Key entities:
  - AppConfig: frozen dataclass with all resolved settings.
  - load_settings(): build an AppConfig for the current process.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .utils import DEFAULT_BASE_NAME, agent_context_dir

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "agent-context.log"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# settings.toml key -> environment variable
_ENV_KEYS = {
    "base_name": "AGENT_CONTEXT_BASE_NAME",
    "hidden_prefix": "AGENT_CONTEXT_HIDDEN_PREFIX",
    "exit_delay": "AGENT_CONTEXT_EXIT_DELAY",
    "start_dir": "AGENT_CONTEXT_START_DIR",
    "log_level": "AGENT_CONTEXT_LOG_LEVEL",
}


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration for one run."""

    # Auto mode creates ~/<base_name>/session-<timestamp>
    base_name: str = DEFAULT_BASE_NAME

    # Directory names starting with this are hidden in the browser
    hidden_prefix: str = "."

    # Seconds the summary stays on screen before the program exits
    exit_delay: float = 3.0

    # Where both browsers start; None means the current working directory
    start_dir: Path | None = None

    log_level: str = "WARNING"

    config_dir: Path = field(default_factory=agent_context_dir)

    @property
    def log_file(self) -> Path:
        return self.config_dir / LOG_FILE_NAME

    def resolved_start_dir(self) -> Path:
        return self.start_dir if self.start_dir is not None else Path.cwd()


def load_settings(config_dir: Path | None = None) -> AppConfig:
    """Read .env + settings.toml + environment and return an AppConfig.

    Args:
        config_dir: Override for the config directory.
                    Defaults to ``agent_context_dir()``.

    Raises:
        ValueError: A setting has an invalid value or settings.toml is malformed.
    """
    if config_dir is None:
        config_dir = agent_context_dir()

    local_env = Path(".env")
    global_env = config_dir / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
    if global_env.is_file():
        load_dotenv(global_env)

    raw: dict = {}
    toml_path = config_dir / "settings.toml"
    if toml_path.is_file():
        try:
            with open(toml_path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid settings file {toml_path}: {e}") from e
        logger.debug("Loaded settings from %s", toml_path)

    def _get(key: str, default):
        """Environment > settings.toml > default."""
        env_value = os.getenv(_ENV_KEYS[key], "")
        if env_value:
            return env_value
        return raw.get(key, default)

    base_name = str(_get("base_name", DEFAULT_BASE_NAME)).strip()
    if not base_name or "/" in base_name or base_name in (".", ".."):
        raise ValueError(f"base_name must be a plain directory name, got {base_name!r}")

    hidden_prefix = str(_get("hidden_prefix", "."))
    if not hidden_prefix:
        raise ValueError("hidden_prefix must not be empty")

    raw_delay = _get("exit_delay", 3.0)
    try:
        exit_delay = float(raw_delay)
    except (TypeError, ValueError):
        raise ValueError(f"exit_delay must be a number, got {raw_delay!r}") from None
    if exit_delay < 0:
        raise ValueError(f"exit_delay must not be negative, got {exit_delay}")

    raw_start = _get("start_dir", "")
    start_dir = Path(os.path.abspath(os.path.expanduser(str(raw_start)))) if raw_start else None

    log_level = str(_get("log_level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(
            f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}"
        )

    return AppConfig(
        base_name=base_name,
        hidden_prefix=hidden_prefix,
        exit_delay=exit_delay,
        start_dir=start_dir,
        log_level=log_level,
        config_dir=config_dir,
    )
