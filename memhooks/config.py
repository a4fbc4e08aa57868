"""Configuration system for memhooks.

Settings are loaded once per process by ``load_settings()`` and passed
explicitly to the components that need them (worker client, installer,
hook executors).  There is no module-level settings singleton: a hook
process reads its configuration exactly once, at startup.

Precedence (highest first):

1. ``MEMHOOKS_*`` environment variables
2. ``settings.json`` in the data directory (or ``$MEMHOOKS_SETTINGS_FILE``)
3. Field defaults
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import sys
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from memhooks.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "MEMHOOKS_"
SETTINGS_FILE_ENV = "MEMHOOKS_SETTINGS_FILE"
DEFAULT_WORKER_PORT = 37777


def _default_data_dir() -> Path:
    return Path.home() / ".memhooks"


def split_command(command: str) -> tuple[str, ...]:
    """Split a configured command line into argv form."""
    if not command.strip():
        return ()
    return tuple(shlex.split(command, posix=os.name != "nt"))


class Settings(BaseSettings):
    """memhooks configuration."""

    # Storage
    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Directory holding the project registry, logs and settings.json",
    )

    # Worker
    worker_host: str = Field(
        default="127.0.0.1",
        description="Host the local worker listens on",
    )
    worker_port: int = Field(
        default=DEFAULT_WORKER_PORT,
        ge=1,
        le=65535,
        description="Port the local worker listens on",
    )
    worker_command: str = Field(
        default="",
        description="Command line that starts the worker (empty = never spawn)",
    )
    health_timeout: float = Field(
        default=1.0,
        gt=0.0,
        description="Timeout in seconds for a single health check",
    )
    request_timeout: float = Field(
        default=5.0,
        gt=0.0,
        description="Default timeout in seconds for worker requests",
    )
    worker_start_retries: int = Field(
        default=10,
        ge=0,
        description="Liveness polls after spawning the worker before giving up",
    )
    worker_poll_interval: float = Field(
        default=0.5,
        ge=0.0,
        description="Seconds between liveness polls after spawning the worker",
    )

    # Hooks
    hook_timeout_margin: float = Field(
        default=2.0,
        ge=0.0,
        description="Seconds reserved below the host timeout for the degraded response",
    )
    context_format: str = Field(
        default="markdown",
        description="Format requested from GET /context",
    )
    context_rule_name: str = Field(
        default="memory-context.mdc",
        description="File name of the context snippet under .cursor/rules/",
    )
    python_path: str = Field(
        default="",
        description="Interpreter baked into installed hook scripts (default: current)",
    )
    mcp_server_command: str = Field(
        default="",
        description="Command line of the memory MCP server registered by configure-mcp",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit structured JSON log lines",
    )

    model_config = {
        "env_prefix": ENV_PREFIX,
    }

    @property
    def worker_url(self) -> str:
        """Base URL of the worker HTTP API."""
        return f"http://{self.worker_host}:{self.worker_port}"

    @property
    def registry_path(self) -> Path:
        return self.data_dir / "cursor-projects.json"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @property
    def worker_start_command(self) -> tuple[str, ...]:
        """The worker start command split into argv form."""
        return split_command(self.worker_command)

    @property
    def mcp_server_argv(self) -> tuple[str, ...]:
        return split_command(self.mcp_server_command)

    @property
    def hook_python(self) -> str:
        return self.python_path or sys.executable


def default_settings_file() -> Path:
    """Resolve the settings file location from the environment."""
    explicit = os.environ.get(SETTINGS_FILE_ENV, "")
    if explicit:
        return Path(explicit).expanduser()
    data_dir = os.environ.get(f"{ENV_PREFIX}DATA_DIR", "")
    base = Path(data_dir).expanduser() if data_dir else _default_data_dir()
    return base / "settings.json"


def _read_settings_file(path: Path) -> dict[str, Any]:
    """Read ``settings.json`` into field-name keyed values.

    Keys may be given either as field names (``worker_port``) or as the
    environment variable names (``MEMHOOKS_WORKER_PORT``).  A missing or
    malformed file yields an empty mapping.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        logger.warning(f"Could not read settings file {path}: {e}")
        return {}

    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring malformed settings file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {path}: expected a JSON object")
        return {}

    known = set(Settings.model_fields)
    values: dict[str, Any] = {}
    for key, value in data.items():
        name = str(key)
        if name.upper().startswith(ENV_PREFIX):
            name = name[len(ENV_PREFIX) :]
        name = name.lower()
        if name in known:
            values[name] = value
        else:
            logger.debug(f"Ignoring unknown settings key: {key}")
    return values


def load_settings(settings_file: Path | None = None) -> Settings:
    """Load settings once for this process.

    Args:
        settings_file: Explicit settings file. Defaults to
            ``default_settings_file()``.

    Returns:
        The merged Settings instance.

    Raises:
        ConfigurationError: If environment variables hold invalid values.
    """
    try:
        from_env = Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {ENV_PREFIX}* environment: {e}") from e

    path = settings_file if settings_file is not None else default_settings_file()
    file_values = _read_settings_file(path)
    if not file_values:
        return from_env

    env_values = from_env.model_dump(include=from_env.model_fields_set)
    merged = {**file_values, **env_values}
    try:
        return Settings(**merged)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid values in settings file {path}: {e}")
        return from_env
