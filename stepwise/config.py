# File: stepwise/config.py

import os
import json
import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

# --- Default Paths and Constants ---

PROJECT_ROOT_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = PROJECT_ROOT_DIR / "config"
DEFAULT_CONFIG_FILE_NAME = "stepwise.json"
DEFAULT_DB_PATH = PROJECT_ROOT_DIR / "data" / "stepwise.sqlite"
DEFAULT_LOGS_DIR = PROJECT_ROOT_DIR / "logs"

ENV_MAX_RUN_DURATION = "ITERATION_MAX_RUN_DURATION"
ENV_CHECK_THROTTLE = "ITERATION_CHECK_THROTTLE"
ENV_DISABLE_AUTOCONFIGURE = "ITERATION_DISABLE_AUTOCONFIGURE"
ENV_RESUME_BACKOFF = "ITERATION_RESUME_BACKOFF"
ENV_DB_PATH = "ITERATION_DB_PATH"
ENV_QUEUE = "ITERATION_QUEUE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class IterationConfig:
    """Engine and worker settings."""
    max_run_duration: Optional[float] = 300.0  # seconds; None or 0 disables the budget
    interruption_check_throttle: float = 1.0  # seconds between shutdown/duration samples
    autoconfigure: bool = True  # install shutdown signal handlers when a worker starts
    resume_backoff: float = 0.0  # delay for resubmissions after an interruption
    poll_interval: float = 1.0  # worker sleep when the queue is empty
    queue_name: str = "default"
    db_path: str = str(DEFAULT_DB_PATH)

    def validate(self) -> None:
        for name in ("interruption_check_throttle", "resume_backoff", "poll_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
        if self.max_run_duration is not None and (
                isinstance(self.max_run_duration, bool) or not isinstance(self.max_run_duration, (int, float))):
            raise ConfigError(f"max_run_duration must be a number or null, got {self.max_run_duration!r}")
        if self.max_run_duration is not None and self.max_run_duration < 0:
            raise ConfigError(f"max_run_duration must be >= 0, got {self.max_run_duration}")
        if self.interruption_check_throttle < 0:
            raise ConfigError(f"interruption_check_throttle must be >= 0, got {self.interruption_check_throttle}")
        if self.resume_backoff < 0:
            raise ConfigError(f"resume_backoff must be >= 0, got {self.resume_backoff}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be > 0, got {self.poll_interval}")
        if not self.queue_name:
            raise ConfigError("queue_name must not be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _load_json_config_file(file_path: Path) -> Dict[str, Any]:
    if not file_path.exists():
        logger.warning(f"Config file not found at: {file_path}")
        return {}
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        msg = f"Error decoding JSON from config file {file_path}: {e}"
        logger.error(msg)
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Could not read config file {file_path}: {e}"
        logger.error(msg)
        raise ConfigError(msg) from e
    if not isinstance(config_data, dict):
        raise ConfigError(f"Config file {file_path} must contain a JSON object")
    logger.info(f"Loaded configuration from {file_path}")
    return config_data


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _settings_from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    if env.get(ENV_MAX_RUN_DURATION):
        settings["max_run_duration"] = _parse_float(ENV_MAX_RUN_DURATION, env[ENV_MAX_RUN_DURATION])
    if env.get(ENV_CHECK_THROTTLE):
        settings["interruption_check_throttle"] = _parse_float(ENV_CHECK_THROTTLE, env[ENV_CHECK_THROTTLE])
    if env.get(ENV_RESUME_BACKOFF):
        settings["resume_backoff"] = _parse_float(ENV_RESUME_BACKOFF, env[ENV_RESUME_BACKOFF])
    if env.get(ENV_DISABLE_AUTOCONFIGURE):
        settings["autoconfigure"] = env[ENV_DISABLE_AUTOCONFIGURE].strip().lower() not in _TRUTHY
    if env.get(ENV_DB_PATH):
        settings["db_path"] = env[ENV_DB_PATH]
    if env.get(ENV_QUEUE):
        settings["queue_name"] = env[ENV_QUEUE]
    return settings


def load_config(config_file: Optional[Path] = None,
                env: Optional[Mapping[str, str]] = None,
                overrides: Optional[Dict[str, Any]] = None,
                use_dotenv: bool = True) -> IterationConfig:
    """
    Build the effective configuration.
    Explicit overrides win over environment variables, which win over the
    JSON config file, which wins over the defaults.
    """
    if use_dotenv:
        dotenv.load_dotenv()
    env = os.environ if env is None else env

    known = {f.name for f in fields(IterationConfig)}
    settings: Dict[str, Any] = {}

    file_settings = _load_json_config_file(config_file or DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE_NAME)
    for key, value in file_settings.items():
        if key in known:
            settings[key] = value
        else:
            logger.warning(f"Ignoring unknown config key: {key}")

    settings.update(_settings_from_env(env))
    for key, value in (overrides or {}).items():
        if key in known and value is not None:
            settings[key] = value

    try:
        config = IterationConfig(**settings)
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    config.validate()
    logger.info(f"Configuration loaded: {config}")
    return config
