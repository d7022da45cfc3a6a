"""
Flow Automator Configuration Management.

Handles loading, saving, and validating configuration from various sources:
- Default values
- Configuration file (TOML)
- Environment variables
- Command-line arguments (applied by the CLI on top of the loaded config)
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, List

# Try to import tomllib (Python 3.11+) or tomli as fallback
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

import tomli_w
import yaml

from flow_automator.exceptions import ConfigurationError


# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "flow-automator"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "flow-automator"

QUEUE_FILE = "queue.json"
CHARACTERS_FILE = "characters.json"

EXECUTOR_KINDS = ("dry-run", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ValidationError:
    """Validation error for configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class QueueConfig:
    """Pacing of the queue scheduler.

    Delays are drawn uniformly from [delay_min_ms, delay_max_ms] after each
    job; every cooldown_after jobs a cooldown_duration_ms rest replaces the
    delay.
    """

    delay_min_ms: int = 5000
    delay_max_ms: int = 10000
    cooldown_after: int = 5
    cooldown_duration_ms: int = 60000

    # Wait granularity and cooldown progress interval
    wait_slice_ms: int = 100
    cooldown_tick_ms: int = 10000

    max_history: int = 1000


@dataclass
class ExecutorConfig:
    """Configuration for the job executor."""

    kind: str = "dry-run"
    endpoint: str = "http://127.0.0.1:8765/jobs"
    timeout: float = 300.0
    dry_run_latency_ms: int = 0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class FlowConfig:
    """Main configuration container for Flow Automator."""

    # Paths
    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR

    # Sub-configurations
    queue: QueueConfig = field(default_factory=QueueConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def queue_file(self) -> Path:
        """Path of the persisted job queue."""
        return self.data_dir / QUEUE_FILE

    @property
    def characters_file(self) -> Path:
        """Path of the saved character library."""
        return self.data_dir / CHARACTERS_FILE


# Environment variables mapped to (section, key); section None is top level
_ENV_KEYS = {
    "DELAY_MIN_MS": ("queue", "delay_min_ms"),
    "DELAY_MAX_MS": ("queue", "delay_max_ms"),
    "COOLDOWN_AFTER": ("queue", "cooldown_after"),
    "COOLDOWN_DURATION_MS": ("queue", "cooldown_duration_ms"),
    "EXECUTOR": ("executor", "kind"),
    "EXECUTOR_ENDPOINT": ("executor", "endpoint"),
    "EXECUTOR_TIMEOUT": ("executor", "timeout"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "file"),
    "CONFIG_DIR": (None, "config_dir"),
    "DATA_DIR": (None, "data_dir"),
}


def get_config_path(env_prefix: str = "FLOW_") -> Path:
    """Resolve the config file path, honoring the CONFIG_DIR override."""
    env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
    if env_config_dir:
        return Path(env_config_dir) / DEFAULT_CONFIG_FILE
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "FLOW_"
) -> FlowConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/flow-automator/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the config file or an environment value
            cannot be parsed
    """
    config = FlowConfig()

    if config_path is None:
        config_path = get_config_path(env_prefix)

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _load_from_env(config, env_prefix)

    return config


def load_env_config(env_prefix: str = "FLOW_") -> FlowConfig:
    """Default configuration with environment overrides, ignoring any file."""
    return _load_from_env(FlowConfig(), env_prefix)


def _convert(current: Any, value: Any, name: str) -> Any:
    """Convert a raw value to the type of the field's current value."""
    try:
        if isinstance(current, bool):
            if isinstance(value, bool):
                return value
            return str(value).lower() in ("true", "1", "yes", "on")
        if isinstance(current, int):
            if isinstance(value, bool):
                raise ValueError("expected an integer")
            return int(value)
        if isinstance(current, float):
            return float(value)
        if isinstance(current, Path) or name in ("file", "config_dir", "data_dir"):
            return Path(value) if value not in (None, "") else None
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r} ({e})") from e
    return value


def _apply(config: FlowConfig, section: Optional[str], key: str, value: Any) -> None:
    target = config if section is None else getattr(config, section)
    current = getattr(target, key)
    setattr(target, key, _convert(current, value, key))


def _load_from_file(path: Path, config: FlowConfig) -> FlowConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load config from {path}: {e}",
            details={"path": str(path)},
        ) from e

    for section in ("queue", "executor", "logging"):
        if section in data:
            section_obj = getattr(config, section)
            for key, value in data[section].items():
                if hasattr(section_obj, key):
                    _apply(config, section, key, value)

    # Top-level settings
    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])
    if "data_dir" in data:
        config.data_dir = Path(data["data_dir"])

    return config


def _load_from_env(config: FlowConfig, prefix: str) -> FlowConfig:
    """Load configuration from environment variables."""
    for env_key, (section, key) in _ENV_KEYS.items():
        if env_val := os.environ.get(f"{prefix}{env_key}"):
            _apply(config, section, key, env_val)

    config.logging.level = config.logging.level.upper()
    return config


def save_config(config: FlowConfig, path: Optional[Path] = None) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)
    """
    if path is None:
        path = config.config_dir / DEFAULT_CONFIG_FILE

    path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)
    # TOML has no null; drop unset optional values
    if data["logging"]["file"] is None:
        del data["logging"]["file"]

    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def ensure_directories(config: FlowConfig) -> None:
    """Ensure all required directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


def get_default_config() -> FlowConfig:
    """Get the default configuration."""
    return FlowConfig()


def set_config_value(section: str, key: str, value: Any, config_path: Optional[Path] = None) -> None:
    """
    Set a single configuration value and persist to file.

    Args:
        section: Configuration section (e.g., 'queue', 'executor', 'logging')
        key: Configuration key within the section
        value: Value to set (will be converted to appropriate type)
        config_path: Path to config file (default: resolved config path)

    Raises:
        ConfigurationError: If the section or key is unknown or the value
            cannot be converted
    """
    if config_path is None:
        config_path = get_config_path()

    config = load_config(config_path)

    section_obj = getattr(config, section, None)
    if section not in ("queue", "executor", "logging") or section_obj is None:
        raise ConfigurationError(f"Unknown configuration section: {section}")

    if not hasattr(section_obj, key):
        raise ConfigurationError(f"Unknown configuration key: {section}.{key}")

    _apply(config, section, key, value)

    save_config(config, config_path)


def _validate_url(url: str) -> bool:
    """Validate a URL format."""
    url_pattern = r"^https?://[^\s/$.?#].[^\s]*$"
    return bool(re.match(url_pattern, url))


def validate_config(config: Optional[FlowConfig] = None) -> List[ValidationError]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation errors (empty if valid)
    """
    if config is None:
        config = load_config()

    errors: List[ValidationError] = []
    queue = config.queue

    # Queue pacing
    if queue.delay_min_ms < 0:
        errors.append(ValidationError(
            field="queue.delay_min_ms",
            message=f"Delay cannot be negative: {queue.delay_min_ms}",
            severity="error"
        ))
    if queue.delay_max_ms < queue.delay_min_ms:
        errors.append(ValidationError(
            field="queue.delay_max_ms",
            message=f"Maximum delay {queue.delay_max_ms}ms is below minimum {queue.delay_min_ms}ms",
            severity="error"
        ))
    if queue.cooldown_after < 1:
        errors.append(ValidationError(
            field="queue.cooldown_after",
            message=f"Cooldown must trigger after at least 1 job: {queue.cooldown_after}",
            severity="error"
        ))
    if queue.cooldown_duration_ms < 0:
        errors.append(ValidationError(
            field="queue.cooldown_duration_ms",
            message=f"Cooldown duration cannot be negative: {queue.cooldown_duration_ms}",
            severity="error"
        ))
    if queue.wait_slice_ms < 1:
        errors.append(ValidationError(
            field="queue.wait_slice_ms",
            message=f"Wait slice must be at least 1ms: {queue.wait_slice_ms}",
            severity="error"
        ))
    if queue.delay_max_ms < 1000:
        errors.append(ValidationError(
            field="queue.delay_max_ms",
            message="Delays under one second make the automation easy to detect.",
            severity="warning"
        ))

    # Executor
    if config.executor.kind not in EXECUTOR_KINDS:
        errors.append(ValidationError(
            field="executor.kind",
            message=f"Unknown executor '{config.executor.kind}'. Choose from: {', '.join(EXECUTOR_KINDS)}",
            severity="error"
        ))
    if config.executor.kind == "http" and not _validate_url(config.executor.endpoint):
        errors.append(ValidationError(
            field="executor.endpoint",
            message=f"Invalid URL format: {config.executor.endpoint}",
            severity="error"
        ))
    if config.executor.timeout <= 0:
        errors.append(ValidationError(
            field="executor.timeout",
            message=f"Timeout must be positive: {config.executor.timeout}",
            severity="error"
        ))

    # Logging
    if config.logging.level.upper() not in LOG_LEVELS:
        errors.append(ValidationError(
            field="logging.level",
            message=f"Unknown log level: {config.logging.level}",
            severity="error"
        ))

    # Path validation
    if not config.config_dir.exists():
        errors.append(ValidationError(
            field="config_dir",
            message=f"Config directory does not exist: {config.config_dir}",
            severity="warning"
        ))

    if not config.data_dir.exists():
        errors.append(ValidationError(
            field="data_dir",
            message=f"Data directory does not exist: {config.data_dir}",
            severity="warning"
        ))

    try:
        if config.data_dir.exists():
            test_file = config.data_dir / ".write_test"
            test_file.touch()
            test_file.unlink()
    except (PermissionError, OSError):
        errors.append(ValidationError(
            field="data_dir",
            message=f"Data directory is not writable: {config.data_dir}",
            severity="error"
        ))

    return errors


def _config_to_dict(config: FlowConfig) -> dict[str, Any]:
    """
    Convert configuration to dictionary.

    Args:
        config: Configuration to convert

    Returns:
        Dictionary representation of config
    """
    return {
        "config_dir": str(config.config_dir),
        "data_dir": str(config.data_dir),
        "queue": {
            "delay_min_ms": config.queue.delay_min_ms,
            "delay_max_ms": config.queue.delay_max_ms,
            "cooldown_after": config.queue.cooldown_after,
            "cooldown_duration_ms": config.queue.cooldown_duration_ms,
            "wait_slice_ms": config.queue.wait_slice_ms,
            "cooldown_tick_ms": config.queue.cooldown_tick_ms,
            "max_history": config.queue.max_history,
        },
        "executor": {
            "kind": config.executor.kind,
            "endpoint": config.executor.endpoint,
            "timeout": config.executor.timeout,
            "dry_run_latency_ms": config.executor.dry_run_latency_ms,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
            "file": str(config.logging.file) if config.logging.file else None,
        },
    }


def export_config_yaml(config: FlowConfig) -> str:
    """
    Export configuration as YAML string.

    Args:
        config: Configuration to export

    Returns:
        YAML string representation of config
    """
    config_dict = _config_to_dict(config)
    return yaml.dump(config_dict, default_flow_style=False, sort_keys=False, allow_unicode=True)


def export_config_json(config: FlowConfig) -> str:
    """
    Export configuration as JSON string.

    Args:
        config: Configuration to export

    Returns:
        JSON string representation of config
    """
    config_dict = _config_to_dict(config)
    return json.dumps(config_dict, indent=2)
