"""Configuration management for the crashfeishu event listener."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from crashfeishu.errors import ConfigError

WEBHOOK_ENV_VAR = "CRASHFEISHU_WEBHOOK"


@dataclass
class Config:
    """Listener configuration."""

    programs: list[str] = field(default_factory=list)  # Empty = monitor all
    webhook: str | None = None
    log_level: str = "INFO"
    log_file: str | None = None
    notify_timeout: float | None = None  # seconds; None waits indefinitely


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "crashfeishu" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def _parse_programs(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ConfigError(
            f"programs must be a string or a list of strings, got {value!r}"
        )
    return list(value)


def _parse_log_level(value: Any) -> str:
    if value is None:
        return Config.log_level
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"log_level must be a level name, got {value!r}")
    return value


def _optional_str(name: str, value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    return value


def _parse_timeout(value: Any) -> float | None:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"notify_timeout must be a number, got {value!r}") from e
    if timeout <= 0:
        raise ConfigError(f"notify_timeout must be positive, got {value!r}")
    return timeout


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.

    Raises:
        ConfigError: If a value in the file is unusable.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    return Config(
        programs=_parse_programs(data.get("programs")),
        webhook=_optional_str("webhook", data.get("webhook")),
        log_level=_parse_log_level(data.get("log_level")),
        log_file=_optional_str("log_file", data.get("log_file")),
        notify_timeout=_parse_timeout(data.get("notify_timeout")),
    )


def resolve_webhook(
    arg_webhook: str | None,
    config: Config | None = None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Pick the webhook URL to push alerts to.

    Precedence: command line argument, then the CRASHFEISHU_WEBHOOK
    environment variable (ignored when empty), then the config file.

    Args:
        arg_webhook: Value of the --webhook option.
        config: Loaded configuration.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Webhook URL, or None if none is configured.
    """
    if arg_webhook:
        return arg_webhook

    env = os.environ if environ is None else environ
    env_webhook = env.get(WEBHOOK_ENV_VAR)
    if env_webhook:
        return env_webhook

    if config is not None and config.webhook:
        return config.webhook
    return None
