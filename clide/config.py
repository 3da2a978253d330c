"""
Configuration loading and validation for the Clide dashboard.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from clide.retry import RetryStrategy


DEFAULT_CONFIG_PATH = Path("clide.yaml")

DEFAULTS: Dict[str, Any] = {
    "data_dir": "data",
    "log_pattern": "logs/{task_id}.log",
    "spec_pattern": "specs/{task_id}.md",
    "server": {
        "host": "127.0.0.1",
        "port": 5000,
        "poll_interval": 0.5,
    },
    "stream": {
        "max_retries": 5,
        "strategy": RetryStrategy.EXPONENTIAL_BACKOFF.value,
        "base_delay": 1.0,
        "max_delay": 30.0,
    },
}


def load_dashboard_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load and validate the dashboard configuration from a YAML file.

    When no path is given, ``clide.yaml`` in the working directory is used if
    it exists, otherwise the defaults are returned.

    Args:
        config_path: Path to the YAML configuration file (optional)

    Returns:
        Validated configuration dictionary

    Raises:
        ValueError: If configuration is invalid
        FileNotFoundError: If an explicitly given file doesn't exist
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return validate_dashboard_config({})
        config_path = DEFAULT_CONFIG_PATH

    if not isinstance(config_path, Path):
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML syntax: {e}")

    config = validate_dashboard_config(config or {})
    config["config_dir"] = str(config_path.resolve().parent)
    return config


def validate_dashboard_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize dashboard configuration structure.

    Args:
        config: Raw configuration dictionary

    Returns:
        Validated and normalized configuration
    """
    if not isinstance(config, dict):
        raise ValueError("Configuration must be a dictionary")

    server = config.get("server", {}) or {}
    stream = config.get("stream", {}) or {}
    if not isinstance(server, dict):
        raise ValueError("'server' must be a dictionary")
    if not isinstance(stream, dict):
        raise ValueError("'stream' must be a dictionary")

    validated = {
        "data_dir": str(config.get("data_dir", DEFAULTS["data_dir"])),
        "log_pattern": str(config.get("log_pattern", DEFAULTS["log_pattern"])),
        "spec_pattern": str(config.get("spec_pattern", DEFAULTS["spec_pattern"])),
        "config_dir": str(config.get("config_dir", ".")),
        "server": {
            "host": str(server.get("host", DEFAULTS["server"]["host"])),
            "port": _as_number(server, "port", DEFAULTS["server"]["port"], int),
            "poll_interval": _as_number(
                server, "poll_interval", DEFAULTS["server"]["poll_interval"], float
            ),
        },
        "stream": {
            "max_retries": _as_number(stream, "max_retries", DEFAULTS["stream"]["max_retries"], int),
            "strategy": str(stream.get("strategy", DEFAULTS["stream"]["strategy"])),
            "base_delay": _as_number(stream, "base_delay", DEFAULTS["stream"]["base_delay"], float),
            "max_delay": _as_number(stream, "max_delay", DEFAULTS["stream"]["max_delay"], float),
        },
    }

    for pattern_key in ("log_pattern", "spec_pattern"):
        if "{task_id}" not in validated[pattern_key]:
            raise ValueError(f"'{pattern_key}' must contain a '{{task_id}}' placeholder")

    valid_strategies = [s.value for s in RetryStrategy]
    if validated["stream"]["strategy"] not in valid_strategies:
        raise ValueError(
            f"'stream.strategy' must be one of: {', '.join(valid_strategies)}"
        )

    if validated["server"]["poll_interval"] <= 0:
        raise ValueError("'server.poll_interval' must be positive")

    if validated["stream"]["max_retries"] < 0:
        raise ValueError("'stream.max_retries' cannot be negative")

    return validated


def _as_number(section: Dict[str, Any], key: str, default: Any, cast: type) -> Any:
    """Coerce a numeric setting, naming the key on failure."""
    value = section.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f"'{key}' must be a number")
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
