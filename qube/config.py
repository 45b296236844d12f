from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


@dataclass
class SessionConfig:
    """How the interactive Amazon Q process is launched and polled."""

    command: str | None = None
    mode: str = "chat"
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    rows: int = 30
    cols: int = 80
    poll_interval_ms: int = 50


@dataclass
class DisplayConfig:
    """Rendering preferences for the terminal front-end."""

    show_user_input: bool = True
    clear_on_init: bool = True


@dataclass
class DebugConfig:
    """Debug mode settings."""

    enabled: bool = False
    trace: bool = False
    verbose: bool = False
    trace_dir: str = "debug"


@dataclass
class AppConfig:
    """Top-level application configuration aggregating all subsections."""

    session: SessionConfig = field(default_factory=SessionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _positive_int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ConfigError(f"session.{key} must be a positive integer, got {value!r}")
    return value


def load_config(path: str | None) -> AppConfig:
    """Load application configuration from an optional YAML file.

    Every section is optional; missing keys fall back to the dataclass
    defaults. Without a path the defaults are returned unchanged.

    Args:
        path: Filesystem path to the YAML configuration file, or None.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ConfigError: If the file does not exist, is not a mapping, or holds
            invalid values (non-positive sizes, non-list args).
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    # `or {}` fallback handles YAML null values for optional sections
    session_raw = raw.get("session", {}) or {}
    display_raw = raw.get("display", {}) or {}
    debug_raw = raw.get("debug", {}) or {}

    args = session_raw.get("args", []) or []
    if not isinstance(args, list):
        raise ConfigError("session.args must be a list")

    logger.debug("Loaded config from %s", path)

    return AppConfig(
        session=SessionConfig(
            command=session_raw.get("command"),
            mode=session_raw.get("mode", "chat"),
            args=[str(a) for a in args],
            env=session_raw.get("env", {}) or {},
            rows=_positive_int(session_raw, "rows", 30),
            cols=_positive_int(session_raw, "cols", 80),
            poll_interval_ms=_positive_int(session_raw, "poll_interval_ms", 50),
        ),
        display=DisplayConfig(
            show_user_input=bool(display_raw.get("show_user_input", True)),
            clear_on_init=bool(display_raw.get("clear_on_init", True)),
        ),
        debug=DebugConfig(
            enabled=bool(debug_raw.get("enabled", False)),
            trace=bool(debug_raw.get("trace", False)),
            verbose=bool(debug_raw.get("verbose", False)),
            trace_dir=str(debug_raw.get("trace_dir", "debug")),
        ),
    )
