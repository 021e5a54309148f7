"""
Configuration loader for the LINE dispatch layer.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class DispatchConfig:
    message_delay_ms: float = 1000       # pacing before every outbound send
    show_indicators: bool = True

    def __post_init__(self):
        if self.message_delay_ms < 0:
            raise ValueError(f"message_delay_ms must be non-negative, got {self.message_delay_ms}")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = False                   # JSON lines instead of the console renderer


@dataclass
class Settings:
    app_name: str = "LineDispatch"
    debug: bool = False
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file. A missing file yields the defaults."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "LINE_DISPATCH_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "dispatch" in raw:
            d = raw["dispatch"] or {}
            settings.dispatch = DispatchConfig(
                message_delay_ms=float(d.get("message_delay_ms", 1000)),
                show_indicators=d.get("show_indicators", True),
            )

        if "logging" in raw:
            lg = raw["logging"] or {}
            settings.logging = LoggingConfig(
                level=str(lg.get("level", "INFO")).upper(),
                json=lg.get("json", False),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads."""
    global _settings
    _settings = None
